"""
records-interchange: bulk import, export, backup and restore of congregation records.
"""

__version__ = "0.1.0"
