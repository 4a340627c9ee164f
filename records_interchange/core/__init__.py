"""
Core domain: vocabularies, models, validators and rule engines.
"""
