"""
Unit tests for the command-line interface.
"""

import openpyxl
import pytest

from records_interchange.cli.interchange_cli import build_parser, main
from records_interchange.core.models import DuplicateMode


@pytest.mark.unit
class TestBuildParser:
    """Tests for argument parsing"""

    def test_import_defaults(self):
        """Test import defaults to create-only, fail-fast and a real run"""
        args = build_parser().parse_args(["import", "--type", "member", "--input", "members.xlsx"])

        assert args.duplicate_mode == DuplicateMode.CREATE_ONLY.value
        assert args.continue_on_error is False
        assert args.dry_run is False
        assert args.db_host is None

    def test_restore_defaults(self):
        """Test restore defaults to update-existing and accepts repeated types"""
        args = build_parser().parse_args([
            "restore", "--input", "backup.xlsx", "--type", "member", "--type", "organization",
        ])

        assert args.duplicate_mode == DuplicateMode.UPDATE_EXISTING.value
        assert args.type == ["member", "organization"]
        assert args.fail_fast is False

    def test_invalid_duplicate_mode(self):
        """Test unknown duplicate modes are rejected by argparse"""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["import", "--type", "member", "--input", "x.csv", "--duplicate-mode", "merge"])

    def test_template_has_no_database_arguments(self):
        """Test the template command takes no connection arguments"""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["template", "--type", "member", "--db-host", "db"])


@pytest.mark.unit
class TestMain:
    """Tests for the CLI entry point"""

    def test_no_command(self):
        """Test running without a command exits with status 1"""
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_template_command(self, tmp_path, capsys):
        """Test templates are written without a database"""
        main(["template", "--type", "헌금", "--output-dir", str(tmp_path)])

        path = tmp_path / "헌금내역_템플릿.xlsx"
        assert path.exists()
        assert openpyxl.load_workbook(path).sheetnames[0] == "헌금내역"
        assert "Template written" in capsys.readouterr().out

    def test_template_unknown_type(self, tmp_path, capsys):
        """Test an unknown record type exits with status 1"""
        with pytest.raises(SystemExit) as exc_info:
            main(["template", "--type", "payroll", "--output-dir", str(tmp_path)])

        assert exc_info.value.code == 1
        assert "Error:" in capsys.readouterr().out
