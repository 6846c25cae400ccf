"""Tests for the Click CLI layer.

Uses Click's CliRunner to invoke commands without spawning subprocesses,
against the CSV fixtures in tests/fixtures/.  Reports are written to files
with ``-o`` where the test inspects their content, so log lines on stderr
never mix with the parsed output.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

import pytest
from click.testing import CliRunner

from statement_analyzer import __version__
from statement_analyzer.cli import cli

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def _restore_logging():
    """Drop the handlers each command installs on the root logger."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


# ===================================================================
# Help / version
# ===================================================================


class TestCLIHelp:
    def test_lists_commands(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("analyze", "validate", "init-config"):
            assert command in result.output

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert f"statement-analyzer, version {__version__}" in result.output

    def test_analyze_help_lists_filters(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze", "--help"])
        assert result.exit_code == 0
        for option in ("--category", "--min-amount", "--month", "--no-duplicates"):
            assert option in result.output


# ===================================================================
# analyze
# ===================================================================


class TestAnalyzeCommand:
    def test_text_report_to_stdout(self, runner: CliRunner, sample_csv: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(sample_csv)])
        assert result.exit_code == 0, result.output
        assert "STATEMENT ANALYSIS REPORT" in result.output
        assert "POSSIBLE DUPLICATES" in result.output

    def test_json_report_to_file(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "report.json"
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-f", "json", "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert "Report written to" in result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["general"]["total_transactions"] == 5
        assert len(data["duplicates"]) == 1
        assert data["general"]["outliers"]["values"] == [-1000.0]

    def test_filters(self, runner: CliRunner, sample_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "food.csv"
        result = runner.invoke(
            cli,
            ["analyze", str(sample_csv), "--category", "Food", "-f", "csv", "-o", str(out)],
        )
        assert result.exit_code == 0, result.output
        lines = out.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 3
        assert all("IFOOD" in line for line in lines[1:])

    def test_amount_and_date_filters(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "report.json"
        result = runner.invoke(
            cli,
            [
                "analyze", str(sample_csv),
                "--min-amount", "35",
                "--max-amount", "100",
                "--start-date", "2025-10-01",
                "--end-date", "2025-10-31",
                "-f", "json", "-o", str(out),
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        descriptions = [t["description"] for t in data["transactions"]]
        assert descriptions == ["Uber *UBER", "Netflix"]

    def test_no_duplicates_flag(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "report.json"
        result = runner.invoke(
            cli, ["analyze", str(sample_csv), "--no-duplicates", "-f", "json", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert json.loads(out.read_text(encoding="utf-8"))["duplicates"] == []

    def test_all_formats(self, runner: CliRunner, sample_csv: Path, tmp_path: Path) -> None:
        base = tmp_path / "reports" / "october"
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-f", "all", "-o", str(base)])

        assert result.exit_code == 0, result.output
        assert "Reports generated:" in result.output
        for suffix in ("txt", "json", "toml", "csv", "html"):
            assert (tmp_path / "reports" / f"october.{suffix}").exists()

    def test_all_formats_beside_input_keep_input(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        statement = tmp_path / "statement.csv"
        shutil.copy(sample_csv, statement)
        before = statement.read_text(encoding="utf-8")

        result = runner.invoke(cli, ["analyze", str(statement), "-f", "all"])

        assert result.exit_code == 0, result.output
        assert statement.read_text(encoding="utf-8") == before
        for suffix in ("txt", "json", "toml", "csv", "html"):
            assert (tmp_path / f"statement-report.{suffix}").exists()

    @pytest.mark.parametrize(
        ("name", "first_char"),
        [("report.json", "{"), ("report.html", "<"), ("REPORT.JSON", "{")],
    )
    def test_format_from_output_extension(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path, name: str, first_char: str
    ) -> None:
        out = tmp_path / name
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8").lstrip()[0] == first_char

    def test_csv_extension(self, runner: CliRunner, sample_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "report.csv"
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert out.read_text(encoding="utf-8").startswith("date,description,amount")

    def test_explicit_format_beats_extension(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "report.json"
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-f", "txt", "-o", str(out)])
        assert result.exit_code == 0, result.output
        assert "STATEMENT ANALYSIS REPORT" in out.read_text(encoding="utf-8")

    def test_several_input_files(
        self, runner: CliRunner, sample_csv: Path, ptbr_csv: Path, tmp_path: Path
    ) -> None:
        out = tmp_path / "report.json"
        result = runner.invoke(cli, ["analyze", str(sample_csv), str(ptbr_csv), "-o", str(out)])

        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["general"]["total_transactions"] == 8

    def test_requires_an_input_file(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["analyze"])
        assert result.exit_code == 2

    def test_wrong_config_type_is_reported(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        config = tmp_path / "config.toml"
        config.write_text('[analysis]\noutlier_threshold = "3"\n', encoding="utf-8")
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-c", str(config)])

        assert result.exit_code == 1
        assert "Error loading configuration" in result.output
        assert "outlier_threshold must be a number" in result.output

    def test_config_default_format(
        self,
        runner: CliRunner,
        sample_csv: Path,
        custom_config_path: Path,
        tmp_path: Path,
    ) -> None:
        out = tmp_path / "report.out"
        result = runner.invoke(
            cli, ["analyze", str(sample_csv), "-c", str(custom_config_path), "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(out.read_text(encoding="utf-8"))
        assert set(data["by_category"]) == {"Streaming", "Others"}
        assert len(data["top_expenses"]) == 3

    def test_missing_column(self, runner: CliRunner, fixtures_dir: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(fixtures_dir / "missing_column.csv")])
        assert result.exit_code == 1
        assert "Error: required column(s) not found: description" in result.output

    def test_no_valid_rows(self, runner: CliRunner, fixtures_dir: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(fixtures_dir / "only_bad_rows.csv")])
        assert result.exit_code == 1
        assert "no valid transactions found" in result.output
        assert "(0/2 rows valid)" in result.output

    def test_filter_without_matches(self, runner: CliRunner, sample_csv: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(sample_csv), "--search", "zzz"])
        assert result.exit_code == 1
        assert "no transactions match the given filters" in result.output

    def test_missing_input_file(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(tmp_path / "nope.csv")])
        assert result.exit_code == 2

    def test_missing_config_file(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        result = runner.invoke(
            cli, ["analyze", str(sample_csv), "-c", str(tmp_path / "nope.toml")]
        )
        assert result.exit_code == 1
        assert "config file not found" in result.output
        assert "init-config" in result.output

    def test_invalid_config_file(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        config = tmp_path / "config.toml"
        config.write_text('[report]\ndefault_format = "pdf"\n', encoding="utf-8")
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-c", str(config)])
        assert result.exit_code == 1
        assert "Error loading configuration" in result.output

    def test_log_file_from_config(
        self, runner: CliRunner, sample_csv: Path, tmp_path: Path
    ) -> None:
        log_path = tmp_path / "logs" / "run.log"
        config = tmp_path / "config.toml"
        config.write_text(
            f'[logging]\nlevel = "info"\nfile = "{log_path.as_posix()}"\n', encoding="utf-8"
        )
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-c", str(config)])

        assert result.exit_code == 0, result.output
        assert "Analysis complete" in log_path.read_text(encoding="utf-8")


class TestArgumentValidation:
    @pytest.mark.parametrize("month", ["13/2025", "2025-10", "1/2025"])
    def test_invalid_month(self, runner: CliRunner, sample_csv: Path, month: str) -> None:
        result = runner.invoke(cli, ["analyze", str(sample_csv), "--month", month])
        assert result.exit_code == 1
        assert "Invalid month" in result.output

    def test_invalid_start_date(self, runner: CliRunner, sample_csv: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(sample_csv), "--start-date", "01/10/2025"])
        assert result.exit_code == 1
        assert "Expected YYYY-MM-DD" in result.output

    def test_valid_month(self, runner: CliRunner, sample_csv: Path) -> None:
        result = runner.invoke(cli, ["analyze", str(sample_csv), "--month", "09/2025"])
        assert result.exit_code == 0, result.output
        assert "Transactions:   1" in result.output


# ===================================================================
# validate
# ===================================================================


class TestValidateCommand:
    def test_clean_file(self, runner: CliRunner, sample_csv: Path) -> None:
        result = runner.invoke(cli, ["validate", str(sample_csv)])
        assert result.exit_code == 0, result.output
        assert "Validation Summary" in result.output
        assert "Rows parsed:           5" in result.output
        assert "Outliers:              1" in result.output

    def test_bad_rows_fail(self, runner: CliRunner, bad_rows_csv: Path) -> None:
        result = runner.invoke(cli, ["validate", str(bad_rows_csv), "--verbose"])
        assert result.exit_code == 1
        assert "Rows skipped:          4" in result.output
        assert "skipped row 2 (missing description)" in result.output

    def test_missing_column(self, runner: CliRunner, fixtures_dir: Path) -> None:
        result = runner.invoke(cli, ["validate", str(fixtures_dir / "missing_column.csv")])
        assert result.exit_code == 1
        assert "Error:" in result.output


# ===================================================================
# init-config
# ===================================================================


class TestInitConfigCommand:
    def test_writes_default_config(self, runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        result = runner.invoke(cli, ["init-config", str(target)])

        assert result.exit_code == 0, result.output
        assert "Default configuration written" in result.output
        assert "[[categories]]" in target.read_text(encoding="utf-8")

    def test_does_not_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        target.write_text("# existing\n", encoding="utf-8")
        result = runner.invoke(cli, ["init-config", str(target)])

        assert result.exit_code == 0
        assert "already exists" in result.output
        assert target.read_text(encoding="utf-8") == "# existing\n"

    def test_generated_config_is_loadable(
        self, runner: CliRunner, tmp_path: Path, sample_csv: Path
    ) -> None:
        target = tmp_path / "config.toml"
        runner.invoke(cli, ["init-config", str(target)])
        result = runner.invoke(cli, ["analyze", str(sample_csv), "-c", str(target)])
        assert result.exit_code == 0, result.output
