"""命令行测试"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import json
import pytest
from click.testing import CliRunner

from cli import cli
from data_manager.schema import record_to_dict


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def data_file(tmp_path):
    return tmp_path / "debt.xlsx"


class TestCalculations:
    def test_equal_payment(self, runner):
        result = runner.invoke(cli, ["equal-payment", "--principal", "1000000", "--annual-rate", "6",
                                     "--term-months", "240"])
        assert result.exit_code == 0
        assert "7164.31" in result.output

    def test_interest_first_schedule(self, runner, data_file):
        result = runner.invoke(cli, ["--data-file", str(data_file), "interest-first-schedule",
                                     "--principal", "100000", "--annual-rate", "3.6",
                                     "--start-date", "2024-01-15", "--end-date", "2024-04-15"])
        assert result.exit_code == 0
        assert "100310.0" in result.output

    def test_prepayment_unavailable(self, runner):
        result = runner.invoke(cli, ["prepayment", "--principal", "800000", "--annual-rate", "3.45",
                                     "--remaining-months", "300", "--amount", "900000"])
        assert result.exit_code != 0


class TestConfirmAndPortfolio:
    def test_confirm_then_calendar(self, runner, data_file, tmp_path, interest_first_loan):
        records_file = tmp_path / "records.json"
        records_file.write_text(json.dumps([record_to_dict(interest_first_loan)]), encoding="utf-8")

        result = runner.invoke(cli, ["--data-file", str(data_file), "confirm", "--debt-type", "consumerLoan",
                                     "--records-file", str(records_file), "--today", "2026-10-19"])
        assert result.exit_code == 0, result.output
        assert "confirmed" in result.output

        result = runner.invoke(cli, ["--data-file", str(data_file), "portfolio"])
        assert result.exit_code == 0
        assert "消费贷" in result.output

        result = runner.invoke(cli, ["--data-file", str(data_file), "calendar", "--today", "2026-10-19"])
        assert result.exit_code == 0
        assert "310.00" in result.output

    def test_confirm_incomplete(self, runner, data_file, tmp_path):
        records_file = tmp_path / "records.json"
        records_file.write_text(json.dumps([{"id": "c1", "name": "草稿"}]), encoding="utf-8")
        result = runner.invoke(cli, ["--data-file", str(data_file), "confirm", "--debt-type", "consumerLoan",
                                     "--records-file", str(records_file)])
        assert result.exit_code != 0

    def test_bad_today(self, runner, data_file):
        result = runner.invoke(cli, ["--data-file", str(data_file), "calendar", "--today", "tomorrow"])
        assert result.exit_code != 0
