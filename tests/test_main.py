import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import main
from config import get_settings
from main import format_decimal, write_accounts
from models import AccountSnapshot


class TestFormatDecimal:
    @pytest.mark.parametrize("value, expected", [
        ("100.5000", "100.5"),
        ("100.0000", "100"),
        ("100", "100"),
        ("0", "0"),
        ("-0.0000", "0"),
        ("-50", "-50"),
        ("1.23456", "1.2346"),
        ("2000000000.12345", "2000000000.1235"),
        ("0.0001", "0.0001"),
    ])
    def test_format(self, value, expected):
        assert format_decimal(Decimal(value)) == expected

    def test_custom_precision(self):
        assert format_decimal(Decimal("1.23456"), precision=2) == "1.23"


class TestWriteAccounts:
    def test_rows_sorted_by_client(self, capsys):
        accounts = [
            AccountSnapshot(2, Decimal("2"), Decimal("0"), Decimal("2"), False),
            AccountSnapshot(1, Decimal("-50"), Decimal("0"), Decimal("-50"), True),
        ]
        write_accounts(accounts, sys.stdout)

        assert capsys.readouterr().out.splitlines() == [
            "client,available,held,total,locked",
            "1,-50,0,-50,true",
            "2,2,0,2,false",
        ]


class TestMain:
    def test_end_to_end(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text('\n'.join([
            "type, client, tx, amount",
            "deposit, 1, 1, 1.0",
            "deposit, 2, 2, 2.0",
            "deposit, 1, 3, 2.0",
            "withdrawal, 1, 4, 1.5",
            "withdrawal, 2, 5, 3.0",
        ]))
        monkeypatch.setattr(sys, "argv", ["payments-engine", str(csv_file)])

        main.main()

        captured = capsys.readouterr()
        assert set(captured.out.splitlines()[1:]) == {"1,1.5,0,1.5,false", "2,2,0,2,false"}
        assert "Failed: 1" in captured.err

    def test_missing_file_exits_non_zero(self, tmp_path, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["payments-engine", str(tmp_path / "nope.csv")])

        with pytest.raises(SystemExit) as exc_info:
            main.main()

        assert exc_info.value.code == 1
        assert capsys.readouterr().out == ""

    def test_wrong_argument_count(self, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["payments-engine"])

        with pytest.raises(SystemExit) as exc_info:
            main.main()

        assert exc_info.value.code == 1
        assert "Usage" in capsys.readouterr().err

    def test_invalid_configuration_exits_cleanly(self, tmp_path, monkeypatch, capsys):
        csv_file = tmp_path / "input.csv"
        csv_file.write_text("type, client, tx, amount\ndeposit, 1, 1, 1.0")
        monkeypatch.setattr(sys, "argv", ["payments-engine", str(csv_file)])
        monkeypatch.setenv("PAYMENTS_LOG_LEVEL", "verbose")
        get_settings.cache_clear()

        try:
            with pytest.raises(SystemExit) as exc_info:
                main.main()
        finally:
            get_settings.cache_clear()

        assert exc_info.value.code == 1
        assert "Invalid configuration" in capsys.readouterr().err
