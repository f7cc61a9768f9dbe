"""Tests for the command-line interface."""

import pytest

from ledger_core import JSONStorage, create_services
from pocket_ledger.cli import main


@pytest.fixture
def run(tmp_path, monkeypatch):
    monkeypatch.delenv("POCKET_LEDGER_STRICT_BALANCE", raising=False)

    def invoke(*args):
        return main(["--data-dir", str(tmp_path), *args])

    return invoke


@pytest.fixture
def reopen(tmp_path):
    return lambda: create_services(JSONStorage(tmp_path))


class TestCategoryCommands:
    def test_list_marks_reserved(self, run, capsys):
        assert run("category", "list") == 0
        out = capsys.readouterr().out
        assert "Gain (reserved)" in out
        assert "Groceries | Limit: -" in out

    def test_add_edit_delete(self, run, reopen, capsys):
        assert run("category", "add", "Rent", "--limit", "900") == 0
        assert "Rent | Limit: 900.00" in capsys.readouterr().out
        rent = reopen().categories.find_by_name("Rent")

        assert run("category", "edit", str(rent.id), "Housing") == 0
        assert "Housing | Limit: 900.00" in capsys.readouterr().out
        assert str(reopen().categories.get(rent.id).monthly_limit) == "900.00"

        assert run("category", "edit", str(rent.id), "Housing", "--limit", "950") == 0
        assert "Housing | Limit: 950.00" in capsys.readouterr().out

        assert run("category", "edit", str(rent.id), "Housing", "--clear-limit") == 0
        assert "Housing | Limit: -" in capsys.readouterr().out
        assert reopen().categories.get(rent.id).monthly_limit is None

        assert run("category", "delete", str(rent.id)) == 0
        assert reopen().categories.find_by_name("Housing") is None

    def test_reserved_category_error(self, run, reopen, capsys):
        gain_id = reopen().categories.gain_category_id()
        assert run("category", "delete", str(gain_id)) == 1
        assert "Validation error" in capsys.readouterr().err

    def test_duplicate_error(self, run, capsys):
        assert run("category", "add", "groceries") == 1
        assert "Duplicate" in capsys.readouterr().err


class TestTransactionCommands:
    def test_add_by_category_name_updates_balance(self, run, capsys):
        assert run("tx", "add", "cash", "groceries", "25", "--reason", "milk") == 0
        out = capsys.readouterr().out
        assert "-25.00" in out
        assert "Category: Groceries" in out

        assert run("balance", "show") == 0
        out = capsys.readouterr().out
        assert "cash: -25.00" in out
        assert "total: -25.00" in out

    def test_add_gain_by_id(self, run, reopen, capsys):
        gain_id = reopen().categories.gain_category_id()
        assert run("tx", "add", "gpay", str(gain_id), "100") == 0
        assert "+100.00" in capsys.readouterr().out

    def test_list_with_filters(self, run, capsys):
        run("tx", "add", "cash", "Groceries", "10", "--reason", "bread")
        run("tx", "add", "gpay", "Bills", "20", "--reason", "phone")
        capsys.readouterr()

        assert run("tx", "list", "--payment-method", "gpay") == 0
        out = capsys.readouterr().out
        assert "Found 1 transactions" in out
        assert "phone" in out and "bread" not in out

        assert run("tx", "list", "--search", "nothing-matches") == 0
        assert "No transactions found." in capsys.readouterr().out

    def test_edit_keeps_unspecified_fields(self, run, reopen, capsys):
        run("tx", "add", "cash", "Bills", "10", "--reason", "water")
        (tx,) = reopen().queries.list_transactions()

        assert run("tx", "edit", tx.id, "--amount", "15.5") == 0
        edited = reopen().ledger.get(tx.id)
        assert str(edited.amount) == "15.50"
        assert edited.reason == "water"
        assert edited.category_name == "Bills"
        assert str(reopen().balances.get("cash")) == "-15.50"

    def test_delete(self, run, reopen, capsys):
        run("tx", "add", "cash", "Bills", "10")
        (tx,) = reopen().queries.list_transactions()
        assert run("tx", "delete", tx.id) == 0
        assert reopen().queries.list_transactions() == []
        assert run("tx", "delete", tx.id) == 1

    def test_unknown_category_name(self, run, capsys):
        assert run("tx", "add", "cash", "Nope", "10") == 1
        assert "Category 'Nope' not found" in capsys.readouterr().err

    def test_strict_flag(self, run, capsys):
        assert run("--strict", "tx", "add", "cash", "Bills", "10") == 1
        assert "Insufficient cash balance" in capsys.readouterr().err

    @pytest.mark.parametrize("amount", ["0", "nan", "Infinity", "abc"])
    def test_amount_must_be_positive_and_finite(self, run, amount):
        with pytest.raises(SystemExit):
            run("tx", "add", "cash", "Bills", amount)

    def test_huge_amount_is_a_validation_error(self, run, reopen, capsys):
        assert run("tx", "add", "cash", "Bills", "1e27") == 1
        assert "amount is too large" in capsys.readouterr().err
        assert reopen().queries.list_transactions() == []

    def test_numeric_category_name(self, run, reopen, capsys):
        run("category", "add", "2024")
        capsys.readouterr()
        assert run("tx", "add", "cash", "2024", "10") == 0
        assert "Category: 2024" in capsys.readouterr().out

        services = reopen()
        bills = services.categories.find_by_name("Bills")
        assert run("tx", "add", "cash", str(bills.id), "5") == 0
        assert "Category: Bills" in capsys.readouterr().out


class TestReportCommands:
    def test_balance_set(self, run, capsys):
        assert run("balance", "set", "gpay", "-5") == 0
        assert "gpay balance set to -5.00" in capsys.readouterr().out

    def test_summary_and_budget(self, run, reopen, capsys):
        services = reopen()
        bills = services.categories.find_by_name("Bills")
        services.categories.update(bills.id, "Bills", "10")
        tx = services.ledger.add("cash", bills.id, 12)
        year, month = tx.occurred_at.year, tx.occurred_at.month

        assert run("summary", str(year), str(month)) == 0
        out = capsys.readouterr().out
        assert "Expenses: 12.00" in out
        assert "Bills: 12.00 (1)" in out

        assert run("budget", str(year), str(month)) == 0
        assert "Bills: spent 12.00 of 10.00 (remaining -2.00) OVER LIMIT" in capsys.readouterr().out

    def test_seed(self, run, reopen, capsys):
        assert run("seed", "2024", "2", "--count", "5") == 0
        assert "Generated test data for 2024-02." in capsys.readouterr().out

    def test_invalid_month(self, run, capsys):
        assert run("summary", "2024", "13") == 1
        assert "month must be between 1 and 12" in capsys.readouterr().err
