"""Integration tests for CLI workflows."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from fintrack.cli import main
from fintrack.lib.api_models import PriceQuote
from fintrack.lib.identity import StaticIdentity
from fintrack.services.import_service import ImportService

BANK_CSV = (
    "Posted,Memo,Amt,Ref\n"
    "2024-01-05,Coffee,-4.50,ref-1\n"
    "2024-01-06,Broken,abc,ref-2\n"
    "2024-01-08,Salary,2500.00,ref-3\n"
)


@pytest.fixture
def cli_runner():
    """Provide Click test runner."""
    return CliRunner()


@pytest.fixture
def run(cli_runner):
    """Invoke the CLI as user-1 on a wide terminal so tables do not wrap."""

    def invoke(*args, **kwargs):
        return cli_runner.invoke(
            main, ["--user", "user-1", *args], env={"COLUMNS": "200"}, **kwargs
        )

    return invoke


@pytest.fixture
def bank_file(tmp_path):
    path = tmp_path / "bank.csv"
    path.write_text(BANK_CSV, encoding="utf-8")
    return path


def import_args(bank_file, *extra):
    return [
        "import",
        "csv",
        "-f",
        str(bank_file),
        "-a",
        "Checking",
        "--date-col",
        "Posted",
        "--description-col",
        "Memo",
        "--amount-col",
        "Amt",
        "--external-id-col",
        "Ref",
        *extra,
    ]


def fake_provider(prices):
    provider = MagicMock()
    provider.name = "fake"

    async def get_quote(symbol):
        if symbol in prices:
            return PriceQuote(symbol=symbol, price=prices[symbol], source="fake")
        return None

    provider.get_quote = AsyncMock(side_effect=get_quote)
    return provider


@pytest.mark.integration
class TestCLIWorkflow:
    """Test suite for full CLI workflows."""

    def test_version(self, cli_runner):
        result = cli_runner.invoke(main, ["version"])

        assert result.exit_code == 0
        assert "fintrack version" in result.output

    def test_init_existing_database(self, cli_runner):
        result = cli_runner.invoke(main, ["init"])

        assert result.exit_code == 0
        assert "already exists" in result.output

    def test_account_add_and_list(self, run):
        result = run("account", "add", "-n", "Checking", "-c", "eur")
        assert result.exit_code == 0
        assert "Created account Checking" in result.output

        result = run("account", "list")
        assert result.exit_code == 0
        assert "Checking" in result.output
        assert "EUR" in result.output

    def test_account_add_duplicate(self, run):
        run("account", "add", "-n", "Checking")

        result = run("account", "add", "-n", "Checking")

        assert result.exit_code != 0
        assert "already exists" in result.output

    def test_categories(self, run):
        assert run("account", "add-category", "-n", "Salary", "--kind", "income").exit_code == 0

        result = run("account", "categories")

        assert "Salary" in result.output
        assert "income" in result.output

    def test_import_workflow(self, run, bank_file):
        """Create an account, import a file, then inspect the job and its rows."""
        run("account", "add", "-n", "Checking")

        result = run(*import_args(bank_file))

        assert result.exit_code == 0, result.output
        assert "Import Summary" in result.output
        assert "Invalid amount" in result.output

        job = ImportService(StaticIdentity("user-1")).get_import_history()[0]
        assert job.committed_count == 2
        assert job.rejected_count == 1

        result = run("import", "history")
        assert result.exit_code == 0
        assert "committed" in result.output

        result = run("import", "errors", job.job_id)
        assert result.exit_code == 0
        assert "amount" in result.output

        result = run("transactions", "list")
        assert result.exit_code == 0
        assert "Coffee" in result.output
        assert "Salary" in result.output

        result = run("transactions", "export", "--max-amount", "0")
        assert result.exit_code == 0
        lines = result.output.strip().splitlines()
        assert lines[0].startswith("date,description,amount")
        assert lines[1].startswith("2024-01-05,Coffee,-4.50,Checking,ref-1")
        assert len(lines) == 2

    def test_import_dry_run(self, run, bank_file):
        run("account", "add", "-n", "Checking")

        result = run(*import_args(bank_file, "--dry-run"))

        assert result.exit_code == 0
        assert "DRY RUN" in result.output
        assert ImportService(StaticIdentity("user-1")).get_import_history() == []

    def test_import_unknown_account(self, run, bank_file):
        result = run(*import_args(bank_file))

        assert result.exit_code != 0
        assert "Account not found" in result.output

    def test_import_missing_column(self, run, bank_file):
        run("account", "add", "-n", "Checking")

        result = run("import", "csv", "-f", str(bank_file), "-a", "Checking")

        assert result.exit_code != 0
        assert "Missing column mapping" in result.output

    def test_import_rejects_other_extensions(self, run, tmp_path):
        path = tmp_path / "bank.json"
        path.write_text(BANK_CSV)

        result = run("import", "csv", "-f", str(path), "-a", "Checking")

        assert result.exit_code != 0

    def test_import_rejects_non_utf8_file(self, run, tmp_path):
        run("account", "add", "-n", "Checking")
        path = tmp_path / "bank.csv"
        path.write_bytes(BANK_CSV.replace("Coffee", "Caf\xe9").encode("latin-1"))

        result = run(*import_args(path))

        assert result.exit_code != 0
        assert "not valid utf-8" in result.output
        assert ImportService(StaticIdentity("user-1")).get_import_history() == []

    def test_export_to_file(self, run, bank_file, tmp_path):
        run("account", "add", "-n", "Checking")
        run(*import_args(bank_file))
        output = tmp_path / "out.csv"

        result = run("transactions", "export", "-o", str(output))

        assert result.exit_code == 0
        assert output.read_text().count("\n") == 3

    def test_invalid_amount_filter(self, run):
        result = run("transactions", "list", "--min-amount", "lots")

        assert result.exit_code != 0

    def test_prices_get_json(self, run):
        provider = fake_provider({"AAPL": 190.12})

        with patch("fintrack.services.price_resolver.get_quote_provider", return_value=provider):
            result = run("prices", "get", "aapl", "ZZZZ", "--json")

        assert result.exit_code == 0, result.output
        payload = json.loads(result.stdout)
        assert list(payload) == ["AAPL"]
        assert payload["AAPL"]["price"] == 190.12
        assert payload["AAPL"]["currency"] == "USD"

    def test_prices_get_table_uses_cache(self, run):
        provider = fake_provider({"AAPL": 190.12})

        with patch("fintrack.services.price_resolver.get_quote_provider", return_value=provider):
            run("prices", "get", "AAPL")
            result = run("prices", "get", "AAPL")

        assert result.exit_code == 0
        assert "190.12" in result.output
        assert "cached" in result.output
        assert provider.get_quote.await_count == 1

    def test_prices_get_table_lists_unpriced_symbols(self, run):
        provider = fake_provider({"AAPL": 190.12})

        with patch("fintrack.services.price_resolver.get_quote_provider", return_value=provider):
            result = run("prices", "get", "AAPL", "ZZZZ")

        assert result.exit_code == 0, result.output
        assert "unavailable" in result.output
        assert "No price for: ZZZZ" in result.output

    def test_prices_requires_user(self, cli_runner, monkeypatch):
        monkeypatch.delenv("FINTRACK_USER_ID", raising=False)

        result = cli_runner.invoke(main, ["prices", "get", "AAPL"])

        assert result.exit_code != 0
        assert "Not authenticated" in result.output
