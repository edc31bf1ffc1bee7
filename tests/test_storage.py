import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from portfolio_insights.database.json_store import JsonSnapshotSource, save_snapshot
from portfolio_insights.database.models import (
    CryptoHolding, DebtLiability, DebtType, PortfolioSnapshot, RealEstateHolding,
    RetirementAccount, StockHolding, init_database,
)
from portfolio_insights.database.operations import (
    CryptoOperations, DebtOperations, RealEstateOperations, RetirementOperations,
    SettingsOperations, SqliteSnapshotSource, StockOperations,
)
from portfolio_insights.services.insights_engine import generate_report_from_source
from portfolio_insights.services.validation import InvalidSnapshotError, parse_timestamp

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)


def sample_snapshot():
    return PortfolioSnapshot(
        real_estate=(RealEstateHolding("Home", estimated_value=320000, mortgage_balance=210000,
                                       monthly_mortgage_payment=1650, address="1 Elm St"),),
        stocks=(StockHolding("Total Market", "VTI", shares=40, cost_basis_per_share=200,
                             current_price=250, created_at="2023-05-01T00:00:00+00:00"),),
        crypto=(CryptoHolding("Bitcoin", "BTC", quantity=0.5, cost_basis_per_unit=30000,
                              current_price=60000, created_at="2024-02-01T00:00:00+00:00"),),
        retirement=(RetirementAccount("401k", balance=85000, account_type='401k'),),
        debts=(
            DebtLiability("Visa", DebtType.CREDIT_CARD, current_balance=3200, interest_rate=24.99,
                          minimum_payment=95, monthly_payment=100),
            DebtLiability("Stafford", DebtType.STUDENT_LOAN, current_balance=18000,
                          interest_rate=4.5, minimum_payment=190),
        ),
        age=36,
    )


class TestSqliteSource(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self.tmp.name) / "portfolio.db"
        init_database(self.db_path)

        snapshot = sample_snapshot()
        for holding in snapshot.real_estate:
            RealEstateOperations.create(holding, self.db_path)
        for stock in snapshot.stocks:
            StockOperations.create(stock, self.db_path)
        for coin in snapshot.crypto:
            CryptoOperations.create(coin, self.db_path)
        for account in snapshot.retirement:
            RetirementOperations.create(account, self.db_path)
        for debt in snapshot.debts:
            DebtOperations.create(debt, self.db_path)
        SettingsOperations.set('age', '36', self.db_path)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_snapshot(self):
        snapshot = SqliteSnapshotSource(self.db_path).load_snapshot()
        self.assertEqual(len(snapshot.real_estate), 1)
        self.assertEqual(snapshot.real_estate[0].equity, 110000)
        self.assertEqual(snapshot.stocks[0].current_value, 10000)
        self.assertEqual(snapshot.crypto[0].current_value, 30000)
        self.assertEqual(snapshot.retirement[0].balance, 85000)
        self.assertEqual(snapshot.age, 36)

    def test_debts_come_back_typed_and_rate_ordered(self):
        debts = SqliteSnapshotSource(self.db_path).get_debts()
        self.assertEqual([d.name for d in debts], ["Visa", "Stafford"])
        self.assertEqual(debts[0].debt_type, DebtType.CREDIT_CARD)
        self.assertEqual(debts[0].monthly_payment, 100)
        self.assertIsNone(debts[1].monthly_payment)

    def test_updates_and_deletes(self):
        debt_id = SqliteSnapshotSource(self.db_path).get_debts()[0].id
        self.assertTrue(DebtOperations.update_balance(debt_id, 1500, self.db_path))
        self.assertEqual(SqliteSnapshotSource(self.db_path).get_debts()[0].current_balance, 1500)

        stock_id = StockOperations.get_all(self.db_path)[0].id
        self.assertTrue(StockOperations.update_price(stock_id, 300, self.db_path))
        self.assertEqual(StockOperations.get_all(self.db_path)[0].current_price, 300)

        self.assertTrue(DebtOperations.delete(debt_id, self.db_path))
        self.assertFalse(DebtOperations.delete(debt_id, self.db_path))

    def test_holding_updates(self):
        home_id = RealEstateOperations.get_all(self.db_path)[0].id
        self.assertTrue(RealEstateOperations.update_valuation(home_id, 340000, 205000, self.db_path))
        self.assertEqual(RealEstateOperations.get_all(self.db_path)[0].equity, 135000)

        coin_id = CryptoOperations.get_all(self.db_path)[0].id
        self.assertTrue(CryptoOperations.update_price(coin_id, 70000, self.db_path))
        self.assertEqual(CryptoOperations.get_all(self.db_path)[0].current_value, 35000)

        account_id = RetirementOperations.get_all(self.db_path)[0].id
        self.assertTrue(RetirementOperations.update_balance(account_id, 90000, self.db_path))
        self.assertEqual(RetirementOperations.get_all(self.db_path)[0].balance, 90000)

        self.assertFalse(RetirementOperations.update_balance(9999, 1, self.db_path))

    def test_holding_deletes(self):
        home_id = RealEstateOperations.get_all(self.db_path)[0].id
        self.assertTrue(RealEstateOperations.delete(home_id, self.db_path))
        self.assertEqual(RealEstateOperations.get_all(self.db_path), [])

        stock_id = StockOperations.get_all(self.db_path)[0].id
        self.assertTrue(StockOperations.delete(stock_id, self.db_path))
        self.assertFalse(StockOperations.delete(stock_id, self.db_path))
        self.assertEqual(SqliteSnapshotSource(self.db_path).load_snapshot().stocks, ())

    def test_settings(self):
        SettingsOperations.set('currency', 'USD', self.db_path)
        self.assertEqual(SettingsOperations.get_all(self.db_path), {'age': '36', 'currency': 'USD'})
        self.assertEqual(SettingsOperations.get('missing', 'n/a', self.db_path), 'n/a')

    def test_default_created_at_is_utc(self):
        StockOperations.create(StockHolding("Bonds", "BND", shares=5, cost_basis_per_share=70),
                               self.db_path)
        bond = [s for s in StockOperations.get_all(self.db_path) if s.ticker == "BND"][0]
        created = parse_timestamp(bond.created_at)
        self.assertEqual(created.utcoffset(), timedelta(0))
        self.assertLess(abs(datetime.now(timezone.utc) - created), timedelta(minutes=5))

    def test_missing_database_file(self):
        missing = Path(self.tmp.name) / "nowhere.db"
        with self.assertRaises(FileNotFoundError):
            SqliteSnapshotSource(missing).load_snapshot()
        self.assertFalse(missing.exists())

    def test_missing_age_setting(self):
        SettingsOperations.set('age', '', self.db_path)
        self.assertIsNone(SqliteSnapshotSource(self.db_path).get_age())

    def test_report_from_database(self):
        report = generate_report_from_source(SqliteSnapshotSource(self.db_path), now=NOW)
        self.assertIsNotNone(report.debt_payoff)
        self.assertEqual(report.metrics.total_debts, 21200)
        self.assertEqual(report.metrics.total_assets, 110000 + 10000 + 30000 + 85000)

    def test_unknown_debt_type_in_database(self):
        from portfolio_insights.database.models import get_connection
        conn = get_connection(self.db_path)
        conn.execute("UPDATE debts SET debt_type = 'payday'")
        conn.commit()
        conn.close()
        with self.assertRaises(InvalidSnapshotError):
            SqliteSnapshotSource(self.db_path).get_debts()


class TestJsonSource(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "portfolio.json"

    def tearDown(self):
        self.tmp.cleanup()

    def test_save_then_load(self):
        snapshot = sample_snapshot()
        save_snapshot(self.path, snapshot)
        self.assertEqual(JsonSnapshotSource(self.path).load_snapshot(), snapshot)

    def test_hand_written_document(self):
        self.path.write_text(json.dumps({
            "debts": [{"name": "Card", "debt_type": "credit_card", "current_balance": 900,
                       "interest_rate": 19.9, "minimum_payment": 35, "color": "blue"}],
            "settings": {"age": "29"},
        }))
        source = JsonSnapshotSource(self.path)
        snapshot = source.load_snapshot()
        self.assertEqual(snapshot.stocks, ())
        self.assertEqual(snapshot.debts[0].debt_type, DebtType.CREDIT_CARD)
        self.assertEqual(snapshot.age, 29)

    def test_same_report_as_sqlite(self):
        save_snapshot(self.path, sample_snapshot())
        report = generate_report_from_source(JsonSnapshotSource(self.path), now=NOW)
        self.assertEqual(report.metrics.total_debts, 21200)

    def test_explicit_age_overrides_stored_age(self):
        save_snapshot(self.path, sample_snapshot())
        report = generate_report_from_source(JsonSnapshotSource(self.path), age=70, now=NOW)
        titles = [i.title for i in report.insights]
        self.assertFalse(any("years to traditional retirement" in t for t in titles))

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            JsonSnapshotSource(self.path).load_snapshot()

    def test_corrupt_document(self):
        self.path.write_text("{not json")
        with self.assertRaises(InvalidSnapshotError) as ctx:
            JsonSnapshotSource(self.path).load_snapshot()
        self.assertEqual(ctx.exception.field_name, str(self.path))

    def test_settings_must_be_an_object(self):
        self.path.write_text(json.dumps({"settings": "34"}))
        with self.assertRaises(InvalidSnapshotError) as ctx:
            JsonSnapshotSource(self.path).load_snapshot()
        self.assertEqual(ctx.exception.field_name, "settings")

    def test_sections_must_be_lists(self):
        self.path.write_text(json.dumps({"debts": {"name": "Card", "current_balance": 100}}))
        with self.assertRaises(InvalidSnapshotError) as ctx:
            JsonSnapshotSource(self.path).get_debts()
        self.assertEqual(ctx.exception.field_name, "debts")

    def test_reload_rereads_the_file(self):
        save_snapshot(self.path, sample_snapshot())
        source = JsonSnapshotSource(self.path)
        self.assertEqual(source.get_age(), 36)

        save_snapshot(self.path, PortfolioSnapshot(age=50))
        self.assertEqual(source.get_age(), 36)
        source.reload()
        self.assertEqual(source.get_age(), 50)
        self.assertEqual(source.get_debts(), [])

    def test_bad_debt_type(self):
        self.path.write_text(json.dumps({"debts": [{"name": "Loan", "debt_type": "payday"}]}))
        with self.assertRaises(InvalidSnapshotError) as ctx:
            JsonSnapshotSource(self.path).load_snapshot()
        self.assertEqual(ctx.exception.field_name, "debts[0].debt_type")

    def test_bad_age_setting(self):
        self.path.write_text(json.dumps({"settings": {"age": "thirty"}}))
        with self.assertRaises(InvalidSnapshotError):
            JsonSnapshotSource(self.path).get_age()


if __name__ == '__main__':
    unittest.main()
