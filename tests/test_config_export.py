import io
import json
import tempfile
import unittest
from contextlib import redirect_stdout
from datetime import datetime, timezone
from pathlib import Path

from openpyxl import load_workbook

import main
from portfolio_insights.database.json_store import save_snapshot
from portfolio_insights.database.models import (
    DebtLiability, DebtType, PortfolioSnapshot, RetirementAccount,
)
from portfolio_insights.services.insights_engine import generate_insights_report
from portfolio_insights.utils.config import Config
from portfolio_insights.utils.export import ReportExporter, report_to_dict
from portfolio_insights.utils.formatters import format_percent, format_rate, format_usd

NOW = datetime(2026, 1, 15, tzinfo=timezone.utc)

DEBTS = [
    DebtLiability("Visa", DebtType.CREDIT_CARD, current_balance=4000, interest_rate=22.9,
                  minimum_payment=120),
    DebtLiability("Car", DebtType.AUTO_LOAN, current_balance=12000, interest_rate=6.5,
                  minimum_payment=350),
]


class TestConfig(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.path = Path(self.tmp.name) / "config.json"

    def tearDown(self):
        self.tmp.cleanup()

    def test_defaults_when_missing(self):
        config = Config(self.path)
        self.assertEqual(config.get('store'), 'sqlite')
        self.assertIsNone(config.get('age'))
        self.assertEqual(config.get('missing', 'fallback'), 'fallback')

    def test_file_overrides_defaults(self):
        self.path.write_text(json.dumps({'store': 'json', 'age': 41}))
        config = Config(self.path)
        self.assertEqual(config.get('store'), 'json')
        self.assertEqual(config.get('age'), 41)
        self.assertEqual(config.get('log_level'), 'WARNING')

    def test_unreadable_file_falls_back(self):
        self.path.write_text("{not json")
        with self.assertLogs('portfolio_insights.utils.config', level='WARNING'):
            config = Config(self.path)
        self.assertEqual(config.get_all(), Config.DEFAULT_CONFIG)

    def test_save_and_reload(self):
        config = Config(self.path)
        config.set('age', 33)
        config.save()
        self.assertEqual(Config(self.path).get('age'), 33)

    def test_store_paths_resolve_beside_config(self):
        config = Config(self.path)
        self.assertEqual(config.store_path('sqlite'), Path(self.tmp.name) / "portfolio.db")
        self.assertEqual(config.store_path('json'), Path(self.tmp.name) / "portfolio.json")
        config.set('json_path', '/data/mine.json')
        self.assertEqual(config.store_path('json'), Path('/data/mine.json'))

    def test_export_format(self):
        config = Config(self.path)
        self.assertEqual(config.export_format_for(Path("out.json")), 'json')
        self.assertEqual(config.export_format_for(Path("out.XLSX")), 'xlsx')
        self.assertEqual(config.export_format_for(Path("out")), 'xlsx')
        config.set('export_format', 'json')
        self.assertEqual(config.export_format_for(Path("out.txt")), 'json')

    def test_unsupported_export_format_warns(self):
        config = Config(self.path)
        config.set('export_format', 'csv')
        with self.assertLogs('portfolio_insights.utils.config', level='WARNING'):
            self.assertEqual(config.export_format_for(Path("out")), 'xlsx')
        self.assertEqual(config.export_format_for(Path("out.json")), 'json')


class TestFormatters(unittest.TestCase):

    def test_usd(self):
        self.assertEqual(format_usd(1234.6), "$1,235")
        self.assertEqual(format_usd(-1234.6), "-$1,235")
        self.assertEqual(format_usd(0), "$0")

    def test_rates(self):
        self.assertEqual(format_rate(24.99), "24.99%")
        self.assertEqual(format_rate(6), "6%")
        self.assertEqual(format_percent(12.345), "12.3%")


class TestReportExport(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.report = generate_insights_report(debts=DEBTS, age=30, now=NOW)

    def tearDown(self):
        self.tmp.cleanup()

    def test_dict_uses_plain_values(self):
        data = report_to_dict(self.report)
        self.assertEqual(data['generated_at'], NOW.isoformat())
        self.assertEqual(data['debt_payoff']['avalanche']['method'], 'avalanche')
        for insight in data['insights']:
            self.assertIsInstance(insight['severity'], str)
            self.assertIsInstance(insight['category'], str)
        json.dumps(data)

    def test_export_json(self):
        output = self.dir / "report.json"
        ReportExporter().export(str(output), self.report)
        data = json.loads(output.read_text())
        self.assertEqual(data['metrics']['total_debts'], 16000)
        self.assertEqual(len(data['insights']), len(self.report.insights))

    def test_export_excel(self):
        output = self.dir / "report.xlsx"
        ReportExporter().export(str(output), self.report)
        wb = load_workbook(output)
        self.assertEqual(wb.sheetnames, ["Summary", "Insights", "Payoff Plans"])
        self.assertEqual(wb["Summary"]["A4"].value, "Total Assets")
        self.assertEqual(wb["Insights"].max_row, len(self.report.insights) + 1)
        self.assertEqual(wb["Payoff Plans"]["A3"].value, "Avalanche")

    def test_export_excel_without_debts(self):
        output = self.dir / "empty.xlsx"
        report = generate_insights_report(retirement=[RetirementAccount("IRA", balance=1000)],
                                          now=NOW)
        ReportExporter().export_excel(str(output), report)
        wb = load_workbook(output)
        self.assertEqual(wb["Payoff Plans"]["A3"].value, "No debts to pay off.")


class TestCommandLine(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = Path(self.tmp.name)
        self.config = self.dir / "config.json"
        self.document = self.dir / "portfolio.json"
        save_snapshot(self.document, PortfolioSnapshot(debts=tuple(DEBTS), age=30))

    def tearDown(self):
        self.tmp.cleanup()

    def run_cli(self, *args):
        out = io.StringIO()
        with redirect_stdout(out):
            code = main.main(['--config', str(self.config), '--store', 'json',
                              '--path', str(self.document)] + list(args))
        return code, out.getvalue()

    def test_report_prints_json(self):
        code, output = self.run_cli('report')
        self.assertEqual(code, 0)
        data = json.loads(output)
        self.assertEqual(data['metrics']['total_debts'], 16000)
        self.assertIsNotNone(data['debt_payoff'])

    def test_export_writes_workbook(self):
        output = self.dir / "out.xlsx"
        code, _ = self.run_cli('export', str(output))
        self.assertEqual(code, 0)
        self.assertTrue(output.exists())

    def test_export_uses_configured_format(self):
        self.config.write_text(json.dumps({'export_format': 'json'}))
        output = self.dir / "report"
        code, _ = self.run_cli('export', str(output))
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(output.read_text())['metrics']['total_debts'], 16000)

    def test_unsupported_configured_format_falls_back_to_excel(self):
        self.config.write_text(json.dumps({'export_format': 'csv'}))
        output = self.dir / "out"
        code, _ = self.run_cli('export', str(output))
        self.assertEqual(code, 0)
        self.assertEqual(load_workbook(output).sheetnames, ["Summary", "Insights", "Payoff Plans"])

    def test_corrupt_store_exits_nonzero(self):
        self.document.write_text("{not json")
        code, output = self.run_cli('report')
        self.assertEqual(code, 1)
        self.assertEqual(output, "")

    def test_malformed_settings_exit_nonzero(self):
        self.document.write_text(json.dumps({"settings": "34"}))
        code, _ = self.run_cli('report')
        self.assertEqual(code, 1)

    def test_unknown_export_format(self):
        with self.assertRaises(ValueError):
            ReportExporter().export(str(self.dir / "report.csv"), generate_insights_report(now=NOW),
                                    'csv')

    def test_invalid_data_exits_nonzero(self):
        self.document.write_text(json.dumps({"debts": [{"name": "Card", "current_balance": -5}]}))
        code, output = self.run_cli('report')
        self.assertEqual(code, 1)
        self.assertEqual(output, "")

    def test_missing_database_exits_nonzero(self):
        missing = self.dir / "missing.db"
        out = io.StringIO()
        with redirect_stdout(out):
            code = main.main(['--config', str(self.config), '--store', 'sqlite',
                              '--path', str(missing), 'report'])
        self.assertEqual(code, 1)
        self.assertFalse(missing.exists())

    def test_missing_document_exits_nonzero(self):
        self.document.unlink()
        code, _ = self.run_cli('report')
        self.assertEqual(code, 1)


if __name__ == '__main__':
    unittest.main()
