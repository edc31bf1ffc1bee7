"""Report export for Portfolio Insights."""

import json
from dataclasses import asdict
from enum import Enum
from typing import Any, Dict, Optional
from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter
from ..database.models import DebtPayoffPlan, InsightsReport


def _plain(value):
    """Replace enum members with their values, recursively."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value


def report_to_dict(report: InsightsReport) -> Dict[str, Any]:
    """JSON-serializable form of a report."""
    return _plain(asdict(report))


class ReportExporter:
    """Export an insights report to JSON or Excel."""

    METRIC_LABELS = [
        ('total_assets', "Total Assets", 'currency'),
        ('total_debts', "Total Debts", 'currency'),
        ('net_worth', "Net Worth", 'currency'),
        ('debt_to_asset_ratio', "Debt-to-Asset Ratio", 'percent'),
        ('weighted_avg_debt_rate', "Weighted Avg Debt Rate", 'rate'),
        ('monthly_debt_payments', "Monthly Debt Payments", 'currency'),
        ('high_interest_debt_total', "High-Interest Debt", 'currency'),
        ('good_debt_total', "Good Debt", 'currency'),
        ('bad_debt_total', "Bad Debt", 'currency'),
        ('good_debt_monthly', "Good Debt (monthly)", 'currency'),
        ('bad_debt_monthly', "Bad Debt (monthly)", 'currency'),
    ]

    SEVERITY_COLORS = {
        'critical': "F8CBAD",
        'warning': "FFE699",
        'info': "DDEBF7",
        'positive': "C6EFCE",
    }

    def __init__(self):
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
        self.header_alignment = Alignment(horizontal="center", vertical="center")
        self.currency_format = '"$"#,##0.00'
        self.percent_format = '0.00%'
        self.thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

    def export_json(self, filename: str, report: InsightsReport):
        """Write the report as a JSON document."""
        with open(filename, 'w') as f:
            json.dump(report_to_dict(report), f, indent=2)

    def export_excel(self, filename: str, report: InsightsReport):
        """Export the report to an Excel workbook."""
        wb = Workbook()

        self._create_summary_sheet(wb.active, report)
        wb.active.title = "Summary"

        insights_sheet = wb.create_sheet("Insights")
        self._create_insights_sheet(insights_sheet, report)

        payoff_sheet = wb.create_sheet("Payoff Plans")
        self._create_payoff_sheet(payoff_sheet, report)

        wb.save(filename)

    def export(self, filename: str, report: InsightsReport, fmt: Optional[str] = None):
        """Export in the given format, or pick it from the file extension."""
        if fmt is None:
            fmt = 'json' if str(filename).lower().endswith('.json') else 'xlsx'
        if fmt == 'json':
            self.export_json(filename, report)
        elif fmt == 'xlsx':
            self.export_excel(filename, report)
        else:
            raise ValueError(f"Unsupported export format: {fmt}")

    def _write_header(self, ws, row: int, headers):
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=row, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = self.header_alignment
            cell.border = self.thin_border

    def _create_summary_sheet(self, ws, report: InsightsReport):
        """Create the metrics summary sheet."""
        ws['A1'] = "Portfolio Insights"
        ws['A1'].font = Font(bold=True, size=16)
        ws.merge_cells('A1:C1')

        ws['A2'] = f"Generated: {report.generated_at}"
        ws['A2'].font = Font(italic=True, color="666666")
        ws.merge_cells('A2:C2')

        row = 4
        for key, label, kind in self.METRIC_LABELS:
            value = getattr(report.metrics, key)
            ws.cell(row=row, column=1, value=label).font = Font(bold=True)
            cell = ws.cell(row=row, column=2)
            if kind == 'currency':
                cell.value = value
                cell.number_format = self.currency_format
            elif kind == 'percent':
                cell.value = value
                cell.number_format = self.percent_format
            else:
                # Rates are stored in percent units
                cell.value = value / 100
                cell.number_format = self.percent_format
            row += 1

        ws.column_dimensions['A'].width = 25
        ws.column_dimensions['B'].width = 18

    def _create_insights_sheet(self, ws, report: InsightsReport):
        """Create the insights list sheet."""
        headers = ['#', 'Severity', 'Category', 'Title', 'Description', 'Impact']
        self._write_header(ws, 1, headers)

        for row, insight in enumerate(report.insights, 2):
            severity = insight.severity.value
            ws.cell(row=row, column=1, value=row - 1)
            severity_cell = ws.cell(row=row, column=2, value=severity)
            color = self.SEVERITY_COLORS.get(severity)
            if color:
                severity_cell.fill = PatternFill(start_color=color, end_color=color, fill_type="solid")
            ws.cell(row=row, column=3, value=insight.category.value)
            ws.cell(row=row, column=4, value=insight.title)
            ws.cell(row=row, column=5, value=insight.description).alignment = Alignment(wrap_text=True)
            ws.cell(row=row, column=6, value=insight.impact or '')

            for col in range(1, len(headers) + 1):
                ws.cell(row=row, column=col).border = self.thin_border

        column_widths = [5, 12, 18, 40, 80, 50]
        for i, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width

    def _create_payoff_sheet(self, ws, report: InsightsReport):
        """Create the avalanche/snowball comparison sheet."""
        ws['A1'] = "Debt Payoff Plans"
        ws['A1'].font = Font(bold=True, size=14)
        ws.merge_cells('A1:D1')

        if report.debt_payoff is None:
            ws['A3'] = "No debts to pay off."
            return

        row = 3
        for plan in (report.debt_payoff.avalanche, report.debt_payoff.snowball):
            row = self._write_plan(ws, row, plan) + 1

        column_widths = [6, 30, 15, 10, 15]
        for i, width in enumerate(column_widths, 1):
            ws.column_dimensions[get_column_letter(i)].width = width

    def _write_plan(self, ws, row: int, plan: DebtPayoffPlan) -> int:
        ws.cell(row=row, column=1, value=plan.method.value.title()).font = Font(bold=True, size=12)
        row += 1
        ws.cell(row=row, column=1, value="Months to payoff")
        ws.cell(row=row, column=2, value=plan.months_to_payoff)
        row += 1
        ws.cell(row=row, column=1, value="Debt-free by")
        ws.cell(row=row, column=2, value=plan.payoff_date or '')
        row += 1
        ws.cell(row=row, column=1, value="Monthly minimum")
        ws.cell(row=row, column=2, value=plan.total_monthly_minimum).number_format = self.currency_format
        row += 1

        self._write_header(ws, row, ['Order', 'Debt', 'Balance', 'Rate', 'Minimum'])
        row += 1
        for position, item in enumerate(plan.order, 1):
            ws.cell(row=row, column=1, value=position)
            ws.cell(row=row, column=2, value=item.name)
            ws.cell(row=row, column=3, value=item.balance).number_format = self.currency_format
            ws.cell(row=row, column=4, value=item.rate / 100).number_format = self.percent_format
            ws.cell(row=row, column=5, value=item.minimum_payment).number_format = self.currency_format
            row += 1
        return row
