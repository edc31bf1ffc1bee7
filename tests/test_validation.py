import math
import unittest

from portfolio_insights.database.models import (
    DebtLiability, DebtType, PortfolioSnapshot, RealEstateHolding, StockHolding,
)
from portfolio_insights.services.validation import (
    InvalidSnapshotError, coerce_debt_type, validate_snapshot,
)


class TestValidation(unittest.TestCase):

    def assertRejects(self, snapshot, field_name):
        with self.assertRaises(InvalidSnapshotError) as ctx:
            validate_snapshot(snapshot)
        self.assertEqual(ctx.exception.field_name, field_name)

    def test_valid_snapshot_passes_through(self):
        snapshot = PortfolioSnapshot(
            stocks=(StockHolding("Fund", "VTI", shares=3, cost_basis_per_share=200,
                                 created_at="2024-03-01T12:00:00Z"),),
            debts=(DebtLiability("Card", DebtType.CREDIT_CARD, current_balance=100,
                                 interest_rate=20, minimum_payment=25),),
            age=40,
        )
        self.assertIs(validate_snapshot(snapshot), snapshot)

    def test_negative_amount(self):
        snapshot = PortfolioSnapshot(
            real_estate=(RealEstateHolding("Home", estimated_value=100, mortgage_balance=-1),),
        )
        self.assertRejects(snapshot, "real_estate[0].mortgage_balance")

    def test_non_finite_amount(self):
        snapshot = PortfolioSnapshot(
            stocks=(StockHolding("Fund", "VTI", shares=1, cost_basis_per_share=10,
                                 current_price=math.nan),),
        )
        self.assertRejects(snapshot, "stocks[0].current_price")

    def test_non_numeric_amount(self):
        snapshot = PortfolioSnapshot(
            debts=(DebtLiability("Card", DebtType.CREDIT_CARD, current_balance="100"),),
        )
        self.assertRejects(snapshot, "debts[0].current_balance")

    def test_bad_timestamp(self):
        snapshot = PortfolioSnapshot(
            stocks=(StockHolding("Fund", "VTI", shares=1, cost_basis_per_share=10,
                                 created_at="not a date"),),
        )
        self.assertRejects(snapshot, "stocks[0].created_at")

    def test_unknown_debt_type(self):
        snapshot = PortfolioSnapshot(debts=(DebtLiability("Loan", "payday"),))
        self.assertRejects(snapshot, "debts[0].debt_type")

    def test_bad_age(self):
        self.assertRejects(PortfolioSnapshot(age=-3), "age")
        self.assertRejects(PortfolioSnapshot(age="30"), "age")

    def test_coerce_debt_type(self):
        self.assertEqual(coerce_debt_type('student_loan'), DebtType.STUDENT_LOAN)
        self.assertEqual(coerce_debt_type(DebtType.MEDICAL), DebtType.MEDICAL)
        with self.assertRaises(InvalidSnapshotError):
            coerce_debt_type('loan_shark')

    def test_error_message_names_field(self):
        error = InvalidSnapshotError("debts[1].interest_rate", -4, "must not be negative")
        self.assertIn("debts[1].interest_rate", str(error))
        self.assertIsInstance(error, ValueError)


if __name__ == '__main__':
    unittest.main()
