"""Portfolio aggregation: reduce a snapshot into scalar totals."""

from dataclasses import dataclass
from ..database.models import DebtLiability, DebtType, PortfolioMetrics, PortfolioSnapshot

# Mortgage rates are not tracked, so every mortgage balance is weighted at
# this annual rate when computing the average cost of debt.
MORTGAGE_RATE_PLACEHOLDER = 6.0

HIGH_INTEREST_THRESHOLD = 10.0
GOOD_STUDENT_LOAN_MAX_RATE = 7.0


def is_good_debt(debt_type: DebtType, interest_rate: float) -> bool:
    """Mortgages and low-rate student loans are good debt; everything else is bad."""
    if debt_type == DebtType.MORTGAGE:
        return True
    if debt_type == DebtType.STUDENT_LOAN and interest_rate <= GOOD_STUDENT_LOAN_MAX_RATE:
        return True
    return False


def classify_debt(debt: DebtLiability) -> str:
    return 'good' if is_good_debt(debt.debt_type, debt.interest_rate) else 'bad'


@dataclass(frozen=True)
class PortfolioTotals:
    """Every total the insight rules consume."""
    total_real_estate_equity: float = 0.0
    total_stocks: float = 0.0
    total_crypto: float = 0.0
    total_retirement: float = 0.0
    total_assets: float = 0.0
    total_debts_only: float = 0.0
    total_mortgage_balances: float = 0.0
    monthly_mortgage_payments: float = 0.0
    total_all_obligations: float = 0.0
    net_worth: float = 0.0
    debt_to_asset_ratio: float = 0.0
    weighted_avg_debt_rate: float = 0.0
    monthly_debt_payments: float = 0.0
    high_interest_debt_total: float = 0.0
    good_debt_total: float = 0.0
    bad_debt_total: float = 0.0
    good_debt_monthly: float = 0.0
    bad_debt_monthly: float = 0.0

    @property
    def total_investable(self) -> float:
        """Stocks, crypto and retirement balances."""
        return self.total_stocks + self.total_crypto + self.total_retirement

    @property
    def metrics(self) -> PortfolioMetrics:
        return PortfolioMetrics(
            total_assets=self.total_assets,
            total_debts=self.total_debts_only,
            net_worth=self.net_worth,
            debt_to_asset_ratio=self.debt_to_asset_ratio,
            weighted_avg_debt_rate=self.weighted_avg_debt_rate,
            monthly_debt_payments=self.monthly_debt_payments,
            high_interest_debt_total=self.high_interest_debt_total,
            good_debt_total=self.good_debt_total,
            bad_debt_total=self.bad_debt_total,
            good_debt_monthly=self.good_debt_monthly,
            bad_debt_monthly=self.bad_debt_monthly,
        )


def compute_totals(snapshot: PortfolioSnapshot) -> PortfolioTotals:
    """Compute asset, debt and classification totals for a snapshot.

    Mortgages are netted into real estate equity, so net worth subtracts the
    debts table only. Mortgage balances still count toward total obligations
    for the debt-to-asset ratio and are always good debt.
    """
    equity = sum(p.equity for p in snapshot.real_estate)
    stocks = sum(s.current_value for s in snapshot.stocks)
    crypto = sum(c.current_value for c in snapshot.crypto)
    retirement = sum(r.balance for r in snapshot.retirement)
    total_assets = equity + stocks + crypto + retirement

    mortgage_balances = sum(p.mortgage_balance for p in snapshot.real_estate)
    mortgage_payments = sum(p.monthly_mortgage_payment or 0.0 for p in snapshot.real_estate)

    debts = snapshot.debts
    debts_only = sum(d.current_balance for d in debts)
    all_obligations = debts_only + mortgage_balances

    good = [d for d in debts if is_good_debt(d.debt_type, d.interest_rate)]
    bad = [d for d in debts if not is_good_debt(d.debt_type, d.interest_rate)]

    weighted_sum = sum(d.interest_rate * d.current_balance for d in debts)
    weighted_sum += mortgage_balances * MORTGAGE_RATE_PLACEHOLDER
    weighted_avg_rate = weighted_sum / all_obligations if all_obligations > 0 else 0.0

    return PortfolioTotals(
        total_real_estate_equity=equity,
        total_stocks=stocks,
        total_crypto=crypto,
        total_retirement=retirement,
        total_assets=total_assets,
        total_debts_only=debts_only,
        total_mortgage_balances=mortgage_balances,
        monthly_mortgage_payments=mortgage_payments,
        total_all_obligations=all_obligations,
        net_worth=total_assets - debts_only,
        debt_to_asset_ratio=all_obligations / total_assets if total_assets > 0 else 0.0,
        weighted_avg_debt_rate=weighted_avg_rate,
        monthly_debt_payments=sum(d.effective_monthly_payment for d in debts) + mortgage_payments,
        high_interest_debt_total=sum(
            d.current_balance for d in debts if d.interest_rate >= HIGH_INTEREST_THRESHOLD
        ),
        good_debt_total=sum(d.current_balance for d in good) + mortgage_balances,
        bad_debt_total=sum(d.current_balance for d in bad),
        good_debt_monthly=sum(d.effective_monthly_payment for d in good) + mortgage_payments,
        bad_debt_monthly=sum(d.effective_monthly_payment for d in bad),
    )


def compute_metrics(snapshot: PortfolioSnapshot) -> PortfolioMetrics:
    """Public metrics block for a snapshot."""
    return compute_totals(snapshot).metrics
