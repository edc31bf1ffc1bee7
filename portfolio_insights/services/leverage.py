"""Leverage analysis: investment returns compared with debt interest."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from ..database.models import CryptoHolding, DebtLiability, DebtType, StockHolding
from .validation import as_utc, parse_timestamp

SECONDS_PER_YEAR = 365.25 * 24 * 60 * 60


@dataclass(frozen=True)
class LeverageAnalysis:
    """Annualized stock return and the debts that cost more than it earns."""
    total_gain: float = 0.0
    total_cost_basis: float = 0.0
    holding_years: float = 1.0
    annualized_return_pct: float = 0.0
    debts_above_return: Tuple[DebtLiability, ...] = ()
    credit_card_debts: Tuple[DebtLiability, ...] = ()

    @property
    def total_return_pct(self) -> float:
        if self.total_cost_basis <= 0:
            return 0.0
        return self.total_gain / self.total_cost_basis * 100

    @property
    def credit_card_total(self) -> float:
        return sum(d.current_balance for d in self.credit_card_debts)

    @property
    def credit_card_avg_rate(self) -> float:
        """Balance-weighted APR across open credit cards."""
        total = self.credit_card_total
        if total <= 0:
            return 0.0
        return sum(d.interest_rate * d.current_balance for d in self.credit_card_debts) / total


def holding_period_years(stocks: Sequence[StockHolding], now: datetime) -> float:
    """Years since the oldest stock was added, never less than one."""
    now = as_utc(now)
    oldest = now
    for stock in stocks:
        if stock.created_at is None:
            continue
        created = parse_timestamp(stock.created_at)
        if created < oldest:
            oldest = created
    return max((now - oldest).total_seconds() / SECONDS_PER_YEAR, 1.0)


def annualized_return(total_gain: float, total_cost_basis: float, years: float) -> float:
    """Compound annual growth rate, in percent, implied by a total gain."""
    if total_cost_basis <= 0:
        return 0.0
    growth = 1 + total_gain / total_cost_basis
    if growth <= 0:
        return -100.0
    return (growth ** (1 / years) - 1) * 100


def analyze_leverage(stocks: Sequence[StockHolding],
                     crypto: Sequence[CryptoHolding],
                     debts: Sequence[DebtLiability],
                     now: Optional[datetime] = None) -> LeverageAnalysis:
    """Compare the annualized stock return against each debt's rate.

    Debts are flagged as costing more than the portfolio earns only when the
    return is positive. Open credit card balances are flagged whenever stocks
    or crypto are held, regardless of returns.
    """
    if now is None:
        now = datetime.now(timezone.utc)
    now = as_utc(now)

    total_gain = sum(s.gain_loss for s in stocks)
    total_cost_basis = sum(s.total_cost for s in stocks)
    years = holding_period_years(stocks, now)
    return_pct = annualized_return(total_gain, total_cost_basis, years)

    above_return = ()
    if debts and return_pct > 0:
        above_return = tuple(d for d in debts if d.interest_rate > return_pct)

    holds_investments = (sum(s.current_value for s in stocks) > 0
                         or sum(c.current_value for c in crypto) > 0)
    credit_cards = ()
    if holds_investments:
        credit_cards = tuple(
            d for d in debts
            if d.debt_type == DebtType.CREDIT_CARD and d.current_balance > 0
        )

    return LeverageAnalysis(
        total_gain=total_gain,
        total_cost_basis=total_cost_basis,
        holding_years=years,
        annualized_return_pct=return_pct,
        debts_above_return=above_return,
        credit_card_debts=credit_cards,
    )
