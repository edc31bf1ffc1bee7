"""Insights report assembly.

Ties the aggregator, leverage analyzer, rule engine and payoff simulator
together into a single report. Every call works on its own copies of the
inputs, so concurrent callers never share state.
"""

import logging
from dataclasses import replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta

from ..database.models import (
    CryptoHolding, DebtLiability, DebtPayoffPlan, InsightsReport, PayoffComparison,
    PayoffItem, PayoffMethod, PortfolioSnapshot, RealEstateHolding, RetirementAccount,
    StockHolding,
)
from .aggregator import compute_totals
from .insight_rules import RuleContext, evaluate_rules
from .leverage import analyze_leverage
from .payoff_simulator import simulate_payoff
from .snapshot_source import SnapshotSource
from .validation import as_utc, validate_snapshot

logger = logging.getLogger(__name__)


def avalanche_order(items: Sequence[PayoffItem]) -> list:
    """Highest interest rate first."""
    return sorted(items, key=lambda x: x.rate, reverse=True)


def snowball_order(items: Sequence[PayoffItem]) -> list:
    """Smallest balance first."""
    return sorted(items, key=lambda x: x.balance)


def _build_plan(method: PayoffMethod, order: list, total_minimum: float,
                now: datetime) -> DebtPayoffPlan:
    simulation = simulate_payoff(order, total_minimum)
    payoff_date = ""
    if simulation.months > 0:
        payoff_date = (now + relativedelta(months=simulation.months)).strftime('%Y-%m')
    return DebtPayoffPlan(
        method=method,
        order=tuple(order),
        total_monthly_minimum=total_minimum,
        months_to_payoff=simulation.months,
        payoff_date=payoff_date,
        total_interest=simulation.total_interest,
    )


def build_payoff_plans(debts: Sequence[DebtLiability],
                       now: Optional[datetime] = None) -> Optional[PayoffComparison]:
    """Avalanche and snowball plans for the same debts and the same budget."""
    if not debts:
        return None
    if now is None:
        now = datetime.now(timezone.utc)
    now = as_utc(now)

    items = [
        PayoffItem(
            name=d.name,
            balance=d.current_balance,
            rate=d.interest_rate,
            minimum_payment=d.minimum_payment,
        )
        for d in debts
    ]
    total_minimum = sum(i.minimum_payment for i in items)

    return PayoffComparison(
        avalanche=_build_plan(PayoffMethod.AVALANCHE, avalanche_order(items), total_minimum, now),
        snowball=_build_plan(PayoffMethod.SNOWBALL, snowball_order(items), total_minimum, now),
    )


def generate_report(snapshot: PortfolioSnapshot,
                    now: Optional[datetime] = None) -> InsightsReport:
    """Generate the insights report for a validated snapshot."""
    if now is None:
        now = datetime.now(timezone.utc)
    now = as_utc(now)

    validate_snapshot(snapshot)
    totals = compute_totals(snapshot)
    leverage = analyze_leverage(snapshot.stocks, snapshot.crypto, snapshot.debts, now=now)
    insights = evaluate_rules(RuleContext(snapshot=snapshot, totals=totals, leverage=leverage))
    debt_payoff = build_payoff_plans(snapshot.debts, now=now)

    logger.debug("Generated %d insights for %d debts", len(insights), len(snapshot.debts))

    return InsightsReport(
        generated_at=now.isoformat(),
        insights=tuple(insights),
        debt_payoff=debt_payoff,
        metrics=totals.metrics,
    )


def generate_insights_report(real_estate: Sequence[RealEstateHolding] = (),
                             stocks: Sequence[StockHolding] = (),
                             crypto: Sequence[CryptoHolding] = (),
                             retirement: Sequence[RetirementAccount] = (),
                             debts: Sequence[DebtLiability] = (),
                             age: Optional[int] = None,
                             now: Optional[datetime] = None) -> InsightsReport:
    """Analyze a portfolio and return insights, payoff plans and metrics."""
    snapshot = PortfolioSnapshot(
        real_estate=tuple(real_estate),
        stocks=tuple(stocks),
        crypto=tuple(crypto),
        retirement=tuple(retirement),
        debts=tuple(debts),
        age=age,
    )
    return generate_report(snapshot, now=now)


def generate_report_from_source(source: SnapshotSource,
                                age: Optional[int] = None,
                                now: Optional[datetime] = None) -> InsightsReport:
    """Load a snapshot from a storage backend and report on it.

    An explicit age overrides the age stored in the backend's settings.
    """
    snapshot = source.load_snapshot()
    if age is not None:
        snapshot = replace(snapshot, age=age)
    return generate_report(snapshot, now=now)
