"""Month-by-month multi-debt amortization.

The simulator knows nothing about avalanche or snowball. It pays minimums in
the order it is given and sends whatever budget is left to the first debt
that still has a balance, so the strategy is decided entirely by how the
caller sorts the debts.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..database.models import PayoffItem

logger = logging.getLogger(__name__)

MAX_MONTHS = 600  # Cap at 50 years
PAYOFF_EPSILON = 0.01


@dataclass
class PayoffSimulation:
    """Outcome of one simulated payoff run."""
    months: int = 0
    total_interest: float = 0.0
    capped: bool = False
    projections: List[Dict[str, float]] = field(default_factory=list)


def simulate_payoff(debts: Sequence[PayoffItem], total_monthly_budget: float) -> PayoffSimulation:
    """Simulate paying down debts in priority order with a fixed monthly budget."""
    if not debts or total_monthly_budget <= 0:
        return PayoffSimulation()

    balances = [d.balance for d in debts]
    rates = [(d.rate / 100) / 12 for d in debts]
    mins = [d.minimum_payment for d in debts]

    result = PayoffSimulation()

    while result.months < MAX_MONTHS:
        if sum(max(b, 0.0) for b in balances) <= PAYOFF_EPSILON:
            break

        result.months += 1

        # Apply interest to all active debts
        for i in range(len(balances)):
            if balances[i] > 0:
                interest = balances[i] * rates[i]
                result.total_interest += interest
                balances[i] += interest

        budget = total_monthly_budget

        # Make minimum payments in priority order
        for i in range(len(balances)):
            if balances[i] <= 0:
                continue
            payment = min(mins[i], balances[i], budget)
            balances[i] -= payment
            budget -= payment

        # Apply extra to the first unpaid debt only
        if budget > 0:
            for i in range(len(balances)):
                if balances[i] <= 0:
                    continue
                extra = min(balances[i], budget)
                balances[i] -= extra
                budget -= extra
                break

        result.projections.append({
            'month': result.months,
            'total_debt': sum(max(b, 0.0) for b in balances),
        })

    if result.months >= MAX_MONTHS and sum(max(b, 0.0) for b in balances) > PAYOFF_EPSILON:
        result.capped = True
        logger.debug("Payoff simulation hit the %d month cap", MAX_MONTHS)

    return result


def estimate_payoff_months(debts: Sequence[PayoffItem], total_monthly_budget: float) -> int:
    """Months until every debt is paid off; 0 when there is nothing to simulate."""
    return simulate_payoff(debts, total_monthly_budget).months
