"""Threshold rules that turn portfolio totals into insights.

Each rule is a plain function of a RuleContext that returns one Insight or
None. Rules never depend on one another; RULES only fixes the order in which
their output appears in a report.
"""

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

from ..database.models import Insight, InsightCategory, PortfolioSnapshot, Severity
from ..utils.formatters import format_rate, format_usd
from .aggregator import HIGH_INTEREST_THRESHOLD, PortfolioTotals
from .leverage import LeverageAnalysis

RETIREMENT_AGE = 65

# Debt-to-asset bands (upper bound exclusive) and their severities
DEBT_RATIO_BANDS = (
    (0.2, Severity.POSITIVE),
    (0.4, Severity.INFO),
    (0.6, Severity.WARNING),
)


@dataclass(frozen=True)
class RuleContext:
    """Inputs shared by every rule."""
    snapshot: PortfolioSnapshot
    totals: PortfolioTotals
    leverage: LeverageAnalysis

    @property
    def has_debts(self) -> bool:
        return len(self.snapshot.debts) > 0

    @property
    def crypto_pct(self) -> float:
        """Crypto as a percentage of investable assets."""
        investable = self.totals.total_investable
        return self.totals.total_crypto / investable * 100 if investable > 0 else 0.0

    @property
    def stocks_pct(self) -> float:
        investable = self.totals.total_investable
        return self.totals.total_stocks / investable * 100 if investable > 0 else 0.0


def _insight(category: InsightCategory, severity: Severity, title: str,
             description: str, impact: Optional[str] = None) -> Insight:
    return Insight(id='', category=category, severity=severity, title=title,
                   description=description, impact=impact)


def _debt_list(debts) -> str:
    return ', '.join(f"{d.name} ({format_rate(d.interest_rate)})" for d in debts)


# ==================== DEBT ====================

def good_vs_bad_debt(ctx: RuleContext) -> Optional[Insight]:
    """Split of obligations into good and bad debt."""
    t = ctx.totals
    if t.total_all_obligations <= 0:
        return None

    bad, good = t.bad_debt_total, t.good_debt_total
    if bad > 0 and good > 0:
        return _insight(
            InsightCategory.DEBT_PAYOFF,
            Severity.WARNING if bad > good else Severity.INFO,
            f"{format_usd(bad)} bad debt vs {format_usd(good)} good debt",
            f"Bad debt (credit cards, personal loans, high-rate): {format_usd(bad)} costing "
            f"{format_usd(t.bad_debt_monthly)}/mo. Good debt (mortgages, low-rate student loans): "
            f"{format_usd(good)} costing {format_usd(t.good_debt_monthly)}/mo. Focus on eliminating "
            f"bad debt first. Good debt builds equity or is tax-advantaged.",
        )
    if bad > 0:
        return _insight(
            InsightCategory.DEBT_PAYOFF,
            Severity.WARNING,
            f"All {format_usd(bad)} of your debt is high-cost",
            f"You have {format_usd(bad)} in bad debt costing {format_usd(t.bad_debt_monthly)}/mo. "
            f"Prioritize paying this off aggressively before investing.",
        )
    if good > 0:
        return _insight(
            InsightCategory.DEBT_PAYOFF,
            Severity.POSITIVE,
            "Only good debt, no high-cost liabilities",
            f"Your {format_usd(good)} in debt is all low-rate mortgages/student loans "
            f"({format_usd(t.good_debt_monthly)}/mo). This debt builds equity or is tax-advantaged. "
            f"No need to aggressively pay it off; investing likely earns more.",
        )
    return None


def high_interest_debt(ctx: RuleContext) -> Optional[Insight]:
    """Debts at or above the high-interest threshold."""
    t = ctx.totals
    if not ctx.has_debts or t.high_interest_debt_total <= 0:
        return None

    high_rate = [d for d in ctx.snapshot.debts if d.interest_rate >= HIGH_INTEREST_THRESHOLD]
    monthly_cost = t.high_interest_debt_total * t.weighted_avg_debt_rate / 100 / 12
    critical = t.high_interest_debt_total > t.total_assets * 0.1
    return _insight(
        InsightCategory.DEBT_PAYOFF,
        Severity.CRITICAL if critical else Severity.WARNING,
        "High-interest debt detected",
        f"You have {format_usd(t.high_interest_debt_total)} in high-interest debt (10%+): "
        f"{_debt_list(high_rate)}. These debts cost you ~{format_usd(monthly_cost)}/month "
        f"in interest alone.",
        impact="Paying these off first (avalanche method) saves the most money over time.",
    )


def minimum_payments_only(ctx: RuleContext) -> Optional[Insight]:
    """Debts whose actual payment is within 5% of the minimum."""
    if not ctx.has_debts:
        return None
    min_only = [
        d for d in ctx.snapshot.debts
        if d.monthly_payment and d.monthly_payment <= d.minimum_payment * 1.05
    ]
    if not min_only:
        return None
    return _insight(
        InsightCategory.CASH_FLOW,
        Severity.WARNING,
        "Paying only minimums on some debts",
        f"{', '.join(d.name for d in min_only)}: paying only the minimum extends repayment "
        f"time significantly and maximizes interest paid.",
        impact="Even $50-100 extra/month on the highest-rate debt can save hundreds in interest.",
    )


def annual_interest_cost(ctx: RuleContext) -> Optional[Insight]:
    if not ctx.has_debts:
        return None
    annual = sum(d.annual_interest for d in ctx.snapshot.debts)
    if annual <= 0:
        return None
    return _insight(
        InsightCategory.DEBT_PAYOFF,
        Severity.WARNING if annual > 2000 else Severity.INFO,
        f"Paying ~{format_usd(annual)}/year in interest",
        f"Your debts cost approximately {format_usd(annual)} per year "
        f"({format_usd(annual / 12)}/month) in interest charges. Eliminating high-rate debts "
        f"first reduces this fastest.",
    )


# ==================== LEVERAGE ====================

def debt_exceeds_returns(ctx: RuleContext) -> Optional[Insight]:
    """Debts charging more than the annualized portfolio return."""
    above = ctx.leverage.debts_above_return
    if not above:
        return None
    top_rate = format_rate(above[0].interest_rate)
    return _insight(
        InsightCategory.LEVERAGE,
        Severity.WARNING,
        "Debt interest exceeds investment returns",
        f"Your annualized portfolio return is ~{ctx.leverage.annualized_return_pct:.1f}%, but "
        f"{_debt_list(above)} charge more than that. Paying off these debts gives a guaranteed "
        f"\"return\" equal to their interest rate.",
        impact=f"Every dollar put toward a {top_rate} debt is like earning {top_rate} risk-free.",
    )


def credit_card_while_investing(ctx: RuleContext) -> Optional[Insight]:
    lev = ctx.leverage
    if not lev.credit_card_debts:
        return None
    avg_rate = lev.credit_card_avg_rate
    return _insight(
        InsightCategory.LEVERAGE,
        Severity.CRITICAL,
        "Credit card debt while investing",
        f"You have {format_usd(lev.credit_card_total)} in credit card debt at ~{avg_rate:.1f}% APR "
        f"while holding investments. No investment reliably beats {avg_rate:.0f}% guaranteed "
        f"returns from paying off credit cards.",
        impact="Consider pausing new investments until credit card debt is eliminated.",
    )


# ==================== PORTFOLIO HEALTH ====================

def debt_ratio_severity(ratio: float) -> Severity:
    """Severity tier for a debt-to-asset ratio (fraction, not percent)."""
    for upper, severity in DEBT_RATIO_BANDS:
        if ratio < upper:
            return severity
    return Severity.CRITICAL


_DEBT_RATIO_ADVICE = {
    Severity.POSITIVE: "This is excellent: you have strong equity relative to debt. Even aggressive "
                       "investors typically aim for under 30-40%, so you have plenty of room to "
                       "leverage if desired.",
    Severity.INFO: "For an aggressive investor, this is a comfortable range (under 40%). You're "
                   "using leverage without overextending. Focus on keeping bad debt near zero and "
                   "only carrying debt that builds wealth.",
    Severity.WARNING: "This is getting elevated. Aggressive investors can tolerate up to 40-50% if "
                      "it's mostly good debt, but above that you're exposed to market downturns "
                      "wiping out equity. Reduce bad debt before taking on more.",
    Severity.CRITICAL: "This is high even for aggressive investors. Above 60%, a market correction "
                       "could put you underwater. Prioritize paying down high-interest debt "
                       "immediately.",
}


def debt_to_asset_ratio(ctx: RuleContext) -> Optional[Insight]:
    ratio = ctx.totals.debt_to_asset_ratio
    if ratio <= 0:
        return None
    severity = debt_ratio_severity(ratio)
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        severity,
        f"Debt-to-asset ratio: {ratio * 100:.1f}%",
        f"Your debt-to-asset ratio is {ratio * 100:.1f}%. {_DEBT_RATIO_ADVICE[severity]}",
    )


def crypto_concentration(ctx: RuleContext) -> Optional[Insight]:
    pct = ctx.crypto_pct
    if pct <= 30:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.WARNING,
        f"Crypto is {pct:.0f}% of investable assets",
        f"Having {pct:.0f}% in crypto is high-risk concentration. Consider rebalancing; most "
        f"advisors suggest keeping volatile assets under 10-20% of your portfolio.",
    )


def stock_concentration(ctx: RuleContext) -> Optional[Insight]:
    pct = ctx.stocks_pct
    if pct <= 80:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.INFO,
        f"Stocks are {pct:.0f}% of investable assets",
        "Heavy stock concentration. Consider diversifying across asset classes (bonds, real "
        "estate, international) to reduce volatility.",
    )


def emergency_buffer(ctx: RuleContext) -> Optional[Insight]:
    """Liquid assets measured against a rough monthly expense estimate."""
    t = ctx.totals
    if not ctx.has_debts or t.monthly_debt_payments <= 0:
        return None
    expense_estimate = t.monthly_debt_payments * 2
    liquid = t.total_stocks + t.total_crypto
    months_covered = liquid / expense_estimate
    if months_covered >= 3:
        return None
    return _insight(
        InsightCategory.CASH_FLOW,
        Severity.WARNING,
        "Limited emergency buffer",
        f"Your liquid assets (~{format_usd(liquid)}) cover roughly {months_covered:.1f} months of "
        f"estimated expenses. Aim for 3-6 months of expenses in an accessible account before "
        f"aggressive investing.",
    )


# ==================== AGE ====================

def years_to_retirement(ctx: RuleContext) -> Optional[Insight]:
    age = ctx.snapshot.age
    retirement = ctx.totals.total_retirement
    if not age or retirement <= 0:
        return None
    years = max(RETIREMENT_AGE - age, 0)
    if years <= 0:
        return None
    if years > 20:
        outlook = "strongly on your side; compound growth will do heavy lifting"
    elif years > 10:
        outlook = "still working for you, but maximizing contributions now is important"
    else:
        outlook = "limited; consider catch-up contributions and reducing portfolio risk"
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.INFO,
        f"~{years} years to traditional retirement",
        f"At age {age}, you have roughly {years} years until age {RETIREMENT_AGE}. Your retirement "
        f"accounts hold {format_usd(retirement)}. Time is {outlook}.",
    )


def young_crypto_allocation(ctx: RuleContext) -> Optional[Insight]:
    age = ctx.snapshot.age
    if not age or age >= 35 or ctx.totals.total_crypto <= 0:
        return None
    pct = ctx.crypto_pct
    if not 5 < pct <= 25:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.POSITIVE,
        "Age-appropriate risk allocation",
        f"At {age}, having {pct:.0f}% in crypto is within a reasonable risk range for your age. "
        f"You have decades for volatile assets to recover from downturns.",
    )


def late_career_equity_exposure(ctx: RuleContext) -> Optional[Insight]:
    age = ctx.snapshot.age
    t = ctx.totals
    if not age or age < 50 or t.total_assets <= 0:
        return None
    volatile_pct = (t.total_stocks + t.total_crypto) / t.total_assets * 100
    if volatile_pct <= 80:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.WARNING,
        "High equity exposure for your age",
        f"At {age}, having {volatile_pct:.0f}% in stocks and crypto is aggressive. A common "
        f"guideline is to hold roughly your age in percentage as stable/bond allocation. "
        f"Consider gradually shifting toward more stable assets.",
    )


# ==================== POSITIVES ====================

def debt_free(ctx: RuleContext) -> Optional[Insight]:
    t = ctx.totals
    if ctx.has_debts or t.net_worth <= 0:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.POSITIVE,
        "Debt-free!",
        f"You have zero tracked debts and a net worth of {format_usd(t.net_worth)}. Every dollar "
        f"earned can go straight to building wealth.",
    )


def retirement_allocation(ctx: RuleContext) -> Optional[Insight]:
    t = ctx.totals
    if t.net_worth <= 0 or t.total_retirement <= 0 or t.total_assets <= 0:
        return None
    pct = t.total_retirement / t.total_assets * 100
    if pct < 20:
        return None
    return _insight(
        InsightCategory.PORTFOLIO_HEALTH,
        Severity.POSITIVE,
        f"{pct:.0f}% in retirement accounts",
        f"Good allocation to tax-advantaged retirement accounts ({format_usd(t.total_retirement)}). "
        f"These grow tax-free or tax-deferred, compounding faster than taxable accounts.",
    )


Rule = Callable[[RuleContext], Optional[Insight]]

RULES: Tuple[Rule, ...] = (
    good_vs_bad_debt,
    high_interest_debt,
    minimum_payments_only,
    annual_interest_cost,
    debt_exceeds_returns,
    credit_card_while_investing,
    debt_to_asset_ratio,
    crypto_concentration,
    stock_concentration,
    emergency_buffer,
    years_to_retirement,
    young_crypto_allocation,
    late_career_equity_exposure,
    debt_free,
    retirement_allocation,
)


def evaluate_rules(ctx: RuleContext, rules: Tuple[Rule, ...] = RULES) -> List[Insight]:
    """Run rules in order, numbering the insights they emit."""
    insights = []
    for rule in rules:
        insight = rule(ctx)
        if insight is not None:
            insights.append(replace(insight, id=f"insight-{len(insights) + 1}"))
    return insights
