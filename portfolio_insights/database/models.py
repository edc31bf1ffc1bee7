"""Snapshot models and database initialization for Portfolio Insights."""

import sqlite3
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Optional, Tuple

DATABASE_PATH = Path(__file__).parent.parent.parent / "portfolio.db"


class DebtType(str, Enum):
    """Kinds of tracked debt."""
    CREDIT_CARD = 'credit_card'
    STUDENT_LOAN = 'student_loan'
    AUTO_LOAN = 'auto_loan'
    PERSONAL_LOAN = 'personal_loan'
    MORTGAGE = 'mortgage'
    MEDICAL = 'medical'
    OTHER = 'other'


class InsightCategory(str, Enum):
    DEBT_PAYOFF = 'debt_payoff'
    LEVERAGE = 'leverage'
    PORTFOLIO_HEALTH = 'portfolio_health'
    CASH_FLOW = 'cash_flow'
    OPPORTUNITY = 'opportunity'


class Severity(str, Enum):
    INFO = 'info'
    WARNING = 'warning'
    CRITICAL = 'critical'
    POSITIVE = 'positive'


class PayoffMethod(str, Enum):
    AVALANCHE = 'avalanche'
    SNOWBALL = 'snowball'


@dataclass(frozen=True)
class RealEstateHolding:
    """A property, valued net of its mortgage."""
    name: str = ""
    estimated_value: float = 0.0
    mortgage_balance: float = 0.0
    monthly_mortgage_payment: Optional[float] = None
    address: str = ""
    property_type: str = "other"  # 'primary_residence', 'rental', 'vacation', 'land', 'other'
    purchase_price: Optional[float] = None
    purchase_date: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None

    @property
    def equity(self) -> float:
        """Estimated value less the mortgage balance (may be negative)."""
        return self.estimated_value - self.mortgage_balance


@dataclass(frozen=True)
class StockHolding:
    """A stock position."""
    name: str = ""
    ticker: str = ""
    shares: float = 0.0
    cost_basis_per_share: float = 0.0
    current_price: Optional[float] = None  # Falls back to cost basis when not refreshed
    created_at: Optional[str] = None
    id: Optional[int] = None

    @property
    def price(self) -> float:
        return self.current_price if self.current_price is not None else self.cost_basis_per_share

    @property
    def current_value(self) -> float:
        return self.shares * self.price

    @property
    def total_cost(self) -> float:
        return self.shares * self.cost_basis_per_share

    @property
    def gain_loss(self) -> float:
        return (self.price - self.cost_basis_per_share) * self.shares


@dataclass(frozen=True)
class CryptoHolding:
    """A crypto position."""
    name: str = ""
    symbol: str = ""
    quantity: float = 0.0
    cost_basis_per_unit: float = 0.0
    current_price: Optional[float] = None
    coin_id: str = ""
    created_at: Optional[str] = None
    id: Optional[int] = None

    @property
    def price(self) -> float:
        return self.current_price if self.current_price is not None else self.cost_basis_per_unit

    @property
    def current_value(self) -> float:
        return self.quantity * self.price

    @property
    def total_cost(self) -> float:
        return self.quantity * self.cost_basis_per_unit

    @property
    def gain_loss(self) -> float:
        return (self.price - self.cost_basis_per_unit) * self.quantity


@dataclass(frozen=True)
class RetirementAccount:
    """A balance-only retirement account."""
    name: str = ""
    balance: float = 0.0
    contributions: Optional[float] = None
    account_type: str = "other"  # '401k', 'roth_ira', 'traditional_ira', '403b', 'pension', 'other'
    institution: str = ""
    created_at: Optional[str] = None
    id: Optional[int] = None


@dataclass(frozen=True)
class DebtLiability:
    """A debt from the liabilities table."""
    name: str = ""
    debt_type: DebtType = DebtType.OTHER
    current_balance: float = 0.0
    interest_rate: float = 0.0  # Annual interest rate (percentage)
    minimum_payment: float = 0.0
    monthly_payment: Optional[float] = None  # Actual payment, None means minimum only
    lender: str = ""
    original_balance: float = 0.0
    due_day: Optional[int] = None
    created_at: Optional[str] = None
    id: Optional[int] = None

    @property
    def effective_monthly_payment(self) -> float:
        """Actual monthly payment, defaulting to the minimum."""
        if self.monthly_payment is None:
            return self.minimum_payment
        return self.monthly_payment

    @property
    def annual_interest(self) -> float:
        """Interest accrued over a year at the current balance."""
        return self.current_balance * self.interest_rate / 100


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Everything the insights engine reads, captured at one point in time."""
    real_estate: Tuple[RealEstateHolding, ...] = ()
    stocks: Tuple[StockHolding, ...] = ()
    crypto: Tuple[CryptoHolding, ...] = ()
    retirement: Tuple[RetirementAccount, ...] = ()
    debts: Tuple[DebtLiability, ...] = ()
    age: Optional[int] = None


@dataclass(frozen=True)
class Insight:
    """A single human-readable finding."""
    id: str
    category: InsightCategory
    severity: Severity
    title: str
    description: str
    impact: Optional[str] = None


@dataclass(frozen=True)
class PayoffItem:
    """One debt in a payoff priority order."""
    name: str
    balance: float
    rate: float
    minimum_payment: float


@dataclass(frozen=True)
class DebtPayoffPlan:
    """Payoff projection for one repayment ordering."""
    method: PayoffMethod
    order: Tuple[PayoffItem, ...]
    total_monthly_minimum: float
    months_to_payoff: int
    payoff_date: str = ""
    total_interest: float = 0.0


@dataclass(frozen=True)
class PayoffComparison:
    avalanche: DebtPayoffPlan
    snowball: DebtPayoffPlan


@dataclass(frozen=True)
class PortfolioMetrics:
    """Headline portfolio health figures."""
    total_assets: float = 0.0
    total_debts: float = 0.0
    net_worth: float = 0.0
    debt_to_asset_ratio: float = 0.0
    weighted_avg_debt_rate: float = 0.0
    monthly_debt_payments: float = 0.0
    high_interest_debt_total: float = 0.0
    good_debt_total: float = 0.0
    bad_debt_total: float = 0.0
    good_debt_monthly: float = 0.0
    bad_debt_monthly: float = 0.0


@dataclass(frozen=True)
class InsightsReport:
    """Complete output of one report generation."""
    generated_at: str
    insights: Tuple[Insight, ...] = ()
    debt_payoff: Optional[PayoffComparison] = None
    metrics: PortfolioMetrics = field(default_factory=PortfolioMetrics)


def get_connection(db_path: Optional[Path] = None) -> sqlite3.Connection:
    """Get a database connection."""
    conn = sqlite3.connect(db_path or DATABASE_PATH)
    conn.row_factory = sqlite3.Row
    return conn


def init_database(db_path: Optional[Path] = None):
    """Initialize the database with required tables."""
    conn = get_connection(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS real_estate (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            address TEXT DEFAULT '',
            estimated_value REAL NOT NULL DEFAULT 0,
            mortgage_balance REAL NOT NULL DEFAULT 0,
            monthly_mortgage_payment REAL,
            purchase_price REAL,
            purchase_date DATE,
            property_type TEXT NOT NULL DEFAULT 'other',
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS stocks (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            ticker TEXT NOT NULL,
            shares REAL NOT NULL DEFAULT 0,
            cost_basis_per_share REAL NOT NULL DEFAULT 0,
            current_price REAL,
            last_price_update DATETIME,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS crypto (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            coin_id TEXT DEFAULT '',
            symbol TEXT NOT NULL,
            quantity REAL NOT NULL DEFAULT 0,
            cost_basis_per_unit REAL NOT NULL DEFAULT 0,
            current_price REAL,
            last_price_update DATETIME,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS retirement (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            account_type TEXT NOT NULL DEFAULT 'other',
            institution TEXT DEFAULT '',
            balance REAL NOT NULL DEFAULT 0,
            contributions REAL,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS debts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            debt_type TEXT NOT NULL DEFAULT 'other',
            lender TEXT DEFAULT '',
            original_balance REAL NOT NULL DEFAULT 0,
            current_balance REAL NOT NULL DEFAULT 0,
            interest_rate REAL NOT NULL DEFAULT 0,
            minimum_payment REAL NOT NULL DEFAULT 0,
            monthly_payment REAL,
            due_day INTEGER,
            created_at DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """)

    conn.commit()
    conn.close()
