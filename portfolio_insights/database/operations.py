"""Database CRUD operations and the sqlite snapshot source."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional
from .models import (
    DATABASE_PATH, CryptoHolding, DebtLiability, RealEstateHolding, RetirementAccount,
    StockHolding, get_connection,
)
from ..services.snapshot_source import SnapshotSource, parse_age
from ..services.validation import coerce_debt_type

logger = logging.getLogger(__name__)


class RealEstateOperations:
    """CRUD operations for real estate."""

    @staticmethod
    def create(holding: RealEstateHolding, db_path: Optional[Path] = None) -> int:
        """Create a property and return its ID."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO real_estate (name, address, estimated_value, mortgage_balance,
                                     monthly_mortgage_payment, purchase_price, purchase_date,
                                     property_type)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            holding.name,
            holding.address,
            holding.estimated_value,
            holding.mortgage_balance,
            holding.monthly_mortgage_payment,
            holding.purchase_price,
            holding.purchase_date,
            holding.property_type
        ))

        holding_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return holding_id

    @staticmethod
    def _row_to_holding(row) -> RealEstateHolding:
        return RealEstateHolding(
            id=row['id'],
            name=row['name'],
            address=row['address'] or '',
            estimated_value=row['estimated_value'],
            mortgage_balance=row['mortgage_balance'],
            monthly_mortgage_payment=row['monthly_mortgage_payment'],
            purchase_price=row['purchase_price'],
            purchase_date=row['purchase_date'],
            property_type=row['property_type'],
            created_at=row['created_at']
        )

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> List[RealEstateHolding]:
        """Get all properties."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM real_estate ORDER BY name")
        rows = cursor.fetchall()
        conn.close()

        return [RealEstateOperations._row_to_holding(row) for row in rows]

    @staticmethod
    def update_valuation(holding_id: int, estimated_value: float, mortgage_balance: float,
                         db_path: Optional[Path] = None) -> bool:
        """Update a property's estimated value and remaining mortgage."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("""
            UPDATE real_estate SET estimated_value = ?, mortgage_balance = ?
            WHERE id = ?
        """, (estimated_value, mortgage_balance, holding_id))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success

    @staticmethod
    def delete(holding_id: int, db_path: Optional[Path] = None) -> bool:
        """Delete a property."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("DELETE FROM real_estate WHERE id = ?", (holding_id,))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success


class StockOperations:
    """CRUD operations for stock positions."""

    @staticmethod
    def create(stock: StockHolding, db_path: Optional[Path] = None) -> int:
        """Create a stock position and return its ID."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        created_at = stock.created_at or datetime.now(timezone.utc).isoformat()

        cursor.execute("""
            INSERT INTO stocks (name, ticker, shares, cost_basis_per_share, current_price,
                                created_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """, (
            stock.name,
            stock.ticker,
            stock.shares,
            stock.cost_basis_per_share,
            stock.current_price,
            created_at
        ))

        stock_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return stock_id

    @staticmethod
    def _row_to_stock(row) -> StockHolding:
        return StockHolding(
            id=row['id'],
            name=row['name'],
            ticker=row['ticker'],
            shares=row['shares'],
            cost_basis_per_share=row['cost_basis_per_share'],
            current_price=row['current_price'],
            created_at=row['created_at']
        )

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> List[StockHolding]:
        """Get all stock positions."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM stocks ORDER BY ticker")
        rows = cursor.fetchall()
        conn.close()

        return [StockOperations._row_to_stock(row) for row in rows]

    @staticmethod
    def update_price(stock_id: int, price: float, db_path: Optional[Path] = None) -> bool:
        """Update the current price of a stock."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        now = datetime.now(timezone.utc).isoformat()

        cursor.execute("""
            UPDATE stocks SET current_price = ?, last_price_update = ?
            WHERE id = ?
        """, (price, now, stock_id))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success

    @staticmethod
    def delete(stock_id: int, db_path: Optional[Path] = None) -> bool:
        """Delete a stock position."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("DELETE FROM stocks WHERE id = ?", (stock_id,))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success


class CryptoOperations:
    """CRUD operations for crypto positions."""

    @staticmethod
    def create(coin: CryptoHolding, db_path: Optional[Path] = None) -> int:
        """Create a crypto position and return its ID."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        created_at = coin.created_at or datetime.now(timezone.utc).isoformat()

        cursor.execute("""
            INSERT INTO crypto (name, coin_id, symbol, quantity, cost_basis_per_unit,
                                current_price, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            coin.name,
            coin.coin_id,
            coin.symbol,
            coin.quantity,
            coin.cost_basis_per_unit,
            coin.current_price,
            created_at
        ))

        coin_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return coin_id

    @staticmethod
    def _row_to_crypto(row) -> CryptoHolding:
        return CryptoHolding(
            id=row['id'],
            name=row['name'],
            coin_id=row['coin_id'] or '',
            symbol=row['symbol'],
            quantity=row['quantity'],
            cost_basis_per_unit=row['cost_basis_per_unit'],
            current_price=row['current_price'],
            created_at=row['created_at']
        )

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> List[CryptoHolding]:
        """Get all crypto positions."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM crypto ORDER BY symbol")
        rows = cursor.fetchall()
        conn.close()

        return [CryptoOperations._row_to_crypto(row) for row in rows]

    @staticmethod
    def update_price(crypto_id: int, price: float, db_path: Optional[Path] = None) -> bool:
        """Update the current price of a crypto position."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        now = datetime.now(timezone.utc).isoformat()

        cursor.execute("""
            UPDATE crypto SET current_price = ?, last_price_update = ?
            WHERE id = ?
        """, (price, now, crypto_id))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success


class RetirementOperations:
    """CRUD operations for retirement accounts."""

    @staticmethod
    def create(account: RetirementAccount, db_path: Optional[Path] = None) -> int:
        """Create a retirement account and return its ID."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO retirement (name, account_type, institution, balance, contributions)
            VALUES (?, ?, ?, ?, ?)
        """, (
            account.name,
            account.account_type,
            account.institution,
            account.balance,
            account.contributions
        ))

        account_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return account_id

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> List[RetirementAccount]:
        """Get all retirement accounts."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM retirement ORDER BY name")
        rows = cursor.fetchall()
        conn.close()

        return [
            RetirementAccount(
                id=row['id'],
                name=row['name'],
                account_type=row['account_type'],
                institution=row['institution'] or '',
                balance=row['balance'],
                contributions=row['contributions'],
                created_at=row['created_at']
            )
            for row in rows
        ]

    @staticmethod
    def update_balance(account_id: int, balance: float, db_path: Optional[Path] = None) -> bool:
        """Update the balance of a retirement account."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("UPDATE retirement SET balance = ? WHERE id = ?", (balance, account_id))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success


class DebtOperations:
    """CRUD operations for debts."""

    @staticmethod
    def create(debt: DebtLiability, db_path: Optional[Path] = None) -> int:
        """Create a debt and return its ID."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("""
            INSERT INTO debts (name, debt_type, lender, original_balance, current_balance,
                               interest_rate, minimum_payment, monthly_payment, due_day)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            debt.name,
            coerce_debt_type(debt.debt_type).value,
            debt.lender,
            debt.original_balance,
            debt.current_balance,
            debt.interest_rate,
            debt.minimum_payment,
            debt.monthly_payment,
            debt.due_day
        ))

        debt_id = cursor.lastrowid
        conn.commit()
        conn.close()
        return debt_id

    @staticmethod
    def _row_to_debt(row) -> DebtLiability:
        """Convert a database row to a DebtLiability."""
        return DebtLiability(
            id=row['id'],
            name=row['name'],
            debt_type=coerce_debt_type(row['debt_type'], f"debts[id={row['id']}].debt_type"),
            lender=row['lender'] or '',
            original_balance=row['original_balance'],
            current_balance=row['current_balance'],
            interest_rate=row['interest_rate'],
            minimum_payment=row['minimum_payment'],
            monthly_payment=row['monthly_payment'],
            due_day=row['due_day'],
            created_at=row['created_at']
        )

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> List[DebtLiability]:
        """Get all debts, highest rate first."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT * FROM debts ORDER BY interest_rate DESC")
        rows = cursor.fetchall()
        conn.close()

        return [DebtOperations._row_to_debt(row) for row in rows]

    @staticmethod
    def update_balance(debt_id: int, balance: float, db_path: Optional[Path] = None) -> bool:
        """Update the outstanding balance of a debt."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("UPDATE debts SET current_balance = ? WHERE id = ?", (balance, debt_id))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success

    @staticmethod
    def delete(debt_id: int, db_path: Optional[Path] = None) -> bool:
        """Delete a debt."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("DELETE FROM debts WHERE id = ?", (debt_id,))

        success = cursor.rowcount > 0
        conn.commit()
        conn.close()
        return success


class SettingsOperations:
    """CRUD operations for settings."""

    @staticmethod
    def get(key: str, default: str = "", db_path: Optional[Path] = None) -> str:
        """Get a setting value."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cursor.fetchone()
        conn.close()

        return row['value'] if row else default

    @staticmethod
    def set(key: str, value: str, db_path: Optional[Path] = None) -> bool:
        """Set a setting value."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("""
            INSERT OR REPLACE INTO settings (key, value)
            VALUES (?, ?)
        """, (key, value))

        conn.commit()
        conn.close()
        return True

    @staticmethod
    def get_all(db_path: Optional[Path] = None) -> Dict[str, str]:
        """Get all settings."""
        conn = get_connection(db_path)
        cursor = conn.cursor()

        cursor.execute("SELECT key, value FROM settings")
        rows = cursor.fetchall()
        conn.close()

        return {row['key']: row['value'] for row in rows}


class SqliteSnapshotSource(SnapshotSource):
    """Read a portfolio snapshot out of the sqlite database."""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = db_path

    def get_real_estate(self) -> List[RealEstateHolding]:
        return RealEstateOperations.get_all(self.db_path)

    def get_stocks(self) -> List[StockHolding]:
        return StockOperations.get_all(self.db_path)

    def get_crypto(self) -> List[CryptoHolding]:
        return CryptoOperations.get_all(self.db_path)

    def get_retirement(self) -> List[RetirementAccount]:
        return RetirementOperations.get_all(self.db_path)

    def get_debts(self) -> List[DebtLiability]:
        return DebtOperations.get_all(self.db_path)

    def get_age(self) -> Optional[int]:
        return parse_age(SettingsOperations.get('age', db_path=self.db_path))

    def load_snapshot(self):
        path = Path(self.db_path or DATABASE_PATH)
        if not path.exists():
            raise FileNotFoundError(f"No portfolio database at {path}")
        snapshot = super().load_snapshot()
        logger.debug("Loaded snapshot from %s: %d debts, %d stocks",
                     self.db_path, len(snapshot.debts), len(snapshot.stocks))
        return snapshot
