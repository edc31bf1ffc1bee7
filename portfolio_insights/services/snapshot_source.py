"""Base read contract for portfolio storage backends."""

from abc import ABC, abstractmethod
from typing import List, Optional
from ..database.models import (
    CryptoHolding, DebtLiability, PortfolioSnapshot, RealEstateHolding,
    RetirementAccount, StockHolding,
)
from .validation import InvalidSnapshotError


class SnapshotSource(ABC):
    """Abstract base class for anything that can supply a portfolio snapshot."""

    @abstractmethod
    def get_real_estate(self) -> List[RealEstateHolding]:
        pass

    @abstractmethod
    def get_stocks(self) -> List[StockHolding]:
        pass

    @abstractmethod
    def get_crypto(self) -> List[CryptoHolding]:
        pass

    @abstractmethod
    def get_retirement(self) -> List[RetirementAccount]:
        pass

    @abstractmethod
    def get_debts(self) -> List[DebtLiability]:
        pass

    @abstractmethod
    def get_age(self) -> Optional[int]:
        """User's age from settings, or None when not set."""
        pass

    def load_snapshot(self) -> PortfolioSnapshot:
        """Read every holding into one immutable snapshot."""
        return PortfolioSnapshot(
            real_estate=tuple(self.get_real_estate()),
            stocks=tuple(self.get_stocks()),
            crypto=tuple(self.get_crypto()),
            retirement=tuple(self.get_retirement()),
            debts=tuple(self.get_debts()),
            age=self.get_age(),
        )


def parse_age(value: Optional[str]) -> Optional[int]:
    """Parse a stored age setting; blank means unset."""
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidSnapshotError('settings.age', value, "must be a whole number")
