"""JSON file storage backend.

The whole portfolio lives in one document:

    {
      "real_estate": [...], "stocks": [...], "crypto": [...],
      "retirement": [...], "debts": [...],
      "settings": {"age": "34"}
    }

Each holding is an object whose keys match the dataclass fields in
``models.py``. Unknown keys are ignored so documents written by newer
versions still load.
"""

import json
import logging
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional
from .models import (
    CryptoHolding, DebtLiability, PortfolioSnapshot, RealEstateHolding,
    RetirementAccount, StockHolding,
)
from ..services.snapshot_source import SnapshotSource, parse_age
from ..services.validation import InvalidSnapshotError, coerce_debt_type

logger = logging.getLogger(__name__)

SECTIONS = {
    'real_estate': RealEstateHolding,
    'stocks': StockHolding,
    'crypto': CryptoHolding,
    'retirement': RetirementAccount,
    'debts': DebtLiability,
}


def _from_record(section: str, index: int, record: Dict[str, Any]):
    if not isinstance(record, dict):
        raise InvalidSnapshotError(f"{section}[{index}]", record, "must be an object")
    model = SECTIONS[section]
    known = {f.name for f in fields(model)}
    values = {k: v for k, v in record.items() if k in known}
    if section == 'debts' and 'debt_type' in values:
        values['debt_type'] = coerce_debt_type(values['debt_type'], f"debts[{index}].debt_type")
    return model(**values)


def _to_record(item) -> Dict[str, Any]:
    record = asdict(item)
    if isinstance(item, DebtLiability):
        record['debt_type'] = item.debt_type.value
    return record


class JsonSnapshotSource(SnapshotSource):
    """Read a portfolio snapshot from a JSON document on disk."""

    def __init__(self, path: Path):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        """Load the document once per source."""
        if self._data is None:
            with open(self.path, 'r') as f:
                try:
                    data = json.load(f)
                except ValueError as e:
                    raise InvalidSnapshotError(str(self.path), str(e), "not valid JSON") from e
            if not isinstance(data, dict):
                raise InvalidSnapshotError(str(self.path), type(data).__name__, "must be a JSON object")
            self._data = data
            logger.debug("Loaded portfolio document %s", self.path)
        return self._data

    def _section(self, section: str) -> List:
        records = self._load().get(section, [])
        if not isinstance(records, list):
            raise InvalidSnapshotError(section, type(records).__name__, "must be a list")
        return [_from_record(section, i, r) for i, r in enumerate(records)]

    def get_real_estate(self) -> List[RealEstateHolding]:
        return self._section('real_estate')

    def get_stocks(self) -> List[StockHolding]:
        return self._section('stocks')

    def get_crypto(self) -> List[CryptoHolding]:
        return self._section('crypto')

    def get_retirement(self) -> List[RetirementAccount]:
        return self._section('retirement')

    def get_debts(self) -> List[DebtLiability]:
        return self._section('debts')

    def get_age(self) -> Optional[int]:
        settings = self._load().get('settings', {})
        if not isinstance(settings, dict):
            raise InvalidSnapshotError('settings', type(settings).__name__, "must be an object")
        return parse_age(settings.get('age'))

    def reload(self):
        """Forget the cached document so the next read hits the disk."""
        self._data = None


def save_snapshot(path: Path, snapshot: PortfolioSnapshot):
    """Write a snapshot as a JSON document readable by JsonSnapshotSource."""
    document = {
        section: [_to_record(item) for item in getattr(snapshot, section)]
        for section in SECTIONS
    }
    document['settings'] = {}
    if snapshot.age is not None:
        document['settings']['age'] = str(snapshot.age)

    with open(path, 'w') as f:
        json.dump(document, f, indent=2)
