"""
SneakerChain Token Registry

The append-only catalog of sneaker records. Identities are dense and
sequential: slot 0 is reserved as the "no token" sentinel, so the first
minted sneaker is identity 1 and the supply is the catalog length minus one.

Records are immutable once created and are never removed. The ticker index
maps each external catalog ticker to exactly one identity.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional

from sneakerchain.errors import DuplicateTicker, InvariantViolation, NotFound, ValidationError
from sneakerchain.hardening import (
    UINT16,
    UINT32,
    UINT64,
    UINT128,
    Validators,
    require_width,
)
from sneakerchain.observability import RegistryLayer, get_logger

logger = get_logger("token_registry", RegistryLayer.REGISTRY)

ORIGIN = 1


class Brand(IntEnum):
    """Sneaker brand category, stored as a small integer."""
    OTHER = 0
    NIKE = 1
    JORDAN = 2
    ADIDAS = 3
    YEEZY = 4
    NEW_BALANCE = 5
    ASICS = 6
    PUMA = 7
    REEBOK = 8
    CONVERSE = 9
    VANS = 10

    @classmethod
    def parse(cls, value: Any) -> "Brand":
        """Accept a Brand, its integer code or its (case-insensitive) name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise ValidationError("brand", f"Unknown brand code {value}", value) from None
        if isinstance(value, str):
            key = value.strip().upper().replace(" ", "_").replace("-", "_")
            if key in cls.__members__:
                return cls[key]
        raise ValidationError("brand", f"Unknown brand {value!r}", value)


@dataclass(frozen=True)
class SneakerRecord:
    """Immutable provenance record of one minted sneaker."""
    token_id: int
    brand: Brand
    name: str
    size: int
    style_code: str
    colorway: str
    retail_price: int
    manufactured_at: int
    released_at: int
    ticker: str

    @property
    def size_label(self) -> str:
        """Size in display units, e.g. 105 -> '10.5'."""
        whole, tenths = divmod(self.size, 10)
        return f"{whole}" if tenths == 0 else f"{whole}.{tenths}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["brand"] = self.brand.name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SneakerRecord":
        data = dict(data)
        data["brand"] = Brand.parse(data["brand"])
        return cls(**data)


# Fixed storage widths of the numeric record fields.
FIELD_WIDTHS = {
    "size": UINT16,
    "retail_price": UINT128,
    "manufactured_at": UINT64,
    "released_at": UINT64,
}


def validate_record_fields(
    *,
    brand: Any,
    name: Any,
    size: Any,
    style_code: Any,
    colorway: Any,
    retail_price: Any,
    manufactured_at: Any,
    released_at: Any,
    ticker: Any,
) -> Dict[str, Any]:
    """
    Validate and normalize the fields of a new record.

    Returns the sanitized field values. Raises ValidationError for malformed
    input and Overflow for numbers exceeding their storage width.
    """
    fields: Dict[str, Any] = {
        "brand": Brand.parse(brand),
        "name": Validators.validate_string(name, "name").unwrap(),
        "style_code": Validators.validate_string(style_code, "style_code").unwrap(),
        "colorway": Validators.validate_string(colorway, "colorway").unwrap(),
        "ticker": Validators.validate_ticker(ticker).unwrap(),
        "size": Validators.validate_uint(size, "size").unwrap(),
        "retail_price": Validators.validate_uint(retail_price, "retail_price").unwrap(),
        "manufactured_at": Validators.validate_timestamp(manufactured_at, "manufactured_at").unwrap(),
        "released_at": Validators.validate_timestamp(released_at, "released_at").unwrap(),
    }
    for field_name, bits in FIELD_WIDTHS.items():
        require_width(field_name, fields[field_name], bits)
    return fields


class TokenRegistry:
    """
    Append-only catalog of sneaker records with a ticker index.

    The registry only creates records; ownership lives in the
    OwnershipLedger.
    """

    def __init__(self):
        # Slot 0 is the reserved origin sentinel.
        self._catalog: List[Optional[SneakerRecord]] = [None]
        self._tickers: Dict[str, int] = {}

    def next_id(self) -> int:
        """Identity the next created record will receive."""
        return len(self._catalog)

    def total_supply(self) -> int:
        return len(self._catalog) - 1

    def exists(self, token_id: int) -> bool:
        if isinstance(token_id, bool) or not isinstance(token_id, int):
            return False
        return ORIGIN <= token_id <= self.total_supply()

    def check_new(self, ticker: str) -> int:
        """
        Check that a record with this ticker can be created.

        Returns the identity it would receive. Mutates nothing.
        """
        existing = self._tickers.get(ticker)
        if existing is not None:
            raise DuplicateTicker(ticker, existing)
        return require_width("token_id", self.next_id(), UINT32)

    def create(self, **fields: Any) -> SneakerRecord:
        """
        Append a record built from already validated fields.

        Callers run validate_record_fields and check_new first; this method
        repeats the uniqueness check so the index can never lose injectivity.
        """
        token_id = self.check_new(fields["ticker"])
        record = SneakerRecord(token_id=token_id, **fields)
        self._catalog.append(record)
        self._tickers[record.ticker] = token_id
        logger.debug("Record created", token_id=token_id, ticker=record.ticker)
        return record

    def get(self, token_id: int) -> SneakerRecord:
        if not self.exists(token_id):
            raise NotFound(f"token {token_id} does not exist", token_id=token_id)
        record = self._catalog[token_id]
        if record is None:
            raise InvariantViolation(f"catalog slot {token_id} is empty")
        return record

    def id_for_ticker(self, ticker: str) -> int:
        token_id = self._tickers.get(ticker)
        if token_id is None:
            raise NotFound(f"no token with ticker {ticker!r}")
        return token_id

    def __iter__(self) -> Iterator[SneakerRecord]:
        for token_id in range(ORIGIN, len(self._catalog)):
            yield self.get(token_id)

    def __len__(self) -> int:
        return self.total_supply()
