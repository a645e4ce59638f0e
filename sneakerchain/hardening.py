"""
SneakerChain Validation and Hardening Module

Input validation and invariant enforcement for the registry. It covers:

1. Address and ticker validation with normalization
2. Fixed-width unsigned integer bounds
3. Timestamp coercion (unix seconds or ISO 8601)
4. Ledger invariant checks

Security Model:
    - All inputs are untrusted until validated
    - Addresses are normalized to lower case before they touch the ledger
    - Numeric fields are bounded to the width they are stored in

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sneakerchain.errors import InvariantViolation, Overflow, ValidationError


ZERO_ADDRESS = "0x" + "0" * 40

UINT16 = 16
UINT32 = 32
UINT64 = 64
UINT128 = 128


# =============================================================================
# VALIDATION RESULT
# =============================================================================

@dataclass
class ValidationResult:
    """Result of a validation operation."""
    is_valid: bool
    errors: List[ValidationError] = field(default_factory=list)
    sanitized_value: Any = None

    def raise_if_invalid(self) -> None:
        """Raise the first ValidationError if validation failed."""
        if not self.is_valid:
            raise self.errors[0]

    def unwrap(self) -> Any:
        """Return the sanitized value or raise."""
        self.raise_if_invalid()
        return self.sanitized_value

    @classmethod
    def success(cls, sanitized_value: Any = None) -> 'ValidationResult':
        return cls(is_valid=True, sanitized_value=sanitized_value)

    @classmethod
    def failure(cls, errors: List[ValidationError]) -> 'ValidationResult':
        return cls(is_valid=False, errors=errors)


# =============================================================================
# TIMESTAMP UTILITIES
# =============================================================================

def parse_iso_timestamp(timestamp: str) -> datetime:
    """
    Parse an ISO 8601 timestamp.

    Handles "Z" suffixes, explicit offsets and fractional seconds. Naive
    timestamps are taken as UTC.

    Raises:
        ValueError: If timestamp cannot be parsed
    """
    if not timestamp:
        raise ValueError("Empty timestamp")

    normalized = timestamp.strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(normalized)
    except ValueError as e:
        raise ValueError(f"Cannot parse timestamp: {timestamp}") from e

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    return dt


# =============================================================================
# INPUT VALIDATORS
# =============================================================================

class Validators:
    """Collection of input validators."""

    # Patterns
    ADDRESS_PATTERN = re.compile(r'^0x[a-f0-9]{40}$')
    TICKER_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9._-]*$')

    # Limits
    MAX_STRING_LENGTH = 256
    MAX_TICKER_LENGTH = 64

    @classmethod
    def validate_string(
        cls,
        value: Any,
        field_name: str,
        min_length: int = 1,
        max_length: Optional[int] = None,
        pattern: Optional[re.Pattern] = None,
    ) -> ValidationResult:
        """Validate a string value."""
        max_length = max_length or cls.MAX_STRING_LENGTH
        errors = []

        if not isinstance(value, str):
            errors.append(ValidationError(field_name, f"Expected string, got {type(value).__name__}", value))
            return ValidationResult.failure(errors)

        # Sanitize: strip whitespace and null bytes
        sanitized = value.strip().replace('\x00', '')

        if len(sanitized) < min_length:
            errors.append(ValidationError(field_name, f"Too short (min {min_length} chars)", value))

        if len(sanitized) > max_length:
            errors.append(ValidationError(field_name, f"Too long (max {max_length} chars)", value))

        if pattern and not pattern.match(sanitized):
            errors.append(ValidationError(field_name, "Does not match required pattern", value))

        if errors:
            return ValidationResult.failure(errors)
        return ValidationResult.success(sanitized)

    @classmethod
    def validate_address(cls, value: Any, field_name: str = "address") -> ValidationResult:
        """Validate an account address (0x + 40 hex), normalized to lower case."""
        result = cls.validate_string(value, field_name, min_length=42, max_length=42)
        if not result.is_valid:
            return result

        lower = result.sanitized_value.lower()
        if not cls.ADDRESS_PATTERN.match(lower):
            return ValidationResult.failure([
                ValidationError(field_name, "Must be a valid address (0x + 40 hex)", value)
            ])

        return ValidationResult.success(lower)

    @classmethod
    def validate_ticker(cls, value: Any) -> ValidationResult:
        """Validate an external catalog ticker such as 'JB-JO1RHRSBG'."""
        return cls.validate_string(
            value, "ticker",
            min_length=1, max_length=cls.MAX_TICKER_LENGTH,
            pattern=cls.TICKER_PATTERN,
        )

    @classmethod
    def validate_uint(cls, value: Any, field_name: str) -> ValidationResult:
        """Validate a non-negative integer. Width is checked by require_width."""
        if isinstance(value, bool) or not isinstance(value, int):
            return ValidationResult.failure([
                ValidationError(field_name, f"Expected integer, got {type(value).__name__}", value)
            ])
        if value < 0:
            return ValidationResult.failure([
                ValidationError(field_name, "Must be non-negative", value)
            ])
        return ValidationResult.success(value)

    @classmethod
    def validate_timestamp(cls, value: Any, field_name: str = "timestamp") -> ValidationResult:
        """Coerce unix seconds, datetime or ISO 8601 text into unix seconds."""
        if isinstance(value, datetime):
            dt = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
            return cls.validate_uint(int(dt.timestamp()), field_name)
        if isinstance(value, str):
            try:
                seconds = int(parse_iso_timestamp(value).timestamp())
            except ValueError:
                return ValidationResult.failure([
                    ValidationError(field_name, "Invalid ISO8601 timestamp", value)
                ])
            return cls.validate_uint(seconds, field_name)
        return cls.validate_uint(value, field_name)


def normalize_address(value: Any, field_name: str = "address") -> str:
    """Validate and normalize an address, raising ValidationError."""
    return Validators.validate_address(value, field_name).unwrap()


def require_token_id(value: Any, field_name: str = "token_id") -> int:
    """Reject identities that are not plain ints. Bools and floats hash like ints."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field_name, f"Expected integer, got {type(value).__name__}", value)
    return value


def require_width(field_name: str, value: int, bits: int) -> int:
    """Raise Overflow unless value fits an unsigned integer of `bits` bits."""
    if value < 0 or value >= (1 << bits):
        raise Overflow(field_name, value, bits)
    return value


# =============================================================================
# STATE MACHINE INVARIANTS
# =============================================================================

class InvariantChecker:
    """Enforces ledger invariants."""

    @staticmethod
    def check_non_negative(field_name: str, value: int) -> None:
        """Ensure value is non-negative."""
        if value < 0:
            raise InvariantViolation(f"{field_name} cannot be negative: {value}")

    @staticmethod
    def check_supply_conservation(balances: Mapping[str, int], total_supply: int) -> None:
        """Sum of per-owner counts must equal the number of minted tokens."""
        held = sum(balances.values())
        if held != total_supply:
            raise InvariantViolation(
                f"Balances sum to {held} but total supply is {total_supply}"
            )

    @staticmethod
    def check_balances_match_owners(
        balances: Mapping[str, int],
        owners: Iterable[str],
    ) -> None:
        """Each count must equal the number of tokens mapped to that address."""
        counted: Dict[str, int] = {}
        for owner in owners:
            if owner == ZERO_ADDRESS:
                raise InvariantViolation("Minted token has no owner")
            counted[owner] = counted.get(owner, 0) + 1

        for address in set(counted) | set(balances):
            expected = counted.get(address, 0)
            actual = balances.get(address, 0)
            if expected != actual:
                raise InvariantViolation(
                    f"Balance of {address} is {actual}, owns {expected} tokens"
                )
