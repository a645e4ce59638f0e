"""
SneakerChain Error Taxonomy

Every failure raised by the registry derives from RegistryError and carries a
stable error code. All checks run before any state is written, so catching one
of these means the ledger is exactly as it was before the call.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Any, Optional


class RegistryError(Exception):
    """Base exception for registry failures."""

    error_code = "registry_error"

    def __init__(self, message: str, token_id: Optional[int] = None):
        self.message = message
        self.token_id = token_id
        super().__init__(message)


class Unauthorized(RegistryError):
    """Caller lacks ownership, approval or role rights."""

    error_code = "unauthorized"


class NotFound(RegistryError):
    """Token identity or ticker has no record."""

    error_code = "not_found"


class InvalidDestination(RegistryError):
    """Destination is the null address or the registry itself."""

    error_code = "invalid_destination"


class SystemPaused(RegistryError):
    """The global circuit breaker is closed."""

    error_code = "system_paused"


class DuplicateTicker(RegistryError):
    """Catalog ticker is already bound to another token."""

    error_code = "duplicate_ticker"

    def __init__(self, ticker: str, existing_id: int):
        self.ticker = ticker
        self.existing_id = existing_id
        super().__init__(
            f"ticker {ticker!r} already assigned to token {existing_id}",
            token_id=existing_id,
        )


class MetadataUnavailable(RegistryError):
    """No metadata provider is configured."""

    error_code = "metadata_unavailable"


class Overflow(RegistryError):
    """A numeric field would exceed its fixed-width bound."""

    error_code = "overflow"

    def __init__(self, field: str, value: Any, bits: int):
        self.field = field
        self.value = value
        self.bits = bits
        super().__init__(f"{field}={value} does not fit uint{bits}")


class ValidationError(RegistryError):
    """Malformed input (address, brand, empty string, bad document)."""

    error_code = "validation_error"

    def __init__(self, field: str, message: str, value: Any = None):
        self.field = field
        self.value = value
        super().__init__(f"{field}: {message}")


class InvariantViolation(RegistryError):
    """Ledger state no longer satisfies its invariants."""

    error_code = "invariant_violation"
