"""
SneakerChain Ownership Protocol

The public surface of the registry: minting, the approval mechanism, the two
transfer entry points and the read-only enumeration views.

Transfer State Machine
──────────────────────

    transfer(caller, to, id)
        pause gate open ─▶ to valid ─▶ caller owns id ─▶ assign_ownership(caller, to, id)

    transfer_from(caller, from, to, id)
        pause gate open ─▶ to valid ─▶ caller approved for id ─▶ from owns id
            ─▶ assign_ownership(from, to, id)

Every check reads state only; the single write happens in
OwnershipLedger.assign_ownership after all checks pass. A rejected call
therefore leaves the registry untouched. Each public operation runs under one
re-entrant lock, so operations never interleave.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import threading
from functools import wraps
from typing import Any, Callable, List, Optional, TypeVar

from sneakerchain.access import AdminAuthority, AlwaysOpen, PauseGate
from sneakerchain.errors import (
    InvalidDestination,
    MetadataUnavailable,
    RegistryError,
    SystemPaused,
    Unauthorized,
)
from sneakerchain.events import Approval, Event, EventLog
from sneakerchain.hardening import ZERO_ADDRESS, normalize_address, require_token_id
from sneakerchain.ledger import OwnershipLedger
from sneakerchain.metadata import MetadataProvider, decode_metadata
from sneakerchain.observability import RegistryLayer, get_logger, timed_operation
from sneakerchain.registry import ORIGIN, SneakerRecord, TokenRegistry, validate_record_fields

logger = get_logger("ownership", RegistryLayer.TRANSFER)

# ERC-165 supportsInterface(bytes4)
INTERFACE_SIGNATURE_ERC165 = bytes.fromhex("01ffc9a7")

# XOR of the selectors of name(), symbol(), totalSupply(), balanceOf(address),
# ownerOf(uint256), approve(address,uint256), transfer(address,uint256),
# transferFrom(address,address,uint256), tokensOfOwner(address) and
# tokenMetadata(uint256,string), as published by the ownership standard.
INTERFACE_SIGNATURE_ERC721 = bytes.fromhex("9a20483d")

SUPPORTED_INTERFACES = frozenset({INTERFACE_SIGNATURE_ERC165, INTERFACE_SIGNATURE_ERC721})

F = TypeVar("F", bound=Callable[..., Any])


def _transaction(operation: str) -> Callable[[F], F]:
    """Run a public operation under the registry lock and log rejections."""
    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(self: "SneakerOwnership", *args: Any, **kwargs: Any) -> Any:
            with self._lock:
                try:
                    return func(self, *args, **kwargs)
                except RegistryError as e:
                    logger.warning(
                        f"{operation} rejected: {e.message}",
                        operation=operation,
                        error_code=e.error_code,
                        token_id=e.token_id,
                    )
                    raise
        return wrapper  # type: ignore[return-value]
    return decorator


def _signature_bytes(signature: Any) -> Optional[bytes]:
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature) if len(signature) == 4 else None
    if isinstance(signature, int) and not isinstance(signature, bool):
        return signature.to_bytes(4, "big") if 0 <= signature < 1 << 32 else None
    if isinstance(signature, str):
        text = signature[2:] if signature.lower().startswith("0x") else signature
        if len(text) != 8:
            return None
        try:
            return bytes.fromhex(text)
        except ValueError:
            return None
    return None


class SneakerOwnership:
    """
    Sneaker registry: token catalog, ownership ledger and transfer protocol.

    Args:
        authority: Pause gate and admin-role checker (RoleBook or any object
            with is_paused() and has_admin_role(caller)). Defaults to
            AlwaysOpen, under which nobody may mint.
        pause_gate: Overrides the pause source of `authority`.
        metadata_provider: Source for token_metadata(); optional.
        contract_address: The registry's own address. Defaults to config.
    """

    def __init__(
        self,
        authority: Optional[AdminAuthority] = None,
        *,
        pause_gate: Optional[PauseGate] = None,
        metadata_provider: Optional[MetadataProvider] = None,
        contract_address: Optional[str] = None,
        token_name: Optional[str] = None,
        token_symbol: Optional[str] = None,
    ):
        from sneakerchain.config import get_config

        ledger_config = get_config().ledger
        self.authority: AdminAuthority = authority or AlwaysOpen()
        self.pause_gate: PauseGate = pause_gate or self.authority  # type: ignore[assignment]
        self.metadata_provider = metadata_provider
        self.contract_address = normalize_address(
            contract_address or ledger_config.contract_address.get(), "contract_address"
        )
        self._name = token_name or ledger_config.token_name.get()
        self._symbol = token_symbol or ledger_config.token_symbol.get()

        self.registry = TokenRegistry()
        self.event_log = EventLog()
        self.ledger = OwnershipLedger(self.event_log)
        self._lock = threading.RLock()

    # ── Checks ───────────────────────────────────────────────────────────

    def _require_not_paused(self) -> None:
        if self.pause_gate.is_paused():
            raise SystemPaused("registry is paused")

    def _require_destination(self, to_address: str) -> None:
        if to_address == ZERO_ADDRESS:
            raise InvalidDestination("destination is the null address")
        if to_address == self.contract_address:
            raise InvalidDestination("destination is the registry itself")

    # ── Collection info ──────────────────────────────────────────────────

    def name(self) -> str:
        return self._name

    def symbol(self) -> str:
        return self._symbol

    def is_paused(self) -> bool:
        return self.pause_gate.is_paused()

    # ── Ownership ledger views ───────────────────────────────────────────

    def total_supply(self) -> int:
        with self._lock:
            return self.registry.total_supply()

    def balance_of(self, owner: str) -> int:
        owner = normalize_address(owner, "owner")
        with self._lock:
            return self.ledger.balance_of(owner)

    @_transaction("owner_of")
    def owner_of(self, token_id: int) -> str:
        token_id = require_token_id(token_id)
        return self.ledger.owner_of(token_id)

    def approved_for(self, token_id: int) -> str:
        token_id = require_token_id(token_id)
        with self._lock:
            return self.ledger.approved_for(token_id)

    @_transaction("record")
    def record(self, token_id: int) -> SneakerRecord:
        token_id = require_token_id(token_id)
        return self.registry.get(token_id)

    @_transaction("token_by_ticker")
    def token_by_ticker(self, ticker: str) -> SneakerRecord:
        return self.registry.get(self.registry.id_for_ticker(ticker))

    def history(self, token_id: int) -> List[Event]:
        """Transfer and approval events of one token, oldest first."""
        token_id = require_token_id(token_id)
        return self.event_log.read_stream(token_id)

    # ── Minting ──────────────────────────────────────────────────────────

    @_transaction("mint")
    @timed_operation(logger, "mint")
    def mint(self, caller: str, owner: str, **fields: Any) -> SneakerRecord:
        """
        Create a sneaker record and assign it to `owner`.

        Keyword fields: brand, name, size, style_code, colorway,
        retail_price, manufactured_at, released_at, ticker.
        """
        caller = normalize_address(caller, "caller")
        if not self.authority.has_admin_role(caller):
            raise Unauthorized(f"{caller} may not mint")

        owner = normalize_address(owner, "owner")
        self._require_destination(owner)

        values = validate_record_fields(**fields)
        self.registry.check_new(values["ticker"])

        record = self.registry.create(**values)
        self.ledger.assign_ownership(ZERO_ADDRESS, owner, record.token_id)
        logger.info("Sneaker minted", token_id=record.token_id, ticker=record.ticker, owner=owner)
        return record

    # ── Approval mechanism ───────────────────────────────────────────────

    @_transaction("approve")
    def approve(self, caller: str, delegate: str, token_id: int) -> Approval:
        """Grant `delegate` the right to move token_id once. ZERO_ADDRESS revokes."""
        token_id = require_token_id(token_id)
        self._require_not_paused()
        caller = normalize_address(caller, "caller")
        delegate = normalize_address(delegate, "delegate")
        if not self.ledger.owns(caller, token_id):
            raise Unauthorized(f"{caller} does not own token {token_id}", token_id=token_id)

        self.ledger.set_approval(token_id, delegate)
        event = Approval(owner=caller, approved=delegate, token_id=token_id)
        self.event_log.append(event)
        logger.info("Approval set", token_id=token_id, owner=caller, approved=delegate)
        return event

    # ── Transfer protocol ────────────────────────────────────────────────

    @_transaction("transfer")
    @timed_operation(logger, "transfer")
    def transfer(self, caller: str, to_address: str, token_id: int) -> None:
        """Owner moves token_id to to_address."""
        token_id = require_token_id(token_id)
        self._require_not_paused()
        caller = normalize_address(caller, "caller")
        to_address = normalize_address(to_address, "to_address")
        self._require_destination(to_address)
        if not self.ledger.owns(caller, token_id):
            raise Unauthorized(f"{caller} does not own token {token_id}", token_id=token_id)

        self.ledger.assign_ownership(caller, to_address, token_id)
        logger.info("Sneaker transferred", token_id=token_id, from_address=caller, to_address=to_address)

    @_transaction("transfer_from")
    @timed_operation(logger, "transfer_from")
    def transfer_from(self, caller: str, from_address: str, to_address: str, token_id: int) -> None:
        """Approved delegate moves token_id from its current owner to to_address."""
        token_id = require_token_id(token_id)
        self._require_not_paused()
        caller = normalize_address(caller, "caller")
        from_address = normalize_address(from_address, "from_address")
        to_address = normalize_address(to_address, "to_address")
        self._require_destination(to_address)
        if not self.ledger.is_approved(caller, token_id):
            raise Unauthorized(f"{caller} is not approved for token {token_id}", token_id=token_id)
        if not self.ledger.owns(from_address, token_id):
            raise Unauthorized(f"{from_address} does not own token {token_id}", token_id=token_id)

        self.ledger.assign_ownership(from_address, to_address, token_id)
        logger.info(
            "Sneaker transferred by delegate",
            token_id=token_id,
            from_address=from_address,
            to_address=to_address,
            delegate=caller,
        )

    # ── Enumeration & introspection ──────────────────────────────────────

    def tokens_of_owner(self, owner: str) -> List[int]:
        """
        Ids owned by `owner`, ascending.

        Scans the whole identity space, so it is meant for external queries
        only and is never used by the mutating operations.
        """
        owner = normalize_address(owner, "owner")
        with self._lock:
            balance = self.ledger.balance_of(owner)
            if balance == 0:
                return []

            found: List[int] = []
            for token_id in range(ORIGIN, self.registry.total_supply() + 1):
                if self.ledger.owns(owner, token_id):
                    found.append(token_id)
                    if len(found) == balance:
                        break
            return found

    @staticmethod
    def supports_interface(signature: Any) -> bool:
        """True for the introspection and ownership-protocol signatures."""
        return _signature_bytes(signature) in SUPPORTED_INTERFACES

    @_transaction("token_metadata")
    def token_metadata(self, token_id: int, preferred_transport: str = "") -> str:
        """Resolve the metadata URI of token_id through the metadata provider."""
        token_id = require_token_id(token_id)
        if self.metadata_provider is None:
            raise MetadataUnavailable("no metadata provider configured", token_id=token_id)
        self.registry.get(token_id)

        buffer, length = self.metadata_provider.get_metadata(token_id, preferred_transport)
        return decode_metadata(buffer, length)

    # ── Invariants ───────────────────────────────────────────────────────

    def check_invariants(self) -> None:
        with self._lock:
            self.ledger.check_invariants(self.registry.total_supply())
