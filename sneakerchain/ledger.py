"""
SneakerChain Ownership Ledger

Owns the three mutable maps of the registry:

    owner     token_id -> address     (exactly one owner per minted token)
    balance   address  -> count       (tokens currently held)
    approval  token_id -> address     (single delegate, ZERO_ADDRESS = none)

assign_ownership is the only code path that writes the owner map (snapshot
restore reaches the same commit through replay_transfer), and set_approval
the only one that writes the approval map. Neither validates authorization;
callers check every precondition before calling them.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

from typing import Dict, Iterator, Tuple

from sneakerchain.errors import InvariantViolation, NotFound
from sneakerchain.events import EventLog, Transfer
from sneakerchain.hardening import ZERO_ADDRESS, InvariantChecker
from sneakerchain.observability import RegistryLayer, get_logger

logger = get_logger("ownership_ledger", RegistryLayer.LEDGER)


class OwnershipLedger:
    """Owner, balance and approval state plus the Transfer-emitting mutation."""

    def __init__(self, event_log: EventLog):
        self.event_log = event_log
        self._owners: Dict[int, str] = {}
        self._balances: Dict[str, int] = {}
        self._approvals: Dict[int, str] = {}

    # ── Reads ────────────────────────────────────────────────────────────

    def owner_of(self, token_id: int) -> str:
        owner = self._owners.get(token_id, ZERO_ADDRESS)
        if owner == ZERO_ADDRESS:
            raise NotFound(f"token {token_id} has no owner", token_id=token_id)
        return owner

    def owns(self, claimant: str, token_id: int) -> bool:
        return self._owners.get(token_id, ZERO_ADDRESS) == claimant != ZERO_ADDRESS

    def balance_of(self, address: str) -> int:
        return self._balances.get(address, 0)

    def approved_for(self, token_id: int) -> str:
        return self._approvals.get(token_id, ZERO_ADDRESS)

    def is_approved(self, claimant: str, token_id: int) -> bool:
        return claimant != ZERO_ADDRESS and self.approved_for(token_id) == claimant

    def owners(self) -> Iterator[Tuple[int, str]]:
        return iter(sorted(self._owners.items()))

    def balances(self) -> Dict[str, int]:
        return {a: n for a, n in self._balances.items() if n}

    # ── Mutations ────────────────────────────────────────────────────────

    def assign_ownership(self, from_address: str, to_address: str, token_id: int) -> Transfer:
        """
        Move token_id to to_address and append Transfer(from, to, id).

        from_address == ZERO_ADDRESS is the mint path: no count is
        decremented and there is no approval to clear.
        """
        event = Transfer(from_address=from_address, to_address=to_address, token_id=token_id)
        self._commit(event)
        return event

    def replay_transfer(self, event: Transfer) -> None:
        """Re-apply a previously logged Transfer, keeping its identity."""
        current = self._owners.get(event.token_id, ZERO_ADDRESS)
        if current != event.from_address:
            raise InvariantViolation(
                f"Transfer {event.event_id} moves token {event.token_id} from "
                f"{event.from_address} but the owner is {current}"
            )
        if event.to_address == ZERO_ADDRESS:
            raise InvariantViolation(f"Transfer {event.event_id} has no recipient")
        self._commit(event)

    def _commit(self, event: Transfer) -> None:
        from_address = event.from_address
        to_address = event.to_address
        token_id = event.token_id

        if from_address != ZERO_ADDRESS:
            remaining = self._balances.get(from_address, 0) - 1
            InvariantChecker.check_non_negative(f"balance of {from_address}", remaining)
            if remaining:
                self._balances[from_address] = remaining
            else:
                self._balances.pop(from_address, None)
            self._approvals.pop(token_id, None)

        self._balances[to_address] = self._balances.get(to_address, 0) + 1
        self._owners[token_id] = to_address

        self.event_log.append(event)
        logger.debug(
            "Ownership assigned",
            token_id=token_id,
            from_address=from_address,
            to_address=to_address,
        )

    def set_approval(self, token_id: int, delegate: str) -> None:
        """Overwrite the delegate for token_id. ZERO_ADDRESS clears it. Emits nothing."""
        if delegate == ZERO_ADDRESS:
            self._approvals.pop(token_id, None)
        else:
            self._approvals[token_id] = delegate

    # ── Invariants ───────────────────────────────────────────────────────

    def check_invariants(self, total_supply: int) -> None:
        """Raise InvariantViolation if counts, owners and approvals disagree."""
        if len(self._owners) != total_supply:
            raise InvariantViolation(
                f"{len(self._owners)} owned tokens but total supply is {total_supply}"
            )
        InvariantChecker.check_balances_match_owners(self._balances, self._owners.values())
        InvariantChecker.check_supply_conservation(self._balances, total_supply)
        orphaned = set(self._approvals) - set(self._owners)
        if orphaned:
            raise InvariantViolation(f"Approvals on unowned tokens: {sorted(orphaned)}")
