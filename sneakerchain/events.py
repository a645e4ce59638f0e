"""
SneakerChain Event Log

Append-only, ordered log of the externally observable ledger events. Every
ownership change appends a Transfer (including mints, where the sender is the
null address) and every explicit approval appends an Approval.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────┐
    │                          EVENT LOG                               │
    │                                                                  │
    │  Events              Records               Subscribers           │
    │  ├─ Transfer         ├─ Global sequence    ├─ Typed handlers     │
    │  └─ Approval         ├─ Per-token streams  └─ Error isolation    │
    │                      └─ Hash chain                               │
    │                                                                  │
    └─────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Immutable Events: Events are facts about what happened. They are never
    edited or removed, only appended.

    Ordering: The global sequence number orders all events. Each token also
    has its own stream ("token:<id>") giving its provenance history.

    Isolation: Subscribers run after the ledger mutation has committed. A
    failing subscriber is counted and logged; it cannot undo or block the
    ledger operation that produced the event.

Usage
─────

    log = EventLog()

    @log.subscribe(Transfer)
    def on_transfer(event: Transfer):
        print(f"{event.token_id}: {event.from_address} -> {event.to_address}")

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import hashlib
import json
import threading
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Type

from sneakerchain.canonical import digest as canonical_digest
from sneakerchain.hardening import ZERO_ADDRESS
from sneakerchain.observability import RegistryLayer, get_correlation_id, get_logger

logger = get_logger("event_log", RegistryLayer.EVENTS)

GENESIS_HASH = "0" * 64


# ════════════════════════════════════════════════════════════════════════════
# EVENT BASE
# ════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class Event:
    """
    Base class for ledger events.

    Each event has a unique ID, a timestamp and the correlation ID of the
    operation that produced it.
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    correlation_id: str = field(default_factory=get_correlation_id)

    @property
    def event_type(self) -> str:
        """Get the event type name."""
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize event to dictionary."""
        data = asdict(self)
        data["event_type"] = self.event_type
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Event":
        """Deserialize event from dictionary."""
        data = dict(data)
        data.pop("event_type", None)
        return cls(**data)

    def to_json(self) -> str:
        """Serialize event to JSON for display/transport (not for digest computation)."""
        return json.dumps(self.to_dict(), default=str, sort_keys=True)

    def digest(self) -> str:
        """Deterministic digest of the event content."""
        return canonical_digest(self.to_dict())


@dataclass(frozen=True)
class Transfer(Event):
    """Ownership of a token moved. from_address is the null address on mint."""
    from_address: str = ZERO_ADDRESS
    to_address: str = ZERO_ADDRESS
    token_id: int = 0

    @property
    def is_mint(self) -> bool:
        return self.from_address == ZERO_ADDRESS


@dataclass(frozen=True)
class Approval(Event):
    """The owner granted (or, with the null address, revoked) a delegate."""
    owner: str = ZERO_ADDRESS
    approved: str = ZERO_ADDRESS
    token_id: int = 0


EVENT_TYPES: Dict[str, Type[Event]] = {
    "Transfer": Transfer,
    "Approval": Approval,
}


def event_from_dict(data: Dict[str, Any]) -> Event:
    """Rebuild a typed event from its serialized form."""
    event_type = data.get("event_type")
    cls = EVENT_TYPES.get(event_type)
    if cls is None:
        raise ValueError(f"Unknown event type: {event_type!r}")
    return cls.from_dict(data)


def token_stream(token_id: int) -> str:
    return f"token:{token_id}"


# ════════════════════════════════════════════════════════════════════════════
# EVENT LOG
# ════════════════════════════════════════════════════════════════════════════


EventHandler = Callable[[Event], None]


@dataclass
class EventHandlerRegistration:
    """Registration for an event handler."""
    handler: EventHandler
    event_types: Set[Type[Event]]


class EventHandlerError(Exception):
    """Error during event handling."""
    def __init__(self, event: Event, handler: EventHandler, cause: Exception):
        self.event = event
        self.handler = handler
        self.cause = cause
        name = getattr(handler, "__name__", repr(handler))
        super().__init__(f"Handler {name} failed for {event.event_type}: {cause}")


@dataclass(frozen=True)
class EventRecord:
    """A logged event with its position and chain hash."""
    sequence_number: int
    event: Event
    stream_id: str
    version: int
    chain_hash: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sequence_number": self.sequence_number,
            "event": self.event.to_dict(),
            "stream_id": self.stream_id,
            "version": self.version,
            "chain_hash": self.chain_hash,
        }


class EventLog:
    """
    Append-only event log with per-token streams and subscribers.

    Each record's chain_hash is sha256(previous chain_hash + event digest), so
    the head hash commits to the entire ordered history.
    """

    def __init__(self, on_error: Optional[Callable[[EventHandlerError], None]] = None):
        self._records: List[EventRecord] = []
        self._streams: Dict[str, List[EventRecord]] = {}
        self._handlers: List[EventHandlerRegistration] = []
        self._head = GENESIS_HASH
        self._lock = threading.RLock()
        self._on_error = on_error
        self._handled_count = 0
        self._error_count = 0

    def append(self, event: Event) -> EventRecord:
        """Append an event to the global log and to its token stream."""
        with self._lock:
            stream_id = token_stream(getattr(event, "token_id", 0))
            stream = self._streams.setdefault(stream_id, [])
            chain_hash = hashlib.sha256(
                (self._head + event.digest()).encode("utf-8")
            ).hexdigest()
            record = EventRecord(
                sequence_number=len(self._records) + 1,
                event=event,
                stream_id=stream_id,
                version=len(stream) + 1,
                chain_hash=chain_hash,
            )
            self._records.append(record)
            stream.append(record)
            self._head = chain_hash
            handlers = [
                r.handler for r in self._handlers
                if any(isinstance(event, t) for t in r.event_types)
            ]

        for handler in handlers:
            self._call_handler(handler, event)
        return record

    def _call_handler(self, handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
            with self._lock:
                self._handled_count += 1
        except Exception as e:
            with self._lock:
                self._error_count += 1
            error = EventHandlerError(event, handler, e)
            logger.warning(str(error), error_code="handler_failed", event_id=event.event_id, exc_info=True)
            if self._on_error:
                self._on_error(error)

    def subscribe(self, *event_types: Type[Event]) -> Callable[[EventHandler], EventHandler]:
        """
        Decorator subscribing a handler to event types (all events if none given).

        Example:
            @log.subscribe(Approval)
            def on_approval(event):
                ...
        """
        def decorator(handler: EventHandler) -> EventHandler:
            with self._lock:
                self._handlers.append(EventHandlerRegistration(
                    handler=handler,
                    event_types=set(event_types) if event_types else {Event},
                ))
            return handler
        return decorator

    def unsubscribe(self, handler: EventHandler) -> bool:
        with self._lock:
            before = len(self._handlers)
            self._handlers = [r for r in self._handlers if r.handler != handler]
            return len(self._handlers) < before

    def read_all(self, from_position: int = 0, max_count: Optional[int] = None) -> List[EventRecord]:
        """Read records starting at a zero-based position."""
        with self._lock:
            end = None if max_count is None else from_position + max_count
            return self._records[from_position:end]

    def read_stream(self, token_id: int) -> List[Event]:
        """Provenance history of a single token, oldest first."""
        with self._lock:
            return [r.event for r in self._streams.get(token_stream(token_id), [])]

    def events(self, *event_types: Type[Event]) -> List[Event]:
        """All events in order, optionally restricted to the given types."""
        with self._lock:
            if not event_types:
                return [r.event for r in self._records]
            return [r.event for r in self._records if isinstance(r.event, event_types)]

    @property
    def head(self) -> str:
        """Chain hash of the latest record."""
        with self._lock:
            return self._head

    @property
    def current_position(self) -> int:
        with self._lock:
            return len(self._records)

    def __len__(self) -> int:
        return self.current_position

    @property
    def metrics(self) -> Dict[str, int]:
        with self._lock:
            return {
                "event_count": len(self._records),
                "stream_count": len(self._streams),
                "handler_count": len(self._handlers),
                "handled_count": self._handled_count,
                "error_count": self._error_count,
            }
