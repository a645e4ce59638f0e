"""Ledger snapshots and catalog imports.

A snapshot holds the catalog records plus the full ordered event log. Loading
one does not copy the owner/balance/approval maps back in; it replays the
events through the ledger's own commit path and then checks that the
rebuilt hash chain head matches the one that was saved. A snapshot that was
edited by hand therefore either replays to a consistent ledger or is
rejected.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from sneakerchain.access import RoleBook
from sneakerchain.errors import InvariantViolation, ValidationError
from sneakerchain.events import Approval, Transfer, event_from_dict
from sneakerchain.hardening import normalize_address
from sneakerchain.metadata import MetadataProvider
from sneakerchain.observability import RegistryLayer, get_logger
from sneakerchain.ownership import SneakerOwnership
from sneakerchain.registry import SneakerRecord, validate_record_fields
from sneakerchain.schema import CATALOG_SCHEMA, SNAPSHOT_SCHEMA, load_document, require_valid

logger = get_logger("snapshot", RegistryLayer.STORAGE)

FORMAT_VERSION = 1

RECORD_FIELDS = (
    "brand", "name", "size", "style_code", "colorway",
    "retail_price", "manufactured_at", "released_at", "ticker",
)


def dump_state(ownership: SneakerOwnership) -> Dict[str, Any]:
    """Serialize records, events and (for a RoleBook) access state."""
    with ownership._lock:
        data: Dict[str, Any] = {
            "format_version": FORMAT_VERSION,
            "contract_address": ownership.contract_address,
            "token_name": ownership.name(),
            "token_symbol": ownership.symbol(),
            "records": [record.to_dict() for record in ownership.registry],
            "events": [event.to_dict() for event in ownership.event_log.events()],
            "head": ownership.event_log.head,
        }
        if isinstance(ownership.authority, RoleBook):
            data["access"] = ownership.authority.to_dict()
    return data


def load_state(
    data: Dict[str, Any],
    *,
    authority: Any = None,
    metadata_provider: Optional[MetadataProvider] = None,
) -> SneakerOwnership:
    """
    Rebuild a registry from a snapshot document.

    Raises:
        ValidationError: schema violation, inconsistent history or a hash
            chain head that does not match.
    """
    require_valid(data, SNAPSHOT_SCHEMA)

    if authority is None and "access" in data:
        authority = RoleBook.from_dict(data["access"])

    ownership = SneakerOwnership(
        authority,
        metadata_provider=metadata_provider,
        contract_address=data["contract_address"],
        token_name=data.get("token_name"),
        token_symbol=data.get("token_symbol"),
    )

    records = {r["token_id"]: SneakerRecord.from_dict(r) for r in data["records"]}
    try:
        _replay(ownership, records, data["events"])
        if ownership.registry.total_supply() != len(records):
            raise InvariantViolation(
                f"{len(records)} records but {ownership.registry.total_supply()} were minted"
            )
        ownership.check_invariants()
    except InvariantViolation as e:
        raise ValidationError("events", e.message) from e

    if ownership.event_log.head != data["head"]:
        raise ValidationError("head", "event hash chain does not match the snapshot head")

    logger.info(
        "Snapshot loaded",
        total_supply=ownership.total_supply(),
        events=len(ownership.event_log),
    )
    return ownership


def _replay(
    ownership: SneakerOwnership,
    records: Dict[int, SneakerRecord],
    events: List[Dict[str, Any]],
) -> None:
    registry = ownership.registry
    ledger = ownership.ledger

    for index, raw in enumerate(events):
        try:
            event = event_from_dict(raw)
        except (TypeError, ValueError) as e:
            raise InvariantViolation(f"events[{index}] is malformed: {e}") from e
        if isinstance(event, Transfer) and event.is_mint:
            record = records.get(event.token_id)
            if record is None or event.token_id != registry.next_id():
                raise InvariantViolation(f"Mint of token {event.token_id} is out of sequence")
            values = validate_record_fields(**{f: getattr(record, f) for f in RECORD_FIELDS})
            registry.create(**values)
            ledger.replay_transfer(event)
        elif isinstance(event, Transfer):
            ledger.replay_transfer(event)
        elif isinstance(event, Approval):
            if not ledger.owns(event.owner, event.token_id):
                raise InvariantViolation(
                    f"Approval {event.event_id} was not granted by the owner of token {event.token_id}"
                )
            ledger.set_approval(event.token_id, event.approved)
            ownership.event_log.append(event)


def save_state(ownership: SneakerOwnership, path: Union[str, Path], fmt: Optional[str] = None) -> Path:
    """Write a snapshot as JSON or YAML (by `fmt`, else by file suffix)."""
    path = Path(path)
    fmt = fmt or ("yaml" if path.suffix.lower() in (".yaml", ".yml") else "json")
    data = dump_state(ownership)
    if fmt == "yaml":
        text = yaml.safe_dump(data, sort_keys=False)
    else:
        text = json.dumps(data, indent=2) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    tmp.replace(path)
    logger.debug("Snapshot written", path=str(path), format=fmt)
    return path


def read_state(path: Union[str, Path], **kwargs: Any) -> SneakerOwnership:
    """Load a snapshot file written by save_state."""
    return load_state(load_document(Path(path)), **kwargs)


def load_catalog(path: Union[str, Path]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """Read a catalog document; returns (default owner, entries)."""
    data = load_document(Path(path))
    require_valid(data, CATALOG_SCHEMA)
    return data.get("owner"), list(data["sneakers"])


def import_catalog(
    ownership: SneakerOwnership,
    caller: str,
    entries: List[Dict[str, Any]],
    default_owner: Optional[str] = None,
) -> List[SneakerRecord]:
    """
    Mint every catalog entry, all or nothing.

    All entries are validated (fields, owners, ticker uniqueness within the
    batch and against the registry) before the first one is minted.
    """
    with ownership._lock:
        seen: Dict[str, int] = {}
        planned: List[Tuple[str, Dict[str, Any]]] = []
        for index, entry in enumerate(entries):
            owner = entry.get("owner") or default_owner
            if not owner:
                raise ValidationError(f"sneakers[{index}].owner", "No owner given")
            owner = normalize_address(owner, f"sneakers[{index}].owner")
            ownership._require_destination(owner)
            values = validate_record_fields(**{f: entry.get(f) for f in RECORD_FIELDS})
            ticker = values["ticker"]
            if ticker in seen:
                raise ValidationError(
                    f"sneakers[{index}].ticker",
                    f"Ticker {ticker!r} repeats entry {seen[ticker]}",
                )
            seen[ticker] = index
            ownership.registry.check_new(ticker)
            planned.append((owner, values))

        minted = [ownership.mint(caller, owner, **values) for owner, values in planned]

    logger.info("Catalog imported", count=len(minted))
    return minted
