"""
SneakerChain: Sneaker Ownership Registry

A registry of non-fungible sneaker tokens. Each token is an immutable
provenance record (brand, model, size, style code, colorway, price,
manufacture and release dates, catalog ticker) owned by exactly one account.
Owners move tokens directly or through a single per-token delegate.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                        SNEAKER OWNERSHIP REGISTRY                        │
    │                                                                          │
    │  PROTOCOL                                                                │
    │    ownership.py   Mint, approve, transfer, transfer_from, enumeration   │
    │    access.py      Pause gate and admin roles (RoleBook)                 │
    │    metadata.py    Metadata provider protocol and buffer decoding        │
    │                                                                          │
    │  STATE                                                                   │
    │    registry.py    Append-only catalog of sneaker records + ticker index │
    │    ledger.py      Owner, balance and approval maps                      │
    │    events.py      Hash-chained Transfer / Approval event log            │
    │                                                                          │
    │  INFRASTRUCTURE                                                          │
    │    snapshot.py    Snapshot save/restore by replay, catalog import       │
    │    schema.py      JSON Schema validation of documents                   │
    │    config.py      YAML + environment configuration                      │
    │    observability.py  Structured logging and correlation IDs             │
    │    hardening.py   Input validation and invariant checks                 │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Check Then Write: Every operation validates all of its preconditions
    before the single ledger write. A rejected call changes nothing.

    Conservation: The per-owner counts always sum to the total supply and
    every minted token has exactly one non-null owner.

    Replayable History: The event log alone is enough to rebuild the ledger,
    and its chain hash commits to the whole ordered history.

Copyright (c) 2026 Momentum. All rights reserved.
"""

__version__ = "0.3.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import SneakerChain modules on first access."""

    # Protocol exports
    if name in ("SneakerOwnership", "INTERFACE_SIGNATURE_ERC165", "INTERFACE_SIGNATURE_ERC721"):
        from sneakerchain import ownership
        return getattr(ownership, name)

    # Registry exports
    if name in ("Brand", "SneakerRecord", "TokenRegistry", "ORIGIN"):
        from sneakerchain import registry
        return getattr(registry, name)

    # Ledger exports
    if name in ("OwnershipLedger",):
        from sneakerchain import ledger
        return getattr(ledger, name)

    # Access exports
    if name in ("PauseGate", "AdminAuthority", "AlwaysOpen", "Role", "RoleBook"):
        from sneakerchain import access
        return getattr(access, name)

    # Metadata exports
    if name in ("MetadataProvider", "StaticMetadataProvider", "decode_metadata", "encode_metadata"):
        from sneakerchain import metadata
        return getattr(metadata, name)

    # Event exports
    if name in ("Event", "Transfer", "Approval", "EventLog", "EventRecord"):
        from sneakerchain import events
        return getattr(events, name)

    # Error exports
    if name in ("RegistryError", "Unauthorized", "NotFound", "InvalidDestination",
                "SystemPaused", "DuplicateTicker", "MetadataUnavailable", "Overflow",
                "ValidationError", "InvariantViolation"):
        from sneakerchain import errors
        return getattr(errors, name)

    # Hardening exports
    if name in ("ZERO_ADDRESS", "normalize_address"):
        from sneakerchain import hardening
        return getattr(hardening, name)

    # Snapshot exports
    if name in ("dump_state", "load_state", "save_state", "read_state",
                "load_catalog", "import_catalog"):
        from sneakerchain import snapshot
        return getattr(snapshot, name)

    raise AttributeError(f"module 'sneakerchain' has no attribute '{name}'")


__all__ = [
    # Version info
    "__version__",
    # Protocol
    "SneakerOwnership",
    "INTERFACE_SIGNATURE_ERC165",
    "INTERFACE_SIGNATURE_ERC721",
    # Registry
    "Brand",
    "SneakerRecord",
    "TokenRegistry",
    "ORIGIN",
    # Ledger
    "OwnershipLedger",
    # Access
    "PauseGate",
    "AdminAuthority",
    "AlwaysOpen",
    "Role",
    "RoleBook",
    # Metadata
    "MetadataProvider",
    "StaticMetadataProvider",
    "decode_metadata",
    "encode_metadata",
    # Events
    "Event",
    "Transfer",
    "Approval",
    "EventLog",
    "EventRecord",
    # Errors
    "RegistryError",
    "Unauthorized",
    "NotFound",
    "InvalidDestination",
    "SystemPaused",
    "DuplicateTicker",
    "MetadataUnavailable",
    "Overflow",
    "ValidationError",
    "InvariantViolation",
    # Hardening
    "ZERO_ADDRESS",
    "normalize_address",
    # Snapshots
    "dump_state",
    "load_state",
    "save_state",
    "read_state",
    "load_catalog",
    "import_catalog",
]
