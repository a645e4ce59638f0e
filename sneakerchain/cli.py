#!/usr/bin/env python3
"""
SneakerChain CLI

Command-line interface for a file-backed sneaker registry. Each invocation
loads the ledger snapshot named by --state (or starts an empty registry),
runs one command and writes the snapshot back if the command changed it.

Usage:
    sneakerchain [--state PATH] [--admin ADDRESS] <command> <subcommand> [options]

Commands:
    token       Mint, import and inspect sneaker tokens
    ledger      Balances, supply, approvals and transfers
    events      Transfer and approval history
    config      Configuration management

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from sneakerchain import __version__
from sneakerchain.config import ConfigError, get_config_manager
from sneakerchain.errors import RegistryError
from sneakerchain.observability import (
    RegistryLayer,
    configure_logging,
    generate_correlation_id,
    get_logger,
    set_correlation_id,
)

logger = get_logger("cli", RegistryLayer.CLI)


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TABLE = "table"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)
    elif fmt == OutputFormat.TABLE:
        return _format_table(data)
    else:
        return str(data)


def _format_table(data: Any) -> str:
    """Format data as ASCII table."""
    if isinstance(data, dict):
        rows = next((v for v in data.values() if isinstance(v, list) and v and isinstance(v[0], dict)), None)
        if rows is None:
            return "\n".join(f"{k}: {v}" for k, v in data.items())
        data = rows
    if isinstance(data, list) and data and isinstance(data[0], dict):
        headers = list(data[0].keys())
        rows = [[str(row.get(h, ""))[:44] for h in headers] for row in data]
        widths = [max(len(h), max(len(r[i]) for r in rows)) for i, h in enumerate(headers)]

        lines = []
        header_line = " | ".join(h.ljust(widths[i]) for i, h in enumerate(headers))
        lines.append(header_line)
        lines.append("-+-".join("-" * w for w in widths))
        for row in rows:
            lines.append(" | ".join(c.ljust(widths[i]) for i, c in enumerate(row)))
        return "\n".join(lines)
    return str(data)


def _timestamp(text: str) -> Any:
    """Unix seconds when numeric, otherwise passed on as ISO 8601 text."""
    return int(text) if text.isdigit() else text


class SneakerChainCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="sneakerchain",
            description="SneakerChain sneaker ownership registry",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"sneakerchain {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "table", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress non-essential output",
        )
        self.parser.add_argument(
            "--config",
            help="Configuration file (default: sneakerchain.yaml search path)",
        )
        self.parser.add_argument(
            "--state", "-s",
            help="Ledger snapshot file (default: storage.state_path)",
        )
        self.parser.add_argument(
            "--admin",
            help="Owner of the role book when starting a new registry",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

        self._ownership = None
        self._state_path: Optional[Path] = None
        self._dirty = False

    def _register_commands(self) -> None:
        """Register all command groups."""
        self._register_token_commands()
        self._register_ledger_commands()
        self._register_events_commands()
        self._register_config_commands()

    def _register_token_commands(self) -> None:
        """Register token subcommands."""
        token = self.subparsers.add_parser("token", help="Sneaker token operations")
        token_sub = token.add_subparsers(dest="subcommand")

        # token mint
        mint = token_sub.add_parser("mint", help="Mint a new sneaker token")
        mint.add_argument("--caller", "-c", help="Admin address (default: --admin)")
        mint.add_argument("--owner", "-o", required=True, help="Initial owner address")
        mint.add_argument("--brand", "-b", required=True, help="Brand name or code")
        mint.add_argument("--name", "-n", required=True, help="Model name")
        mint.add_argument("--size", type=int, required=True, help="Size in tenths (105 = 10.5)")
        mint.add_argument("--style-code", required=True, help="Manufacturer style code")
        mint.add_argument("--colorway", required=True, help="Colorway")
        mint.add_argument("--retail-price", type=int, required=True, help="Retail price in minor units")
        mint.add_argument("--manufactured-at", required=True, help="Unix seconds or ISO 8601")
        mint.add_argument("--released-at", required=True, help="Unix seconds or ISO 8601")
        mint.add_argument("--ticker", "-t", required=True, help="External catalog ticker")

        # token import
        import_cmd = token_sub.add_parser("import", help="Mint every entry of a catalog file")
        import_cmd.add_argument("catalog", help="Catalog file (JSON or YAML)")
        import_cmd.add_argument("--caller", "-c", help="Admin address (default: --admin)")
        import_cmd.add_argument("--owner", "-o", help="Owner for entries without one")

        # token show
        show = token_sub.add_parser("show", help="Show a sneaker record")
        show.add_argument("token_id", type=int, nargs="?", help="Token identity")
        show.add_argument("--ticker", "-t", help="Look up by catalog ticker instead")

        # token owner
        owner = token_sub.add_parser("owner", help="Show the owner of a token")
        owner.add_argument("token_id", type=int, help="Token identity")

        # token list
        list_cmd = token_sub.add_parser("list", help="List tokens")
        list_cmd.add_argument("--owner", "-o", help="Only tokens held by this address")

        # token metadata
        metadata = token_sub.add_parser("metadata", help="Resolve the metadata URI of a token")
        metadata.add_argument("token_id", type=int, help="Token identity")
        metadata.add_argument("--transport", default="", help="Preferred transport, e.g. ipfs")

    def _register_ledger_commands(self) -> None:
        """Register ledger subcommands."""
        ledger = self.subparsers.add_parser("ledger", help="Ownership ledger operations")
        ledger_sub = ledger.add_subparsers(dest="subcommand")

        # ledger balance
        balance = ledger_sub.add_parser("balance", help="Number of tokens held by an address")
        balance.add_argument("address", help="Holder address")

        # ledger supply
        ledger_sub.add_parser("supply", help="Total number of minted tokens")

        # ledger transfer
        transfer = ledger_sub.add_parser("transfer", help="Owner moves a token")
        transfer.add_argument("--caller", "-c", required=True, help="Current owner")
        transfer.add_argument("--to", required=True, help="Recipient address")
        transfer.add_argument("--token", type=int, required=True, help="Token identity")

        # ledger approve
        approve = ledger_sub.add_parser("approve", help="Grant or revoke a delegate")
        approve.add_argument("--caller", "-c", required=True, help="Current owner")
        approve.add_argument("--delegate", "-d", required=True, help="Delegate (null address revokes)")
        approve.add_argument("--token", type=int, required=True, help="Token identity")

        # ledger transfer-from
        transfer_from = ledger_sub.add_parser("transfer-from", help="Delegate moves a token")
        transfer_from.add_argument("--caller", "-c", required=True, help="Approved delegate")
        transfer_from.add_argument("--from", dest="from_address", required=True, help="Current owner")
        transfer_from.add_argument("--to", required=True, help="Recipient address")
        transfer_from.add_argument("--token", type=int, required=True, help="Token identity")

        # ledger check
        ledger_sub.add_parser("check", help="Verify the ledger invariants")

    def _register_events_commands(self) -> None:
        """Register events subcommands."""
        events = self.subparsers.add_parser("events", help="Event history")
        events_sub = events.add_subparsers(dest="subcommand")

        # events list
        list_cmd = events_sub.add_parser("list", help="List logged events")
        list_cmd.add_argument("--token", type=int, help="Only events of this token")
        list_cmd.add_argument("--type", choices=["Transfer", "Approval"], help="Only this event type")

    def _register_config_commands(self) -> None:
        """Register config subcommands."""
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        # config get
        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., ledger.token_symbol)")

        # config show
        config_sub.add_parser("show", help="Show all configuration")

        # config validate
        config_sub.add_parser("validate", help="Validate configuration")

        # config schema
        config_sub.add_parser("schema", help="Export configuration schema")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            self._configure(parsed)
            fmt = OutputFormat(parsed.format)
            result = self._dispatch(parsed)

            if self._dirty:
                self._save()

            if result is not None:
                print(format_output(result, fmt))

            return 0

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

        except RegistryError as e:
            if not parsed.quiet:
                print(f"Error [{e.error_code}]: {e.message}", file=sys.stderr)
            return 2

        except (ConfigError, OSError, yaml.YAMLError) as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return 1

    def _configure(self, args: argparse.Namespace) -> None:
        mgr = get_config_manager()
        if args.config:
            mgr.load_from_file(args.config)
        else:
            mgr.load_defaults()

        obs = mgr.config.observability
        level = "error" if args.quiet else obs.log_level.get()
        configure_logging(level, obs.log_format.get())
        set_correlation_id(generate_correlation_id())

        self._state_path = Path(args.state or mgr.config.storage.state_path.get())

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command
        subcmd = getattr(args, "subcommand", None)

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name.replace("-", "_"), None)

        if handler is None:
            raise CLIError(f"Unknown command: {cmd} {subcmd or ''}")

        logger.debug("Dispatching command", command=cmd, subcommand=subcmd)
        return handler(args)

    # State handling

    def _load(self, args: argparse.Namespace) -> Any:
        """Registry from the snapshot file, or a fresh one."""
        if self._ownership is not None:
            return self._ownership

        from sneakerchain.access import RoleBook
        from sneakerchain.metadata import StaticMetadataProvider
        from sneakerchain.ownership import SneakerOwnership
        from sneakerchain.schema import load_document
        from sneakerchain.snapshot import load_state

        provider = StaticMetadataProvider.from_config()
        assert self._state_path is not None
        if self._state_path.exists():
            data = load_document(self._state_path)
            authority = None
            # --admin only applies to snapshots saved without a role book
            if args.admin and isinstance(data, dict) and "access" not in data:
                authority = RoleBook(owner=args.admin)
            self._ownership = load_state(data, authority=authority, metadata_provider=provider)
            logger.debug("Loaded state", path=str(self._state_path))
        else:
            authority = RoleBook(owner=args.admin) if args.admin else None
            self._ownership = SneakerOwnership(authority, metadata_provider=provider)
        return self._ownership

    def _save(self) -> None:
        from sneakerchain.snapshot import save_state

        assert self._state_path is not None
        fmt = None
        if self._state_path.suffix.lower() not in (".json", ".yaml", ".yml"):
            fmt = get_config_manager().config.storage.state_format.get()
        save_state(self._ownership, self._state_path, fmt)

    @staticmethod
    def _admin_caller(args: argparse.Namespace) -> str:
        caller = args.caller or args.admin
        if not caller:
            raise CLIError("An admin address is required (--caller or --admin)")
        return caller

    # Token handlers
    def _handle_token_mint(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        record = ownership.mint(
            self._admin_caller(args),
            args.owner,
            brand=args.brand,
            name=args.name,
            size=args.size,
            style_code=args.style_code,
            colorway=args.colorway,
            retail_price=args.retail_price,
            manufactured_at=_timestamp(args.manufactured_at),
            released_at=_timestamp(args.released_at),
            ticker=args.ticker,
        )
        self._dirty = True
        return {"status": "minted", "record": record.to_dict(), "owner": ownership.owner_of(record.token_id)}

    def _handle_token_import(self, args: argparse.Namespace) -> Any:
        from sneakerchain.snapshot import import_catalog, load_catalog

        ownership = self._load(args)
        default_owner, entries = load_catalog(args.catalog)
        minted = import_catalog(
            ownership,
            self._admin_caller(args),
            entries,
            default_owner=args.owner or default_owner,
        )
        self._dirty = bool(minted)
        return {
            "status": "imported",
            "count": len(minted),
            "tokens": [{"token_id": r.token_id, "ticker": r.ticker} for r in minted],
        }

    def _handle_token_show(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        if args.ticker:
            record = ownership.token_by_ticker(args.ticker)
        elif args.token_id is not None:
            record = ownership.record(args.token_id)
        else:
            raise CLIError("Give a token identity or --ticker")
        data = record.to_dict()
        data["size_label"] = record.size_label
        data["owner"] = ownership.owner_of(record.token_id)
        data["approved"] = ownership.approved_for(record.token_id)
        return data

    def _handle_token_owner(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        return {"token_id": args.token_id, "owner": ownership.owner_of(args.token_id)}

    def _handle_token_list(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        if args.owner:
            wanted = set(ownership.tokens_of_owner(args.owner))
            records = [r for r in ownership.registry if r.token_id in wanted]
        else:
            records = list(ownership.registry)

        tokens: List[Dict[str, Any]] = [
            {
                "token_id": r.token_id,
                "ticker": r.ticker,
                "brand": r.brand.name,
                "name": r.name,
                "size": r.size_label,
                "owner": ownership.owner_of(r.token_id),
            }
            for r in records
        ]
        return {"tokens": tokens, "count": len(tokens)}

    def _handle_token_metadata(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        return {"token_id": args.token_id, "uri": ownership.token_metadata(args.token_id, args.transport)}

    # Ledger handlers
    def _handle_ledger_balance(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        return {"address": args.address.lower(), "balance": ownership.balance_of(args.address)}

    def _handle_ledger_supply(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        return {
            "name": ownership.name(),
            "symbol": ownership.symbol(),
            "total_supply": ownership.total_supply(),
        }

    def _handle_ledger_transfer(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        ownership.transfer(args.caller, args.to, args.token)
        self._dirty = True
        return {"status": "transferred", "token_id": args.token, "owner": ownership.owner_of(args.token)}

    def _handle_ledger_approve(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        event = ownership.approve(args.caller, args.delegate, args.token)
        self._dirty = True
        return {"status": "approved", "token_id": args.token, "approved": event.approved}

    def _handle_ledger_transfer_from(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        ownership.transfer_from(args.caller, args.from_address, args.to, args.token)
        self._dirty = True
        return {"status": "transferred", "token_id": args.token, "owner": ownership.owner_of(args.token)}

    def _handle_ledger_check(self, args: argparse.Namespace) -> Any:
        ownership = self._load(args)
        ownership.check_invariants()
        return {
            "status": "ok",
            "total_supply": ownership.total_supply(),
            "events": len(ownership.event_log),
            "head": ownership.event_log.head,
        }

    # Events handlers
    def _handle_events_list(self, args: argparse.Namespace) -> Any:
        from sneakerchain.events import EVENT_TYPES

        ownership = self._load(args)
        if args.token is not None:
            events = ownership.history(args.token)
        else:
            events = ownership.event_log.events()
        if args.type:
            events = [e for e in events if isinstance(e, EVENT_TYPES[args.type])]
        return {"events": [e.to_dict() for e in events], "count": len(events)}

    # Config handlers
    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return {"path": args.path, "value": mgr.get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        errors = mgr.validate()
        return {"valid": len(errors) == 0, "errors": errors}

    def _handle_config_schema(self, args: argparse.Namespace) -> Any:
        mgr = get_config_manager()
        return mgr.export_schema()


def main() -> int:
    """CLI entry point."""
    cli = SneakerChainCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
