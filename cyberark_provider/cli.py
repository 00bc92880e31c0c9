"""Command-line entry point: validate, plan, apply, destroy and import.

This module serves as a CLI wrapper around cyberark_provider.engine.
"""
from __future__ import annotations
import argparse
import json
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import load_settings
from .engine import (
    CREATE,
    DELETE,
    NO_OP,
    REPLACE,
    UPDATE,
    ConfigurationError,
    Engine,
    PlannedChange,
    StateStore,
    load_configuration,
)
from .provider import CyberArkProvider, Diagnostics

logger = logging.getLogger(__name__)

_SYMBOLS = {
    CREATE: "+",
    UPDATE: "~",
    REPLACE: "-/+",
    DELETE: "-",
}


def _print_diagnostics(diags: Diagnostics) -> None:
    for diag in diags:
        print(str(diag), file=sys.stderr)


def _print_plan(engine: Engine, changes: List[PlannedChange]) -> None:
    pending = [change for change in changes if change.action != NO_OP]
    if not pending:
        print("No changes. Infrastructure matches the configuration.")
        return

    for change in pending:
        verb = "must be replaced" if change.action == REPLACE else f"will be {change.action}d"
        print(f"{_SYMBOLS[change.action]} {change.address} {verb}")
        resource = engine.provider.resource(change.type)
        values = change.after if change.after is not None else change.before
        if resource is None or not values:
            continue
        schema = resource.schema()
        names = change.changed or sorted(values)
        redacted = schema.redact({name: values.get(name) for name in names})
        for name, value in redacted.items():
            if value is not None:
                print(f"    {name} = {json.dumps(value)}")

    counts = {action: sum(1 for c in pending if c.action == action) for action in _SYMBOLS}
    print(
        f"Plan: {counts[CREATE] + counts[REPLACE]} to add, {counts[UPDATE]} to change, "
        f"{counts[DELETE] + counts[REPLACE]} to destroy."
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cyberark-provider", description="CyberArk resource lifecycle helper")
    parser.add_argument("--config", default=os.environ.get("CYBERARK_CONFIG", "main.yaml"),
                        help="YAML configuration file (default: main.yaml)")
    parser.add_argument("--state", default=os.environ.get("CYBERARK_STATE", "cyberark.tfstate.json"),
                        help="State file (default: cyberark.tfstate.json)")
    parser.add_argument("--log-level", default=None,
                        help="Logging level; defaults to CYBERARK_LOG_LEVEL or INFO")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    sub = parser.add_subparsers(dest="cmd")
    sub.add_parser("validate", help="Check the configuration without calling CyberArk")
    plan = sub.add_parser("plan", help="Show the changes apply would make")
    plan.add_argument("--refresh", action=argparse.BooleanOptionalAction, default=True)
    sub.add_parser("apply", help="Create, update and delete resources to match the configuration")
    sub.add_parser("destroy", help="Delete every resource in the state")
    imp = sub.add_parser("import", help="Bring an existing object under management")
    imp.add_argument("address", help="Resource address, e.g. cyberark_safe.vault")
    imp.add_argument("id", help="Remote object ID")
    sub.add_parser("schema", help="Print provider, resource and data source schemas as JSON")
    sub.add_parser("token", help="Print the Identity token (auth_token data source)")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Command-line entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.cmd:
        parser.print_help()
        sys.exit(2)

    level = (args.log_level or os.environ.get("CYBERARK_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    provider = CyberArkProvider(version=__version__)
    if args.cmd == "schema":
        print(json.dumps(provider.schemas(), indent=2))
        return

    try:
        config = load_configuration(args.config)
        settings = load_settings(config.provider)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    engine = Engine(provider, config, StateStore(args.state), settings)
    diags = Diagnostics()
    try:
        if args.cmd == "validate":
            engine.validate(diags)
            if not diags.has_error():
                print("Success! The configuration is valid.")
        elif args.cmd == "plan":
            changes = engine.plan(diags, refresh=args.refresh)
            if not diags.has_error():
                _print_plan(engine, changes)
        elif args.cmd == "apply":
            applied = engine.apply(diags)
            print(f"Apply complete! {len(applied)} change(s) applied.")
        elif args.cmd == "destroy":
            destroyed = engine.destroy(diags)
            print(f"Destroy complete! {len(destroyed)} resource(s) destroyed.")
        elif args.cmd == "import":
            if engine.import_resource(args.address, args.id, diags) is not None:
                print(f"Import successful: {args.address}")
        elif args.cmd == "token":
            for values in engine.read_data_sources(diags).values():
                if "token" in values:
                    print(values["token"])
                    break
            else:
                if not diags.has_error() and engine.provider.api is not None:
                    print(engine.provider.api.token_text)
    except ConfigurationError as exc:
        diags.add_error("Invalid state", str(exc))
    finally:
        engine.close()

    _print_diagnostics(diags)
    if diags.has_error():
        sys.exit(1)


if __name__ == "__main__":
    main()
