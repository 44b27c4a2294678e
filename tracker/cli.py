#!/usr/bin/env python3
"""
Contract tracker command line.

Usage examples:
  # Serve JSON-RPC over an existing contract log
  python -m tracker.cli serve --db sqlite:////var/lib/node/contract_tracker.db

  # Print records for up to 10 blocks starting at block 100
  python -m tracker.cli dump --since 100 --max-blocks 10

  # Log and index sizes
  python -m tracker.cli stats

All commands read the configuration the same way the node plugin does
(TRACKER_* environment, TRACKER_CONFIG file); `--config` and `--db` override
it. Without a node attached there is no execution engine, so the process only
reads the log.
"""

from __future__ import annotations

import argparse
import json
import sys
import typing as t

from tracker import logging as tlog
from tracker.config import Config, load_config
from tracker.errors import TrackerError
from tracker.plugin import ContractTracker
from tracker.version import __version__
from tracker.vm import OfflineInvoker


def _load(args: argparse.Namespace) -> Config:
    overrides: dict[str, dict[str, t.Any]] = {}
    if args.db:
        overrides["db"] = {"uri": args.db}
    if args.log_level:
        overrides["log"] = {"level": args.log_level}
    return load_config(args.config, overrides or None)


def _cmd_serve(cfg: Config, args: argparse.Namespace) -> int:
    from tracker.rpc.server import serve

    if args.host:
        cfg.rpc.host = args.host
    if args.port is not None:
        cfg.rpc.port = args.port
    with ContractTracker(cfg, invoker=OfflineInvoker()) as tracker:
        serve(cfg, tracker)
    return 0


def _cmd_dump(cfg: Config, args: argparse.Namespace) -> int:
    with ContractTracker(cfg, invoker=OfflineInvoker()) as tracker:
        states = tracker.get_contract_states([args.since, args.max_blocks])
    if states is None:
        print("invalid --since/--max-blocks", file=sys.stderr)
        return 2
    indent = 2 if args.pretty else None
    json.dump(states, sys.stdout, indent=indent, ensure_ascii=False)
    sys.stdout.write("\n")
    return 0


def _cmd_stats(cfg: Config, args: argparse.Namespace) -> int:
    with ContractTracker(cfg, invoker=OfflineInvoker()) as tracker:
        stats = tracker.stats()
    print(json.dumps(stats))
    return 0


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Contract state tracker")
    ap.add_argument("--config", help="TOML or JSON config file (default: $TRACKER_CONFIG)")
    ap.add_argument("--db", help="DB URI, e.g. sqlite:///path/contract_tracker.db")
    ap.add_argument("--log-level", help="DEBUG, INFO, WARNING, ERROR")
    ap.add_argument("--version", action="version", version=f"tracker {__version__}")
    sub = ap.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("serve", help="Serve JSON-RPC over the contract log")
    sp.add_argument("--host", help="Bind address (default from config)")
    sp.add_argument("--port", type=int, help="Bind port (default from config)")
    sp.set_defaults(func=_cmd_serve)

    dp = sub.add_parser("dump", help="Print records as JSON")
    dp.add_argument("--since", type=int, default=0, help="First block index")
    dp.add_argument("--max-blocks", type=int, default=100, help="Distinct blocks to include")
    dp.add_argument("--pretty", action="store_true", help="Indent the JSON output")
    dp.set_defaults(func=_cmd_dump)

    st = sub.add_parser("stats", help="Print log and index sizes")
    st.set_defaults(func=_cmd_stats)

    args = ap.parse_args(argv)
    try:
        cfg = _load(args)
    except TrackerError as e:
        print(f"config error: {e}", file=sys.stderr)
        return 2
    tlog.configure_from_config(cfg)
    return args.func(cfg, args)


if __name__ == "__main__":
    sys.exit(main())
