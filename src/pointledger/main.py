"""Ledger service entry point."""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn

from pointledger.service.logging import configure_logging


def main() -> int:
    """Main entry point for the ledger service."""
    parser = argparse.ArgumentParser(
        prog="pointledger",
        description="Point Ledger - asset ownership registry over a key-value state store",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Host to bind to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("POINTLEDGER_PORT", "4950")),
        help="Port to listen on (default: 4950)",
    )
    parser.add_argument(
        "--store",
        choices=["memory", "sqlite"],
        default=None,
        help="State store backend (default: POINTLEDGER_STORE or memory)",
    )
    parser.add_argument(
        "--db-path",
        default=None,
        help="SQLite database path when --store=sqlite",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Force JSON log output (default: auto-detect)",
    )

    args = parser.parse_args()

    configure_logging(
        level=args.log_level.upper(),
        json_output=args.json_logs if args.json_logs else None,
    )

    # The app factory reads its configuration from the environment
    os.environ["POINTLEDGER_PORT"] = str(args.port)
    if args.store:
        os.environ["POINTLEDGER_STORE"] = args.store
    if args.db_path:
        os.environ["POINTLEDGER_DB_PATH"] = args.db_path

    try:
        uvicorn.run(
            "pointledger.service.app:create_app_from_env",
            host=args.host,
            port=args.port,
            reload=args.reload,
            log_level=args.log_level,
            factory=True,
        )
        return 0
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0


if __name__ == "__main__":
    sys.exit(main())
