"""ESG Registry command line.

Usage:
    python -m esg_registry serve [--host HOST] [--port PORT]
    python -m esg_registry init-db
    python -m esg_registry reconcile ADDRESS

Commands:
    serve       Run the HTTP API with uvicorn
    init-db     Create the mirror tables in DATABASE_URL
    reconcile   Compare one owner's ledger records with the mirror and
                print the report as JSON (exit status 1 when inconsistent,
                2 on error)

Configuration is read from the environment and an optional .env file
(see esg_registry.config.ledger_config).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from esg_registry.bootstrap import build_container, configure_logging, load_dotenv_file
from esg_registry.domain.errors import RegistryError
from esg_registry.domain.models.participant import normalize_address


async def run_init_db() -> int:
    from esg_registry.bootstrap.database import create_session_factory
    from esg_registry.infrastructure.adapters.sqlalchemy_mirror import create_schema

    engine, _ = create_session_factory()
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()
    print("Mirror tables created")
    return 0


async def run_reconcile(address: str) -> int:
    container = build_container()
    try:
        report = await container.store.find_unmirrored(
            normalize_address(address), container.ledger
        )
    except RegistryError as e:
        print(f"{e.kind}: {e.detail}", file=sys.stderr)
        return 2
    finally:
        await container.close()

    print(
        json.dumps(
            {
                "owner_address": report.owner_address,
                "consistent": report.is_consistent,
                "ledger_record_ids": [str(i) for i in report.ledger_record_ids],
                "unmirrored_ids": [str(i) for i in report.unmirrored_ids],
                "unreadable_ids": [str(i) for i in report.unreadable_ids],
                "divergent": {
                    str(view.record.ledger_record_id): list(view.divergent_fields)
                    for view in report.divergent
                },
            },
            indent=2,
        )
    )
    return 0 if report.is_consistent else 1


def serve(host: str, port: int) -> int:
    import uvicorn

    from esg_registry.api.main import create_app

    uvicorn.run(create_app(), host=host, port=port)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="esg_registry",
        description="ESG Registry dual-ledger service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the API against a local node and PostgreSQL
  LEDGER_BACKEND=web3 MIRROR_BACKEND=sql python -m esg_registry serve

  # Find ledger records the mirror is missing for one owner
  python -m esg_registry reconcile 0x1234...
""",
    )
    subcommands = parser.add_subparsers(dest="command", required=True)

    serve_parser = subcommands.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    subcommands.add_parser("init-db", help="Create the mirror tables")

    reconcile_parser = subcommands.add_parser(
        "reconcile", help="Reconciliation scan for one owner"
    )
    reconcile_parser.add_argument("address", help="Owner ledger address")

    args = parser.parse_args(argv)
    load_dotenv_file()

    if args.command == "serve":
        return serve(args.host, args.port)

    configure_logging()
    if args.command == "init-db":
        return asyncio.run(run_init_db())
    return asyncio.run(run_reconcile(args.address))


if __name__ == "__main__":
    sys.exit(main())
