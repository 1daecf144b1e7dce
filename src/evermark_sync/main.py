"""Main entry point for the Evermark voting sync service."""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

import uvicorn

from .config import Config, default_config_path, load_config
from .errors import ValidationError
from .log import setup_app_logging
from .runtime import VotingSyncApp
from .server import create_app

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Evermark voting sync - reconcile voting contract state into the cache"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=default_config_path(),
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8080)

    sync_evermark = commands.add_parser("sync-evermark", help="Re-derive one evermark tally")
    sync_evermark.add_argument("evermark_id")
    sync_evermark.add_argument("--cycle", type=int, default=None)

    sync_cycle = commands.add_parser("sync-cycle", help="Re-derive cycle metadata")
    sync_cycle.add_argument("--cycle", type=int, default=None)

    sync_recent = commands.add_parser("sync-recent", help="Backfill votes from recent blocks")
    sync_recent.add_argument("--blocks", type=int, default=None)

    refresh = commands.add_parser("refresh-stale", help="Re-derive stale tallies")
    refresh.add_argument("--max-age-minutes", type=int, default=None)
    refresh.add_argument("--limit", type=int, default=None)

    commands.add_parser("stats", help="Print cache health")

    return parser.parse_args(argv)


async def run_command(args, config: Config) -> dict:
    """Run one sync command and return a JSON-serializable result."""
    async with VotingSyncApp(config) as service:
        orchestrator = service.orchestrator

        if args.command == "sync-evermark":
            try:
                result = await orchestrator.sync_evermark_voting_data(
                    args.evermark_id, args.cycle
                )
            except ValidationError as e:
                logger.error(f"Not syncing evermark {args.evermark_id!r}: {e}")
                return {"synced": False, "error": str(e)}
            return {"synced": result is not None, "tally": asdict(result) if result else None}

        if args.command == "sync-cycle":
            cycle = args.cycle
            if cycle is None:
                cycle = await service.reader.get_current_cycle()
                if cycle is None:
                    return {"synced": False, "error": "No active cycle found"}
            result = await orchestrator.sync_voting_cycle_data(cycle)
            tallies = await orchestrator.sync_cycle_tallies(cycle)
            return {
                "synced": result is not None,
                "cycle": asdict(result) if result else None,
                "evermarksSynced": tallies.processed,
            }

        if args.command == "sync-recent":
            result = await orchestrator.sync_recent_voting_events(args.blocks)
            return {"synced": result is not None, "result": asdict(result) if result else None}

        if args.command == "refresh-stale":
            max_age = args.max_age_minutes
            if max_age is None:
                max_age = config.sync.stale_after_minutes
            limit = args.limit
            if limit is None:
                limit = config.sync.stale_batch_limit
            result = await orchestrator.refresh_stale_tallies(max_age_minutes=max_age, limit=limit)
            return asdict(result)

        if args.command == "stats":
            stats = await service.reporter.get_cache_stats()
            return stats.to_dict()

    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None):
    """Main entry point."""
    args = parse_args(argv)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Configuration file not found: {config_path}")
        sys.exit(1)

    config = load_config(config_path)

    # Override log level if debug flag is set
    if args.debug:
        config.logging.level = "DEBUG"

    setup_app_logging(config.logging)

    if args.command == "serve":
        uvicorn.run(create_app(config), host=args.host, port=args.port, log_config=None)
        return

    try:
        result = asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        return

    print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
