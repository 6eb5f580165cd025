"""Command-line utilities for session recall."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from typing import Any

from recall.clients.base import ClientError
from recall.config import RecallConfig
from recall.engine import RecallEngine
from recall.exceptions import RecallError
from recall.storage.migrations import run_migrations

logger = logging.getLogger(__name__)


def _parse_timestamp(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:  # pragma: no cover - user input validation
        raise argparse.ArgumentTypeError(
            "Timestamps must use ISO format (YYYY-MM-DDTHH:MM:SS)"
        ) from exc


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log snippets and recall them later")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply database migrations")

    log = subparsers.add_parser("log", help="Store and index a snippet")
    log.add_argument("text", help="Snippet text")
    log.add_argument(
        "--timestamp",
        help="When the snippet was spoken, in ISO format (defaults to now)",
        type=_parse_timestamp,
        default=None,
    )

    ask = subparsers.add_parser("ask", help="Answer a question from the logged snippets")
    ask.add_argument("question")

    search = subparsers.add_parser("search", help="Hybrid search over the logged snippets")
    search.add_argument("query")
    search.add_argument("-k", type=int, default=None, help="Number of results")

    tag = subparsers.add_parser("tag", help="Classify a transcript into incident tags")
    tag.add_argument("text")

    subparsers.add_parser("stats", help="Show index statistics")
    subparsers.add_parser("end-session", help="Delete all session data and clear the indexes")

    return parser


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _run_migrate(config: RecallConfig, args: argparse.Namespace) -> None:
    run_migrations(config.db_dsn)
    _emit({"migrated": True})


def _run_log(config: RecallConfig, args: argparse.Namespace) -> None:
    logged = RecallEngine(config).log_snippet(args.text, args.timestamp)
    _emit(logged.to_dict())


def _run_ask(config: RecallConfig, args: argparse.Namespace) -> None:
    _emit(RecallEngine(config).ask(args.question).to_dict())


def _run_search(config: RecallConfig, args: argparse.Namespace) -> None:
    results = RecallEngine(config).search(args.query, k=args.k)
    _emit([result.to_dict() for result in results])


def _run_tag(config: RecallConfig, args: argparse.Namespace) -> None:
    _emit({"tags": RecallEngine(config).tag(args.text)})


def _run_stats(config: RecallConfig, args: argparse.Namespace) -> None:
    _emit(RecallEngine(config).stats())


def _run_end_session(config: RecallConfig, args: argparse.Namespace) -> None:
    RecallEngine(config).end_session()
    _emit({"cleared": True})


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    config = RecallConfig()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands: dict[str, Any] = {
        "migrate": _run_migrate,
        "log": _run_log,
        "ask": _run_ask,
        "search": _run_search,
        "tag": _run_tag,
        "stats": _run_stats,
        "end-session": _run_end_session,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.error("Unknown command")
        return 1

    try:
        handler(config, args)
    except (RecallError, ClientError, ValueError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
