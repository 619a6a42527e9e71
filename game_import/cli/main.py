"""
Main CLI entry point for the game import package.
"""

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ..auth import TokenAuthorizer
from ..config import DATABASE_PATH
from ..database import GameStore
from ..error_handling import GameImportError
from ..importing import ImportRequest, create_orchestrator
from ..logging_config import setup_logging
from ..models import ImportResult

logger = logging.getLogger(__name__)

TOKEN_ENV = "GAME_IMPORT_TOKEN"


def _banner(title: str) -> None:
    print("\n" + "=" * 60)
    print(title)
    print("=" * 60)


def print_result(result: ImportResult) -> None:
    _banner("IMPORT RESULTS")
    print(f"Imported: {result.imported}")
    print(f"Failed: {result.failed}")
    if result.rate_limited:
        print("AI enhancement stopped early: provider rate limit reached")
    for game in result.games:
        print(f"✓ {game['title']} | {game['id']}")
    for error in result.errors:
        print(f"✗ {error}")
    print("=" * 60)


def _bearer(token: Optional[str]) -> Optional[str]:
    token = token or os.environ.get(TOKEN_ENV)
    return f"Bearer {token}" if token else None


def _default_options(args: argparse.Namespace) -> dict:
    options = {}
    if args.for_sale:
        options["is_for_sale"] = True
    if args.coming_soon:
        options["is_coming_soon"] = True
    for name in ("location_room", "location_shelf", "location_misc"):
        value = getattr(args, name)
        if value:
            options[name] = value
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Import board games into the catalog")
    parser.add_argument("--db", type=Path, default=DATABASE_PATH, help="SQLite database path")
    parser.add_argument("--log-file", type=str, default=None, help="Custom log file name or absolute path")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    grant = subparsers.add_parser("grant-admin", help="Issue an admin API token for a user")
    grant.add_argument("user_id")

    def import_command(name: str, help_text: str) -> argparse.ArgumentParser:
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--token", default=None, help=f"API token (defaults to ${TOKEN_ENV})")
        sub.add_argument("--enhance", action="store_true", help="Fill missing fields from BGG and AI")
        sub.add_argument("--for-sale", action="store_true", help="Mark imported games as for sale")
        sub.add_argument("--coming-soon", action="store_true", help="Mark imported games as coming soon")
        sub.add_argument("--location-room", default=None)
        sub.add_argument("--location-shelf", default=None)
        sub.add_argument("--location-misc", default=None)
        return sub

    import_command("import-csv", "Import games from a CSV file").add_argument("file", type=Path)
    import_command("import-collection", "Import a BGG user's owned games").add_argument("username")
    import_command("import-links", "Import games from BGG links").add_argument("links", nargs="+")
    import_command("import-url", "Import one game from a page URL").add_argument("url")

    lookup = subparsers.add_parser("lookup", help="Show BGG metadata for a link or id")
    lookup.add_argument("url_or_id")

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    return parser


def _build_request(args: argparse.Namespace) -> ImportRequest:
    base = {"enhance_with_bgg": args.enhance, "default_options": _default_options(args)}
    if args.command == "import-csv":
        return ImportRequest(mode="csv", csv_data=args.file.read_text(encoding="utf-8-sig"), **base)
    if args.command == "import-collection":
        return ImportRequest(mode="bgg_collection", bgg_username=args.username, **base)
    if args.command == "import-links":
        return ImportRequest(mode="bgg_links", bgg_links=args.links, **base)
    return ImportRequest(mode="single_url", url=args.url, **base)


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_file, command=args.command)

    try:
        if args.command == "init-db":
            GameStore(args.db)
            print(f"Database ready at {args.db}")
            return 0

        if args.command == "grant-admin":
            token = TokenAuthorizer(GameStore(args.db)).issue_token(args.user_id, admin=True)
            _banner("ADMIN TOKEN ISSUED")
            print(f"User: {args.user_id}")
            print(f"Token: {token}")
            print(f"Store it now; only its hash is kept. Pass it with --token or ${TOKEN_ENV}.")
            return 0

        if args.command == "serve":
            from ..api import create_app
            create_app(create_orchestrator(args.db)).run(host=args.host, port=args.port)
            return 0

        orchestrator = create_orchestrator(args.db)
        if args.command == "lookup":
            lookup = orchestrator.lookup(args.url_or_id)
            _banner("BGG LOOKUP")
            if lookup.is_found:
                print(json.dumps(lookup.value.to_dict(), indent=2))
                return 0
            print(f"Lookup failed: {lookup.reason}")
            return 1

        result = orchestrator.run(_build_request(args), _bearer(args.token))
        print_result(result)
        return 0 if result.failed == 0 else 1

    except GameImportError as e:
        logger.error(f"{args.command} failed: {e.message}")
        print(f"\nError: {e.message}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nProcess interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
