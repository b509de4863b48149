from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Optional, Sequence

from ..ai import SummaryService
from ..config import load_settings
from ..errors import InventoryError
from ..logging import get_logger
from ..paths import expand_abs
from ..store import ItemStore

LOG = get_logger("cli-main")


def _add_serve_cli(subparsers: argparse._SubParsersAction) -> None:
    serve = subparsers.add_parser("serve", help="Run the inventory HTTP API with uvicorn.")
    serve.add_argument("--host", help="Bind address (default: HOST or 0.0.0.0)")
    serve.add_argument("--port", type=int, help="Port (default: PORT or 10000)")
    serve.add_argument("--reload", action="store_true", help="Enable auto-reload (development only)")
    serve.add_argument("--log-level", default="info")
    serve.add_argument(
        "--allow-origin",
        action="append",
        dest="allow_origins",
        help="Allowed CORS origin (can be provided multiple times, use '*' for any).",
    )

    def _serve(ns: argparse.Namespace) -> int:
        from ..api import create_app
        import uvicorn

        settings = load_settings(os.getcwd())
        if ns.allow_origins:
            settings.allow_origins = ns.allow_origins
        host = ns.host or settings.host
        port = ns.port or settings.port

        app = create_app(settings=settings)
        LOG.info(f"Serving inventory API on http://{host}:{port}")
        uvicorn.run(
            app,
            host=host,
            port=port,
            reload=ns.reload,
            log_level=ns.log_level,
        )
        return 0

    serve.set_defaults(handler=_serve)


def _add_init_db_cli(subparsers: argparse._SubParsersAction) -> None:
    init_db = subparsers.add_parser(
        "init-db",
        help="Create the items table and seed sample data when it is empty.",
    )
    init_db.add_argument(
        "--reset",
        action="store_true",
        help="Delete all items and reseed the sample dataset (destructive).",
    )

    def _init_db(ns: argparse.Namespace) -> int:
        settings = load_settings(os.getcwd())
        store = ItemStore(settings.db_path)
        try:
            if ns.reset:
                LOG.warning("Resetting inventory: all existing items will be deleted.")
                seeded = store.reset()
            else:
                seeded = store.bootstrap()
            total = store.count()
        finally:
            store.close()
        LOG.info(f"Inventory DB ready at: {store.db_path} (seeded={seeded}, total={total})")
        print(json.dumps({"db_path": store.db_path, "seeded": seeded, "total": total}))
        return 0

    init_db.set_defaults(handler=_init_db)


def _add_summarize_cli(subparsers: argparse._SubParsersAction) -> None:
    summarize = subparsers.add_parser("summarize", help="Summarize inventory notes with OpenAI.")
    source = summarize.add_mutually_exclusive_group(required=True)
    source.add_argument("--notes", help="Notes text")
    source.add_argument("--file", help="Path to a UTF-8 text file with notes")

    def _summarize(ns: argparse.Namespace) -> int:
        if ns.file:
            with open(expand_abs(ns.file), "r", encoding="utf-8") as f:
                notes = f.read()
        else:
            notes = ns.notes
        settings = load_settings(os.getcwd())
        service = SummaryService(settings.openai_api_key, model=settings.openai_model)
        try:
            analysis = service.summarize(notes)
        except InventoryError as e:
            LOG.error(f"Summary failed ({e.status_code}): {e.message}")
            return 1
        print(analysis)
        return 0

    summarize.set_defaults(handler=_summarize)


def main(argv: Optional[Sequence[str]] = None) -> int:
    provided = list(argv) if argv is not None else sys.argv[1:]
    parser = argparse.ArgumentParser(
        prog="inventory-manager",
        description="Inventory CRUD API with optional AI note summaries.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_serve_cli(subparsers)
    _add_init_db_cli(subparsers)
    _add_summarize_cli(subparsers)

    args = parser.parse_args(provided)
    code = args.handler(args)
    LOG.info(f"Subcommand '{args.command}' finished with exit code {code}.")
    return code


if __name__ == "__main__":
    sys.exit(main())
