"""Command line interface for treesync package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from rich.logging import RichHandler

from . import __version__
from .cli_progress import SyncProgressDisplay, render_configuration_summary
from .config import (
    DEFAULT_CONFIG_FILE,
    SyncConfig,
    build_store_config,
    build_sync_config,
    find_env_file,
    load_env_file,
    resolve_settings,
    save_config,
)
from .errors import SyncError
from .models import StoreConfig
from .services.ledger import ProgressLedger
from .services.object_store import HTTPObjectStore
from .orchestrator import UploadOrchestrator


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    --silent wins over everything, then --debug, then the explicit or
    configured level. Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent:
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, (log_level or "WARNING").upper(), logging.WARNING)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _sync_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "source_dir": str(args.source) if args.source else None,
        "target_prefix": args.prefix,
        "concurrency": args.concurrency,
        "max_retries": args.max_retries,
        "retry_delay_ms": args.retry_delay_ms,
        "ledger": str(args.ledger) if args.ledger else None,
        "record_failures": args.record_failures,
        "flush_every": args.flush_every,
        "log_level": args.log_level,
        "endpoint": args.endpoint,
        "bucket": args.bucket,
        "send_checksum": args.checksum,
    }


async def _run_sync(config: SyncConfig, store_config: StoreConfig) -> int:
    ledger = ProgressLedger(config.ledger_path, flush_every=config.flush_every)
    display = SyncProgressDisplay()

    async with HTTPObjectStore.from_config(store_config) as store:
        orchestrator = UploadOrchestrator(store, ledger, record_failures=config.record_failures)
        display.attach(orchestrator)
        try:
            report = await orchestrator.run(
                config.source_dir,
                config.target_prefix,
                config.concurrency_limit,
                config.retry_policy,
            )
        finally:
            display.close()

    return 0 if report.all_success else 1


async def _run_serve(store_config: StoreConfig, host: str, port: int, prefix: str) -> int:
    import uvicorn

    from .ingress import create_app

    async with HTTPObjectStore.from_config(store_config) as store:
        app = create_app(store, prefix=prefix, public_base=store.public_url("").rstrip("/"))
        server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_config=None))
        await server.serve()
    return 0


async def _clear_ledger(path: Path) -> int:
    ledger = ProgressLedger(path)
    await ledger.load()
    count = len(ledger)
    await ledger.clear()
    print(f"Cleared {count} ledger entries from {path}")
    return 0


def _cmd_sync(args: argparse.Namespace) -> int:
    settings = resolve_settings(_sync_overrides(args), config_path=args.config)
    effective_log_mode = _setup_logging(args.debug, args.silent, settings.get("log_level"))

    config = build_sync_config(settings)
    store_config = build_store_config(settings)
    save_config(args.config or DEFAULT_CONFIG_FILE, settings)

    render_configuration_summary(
        {
            "Source": str(config.source_dir),
            "Prefix": config.target_prefix or "(bucket root)",
            "Endpoint": store_config.endpoint,
            "Bucket": store_config.bucket or "-",
            "Concurrency": config.concurrency_limit,
            "Retries": f"{config.retry_policy.max_attempts} (base {config.retry_policy.base_delay_ms}ms)",
            "Ledger": str(config.ledger_path),
            "Record Failures": "yes" if config.record_failures else "no",
            "Logging": effective_log_mode,
        }
    )
    return asyncio.run(_run_sync(config, store_config))


def _cmd_serve(args: argparse.Namespace) -> int:
    settings = resolve_settings(
        {"endpoint": args.endpoint, "bucket": args.bucket, "log_level": args.log_level},
        config_path=args.config,
    )
    _setup_logging(args.debug, args.silent, settings.get("log_level"))
    store_config = build_store_config(settings)
    return asyncio.run(_run_serve(store_config, args.host, args.port, args.prefix))


def _cmd_clear_ledger(args: argparse.Namespace) -> int:
    settings = resolve_settings({"ledger": str(args.ledger) if args.ledger else None}, config_path=args.config)
    _setup_logging(args.debug, args.silent, settings.get("log_level"))
    return asyncio.run(_clear_ledger(Path(settings["ledger"])))


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"JSON config file with last-used settings (default {DEFAULT_CONFIG_FILE})",
    )
    common.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    common.add_argument("--endpoint", default=None, help="Object store endpoint URL")
    common.add_argument("--bucket", default=None, help="Bucket name")
    common.add_argument("--debug", action="store_true", help="Enable debug logs")
    common.add_argument("--silent", action="store_true", help="Disable logs")
    common.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )

    parser = argparse.ArgumentParser(
        prog="treesync",
        description="Synchronize a local directory tree into an object store.",
    )
    parser.add_argument("--version", action="version", version=f"treesync {__version__}")
    subparsers = parser.add_subparsers(dest="command")

    sync = subparsers.add_parser("sync", parents=[common], help="Upload a directory tree")
    sync.add_argument("source", nargs="?", type=Path, help="Local directory to sync")
    sync.add_argument("prefix", nargs="?", default=None, help="Remote prefix (example: assets/2026)")
    sync.add_argument("-j", "--concurrency", type=int, default=None, help="Max files in flight (default 10)")
    sync.add_argument("-r", "--max-retries", type=int, default=None, help="Retries on network errors (default 3)")
    sync.add_argument(
        "--retry-delay-ms",
        type=int,
        default=None,
        help="Base retry delay; retry n waits n times this (default 1000)",
    )
    sync.add_argument("--ledger", type=Path, default=None, help="Ledger file for resumable runs")
    sync.add_argument("--flush-every", type=int, default=None, help="Flush the ledger every N items (default 1)")
    sync.add_argument(
        "--record-failures",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Record failed files in the ledger so later runs skip them (default off)",
    )
    sync.add_argument(
        "--checksum",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Send BLAKE3 checksum headers (default on)",
    )
    sync.set_defaults(handler=_cmd_sync)

    serve = subparsers.add_parser("serve", parents=[common], help="Run the single-file upload ingress")
    serve.add_argument("--host", default="0.0.0.0", help="Bind address")
    serve.add_argument("--port", type=int, default=18400, help="Bind port")
    serve.add_argument("--prefix", default="assets", help="Remote prefix for ingress uploads")
    serve.set_defaults(handler=_cmd_serve)

    clear = subparsers.add_parser("clear-ledger", parents=[common], help="Forget all synced entries")
    clear.add_argument("--ledger", type=Path, default=None, help="Ledger file to clear")
    clear.set_defaults(handler=_cmd_clear_ledger)

    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "handler", None):
        parser.print_help()
        return 0

    used_env_file = find_env_file(args.env_file)
    try:
        if used_env_file is not None:
            load_env_file(used_env_file)
        return args.handler(args)
    except SyncError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
