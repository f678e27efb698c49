"""Command line entry point: ``tasks-web emulator`` and ``tasks-web serve``.

``serve`` starts the database emulator first and only then the web server,
so that the server never runs against a database that is not listening.
"""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import replace
from pathlib import Path
from typing import Iterable

import uvicorn

from tasks_web.app import create_app
from tasks_web.config.settings import Settings, SettingsError, load_settings
from tasks_web.core.emulator import LaunchResult, launch_emulator, stop_emulator
from tasks_web.state.app_state import AppState


logger = logging.getLogger("tasks_web")


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )


def _start_emulator(settings: Settings) -> LaunchResult:
    return launch_emulator(
        settings.emulator_bin_dir,
        settings.emulator_rules_file,
        timeout=settings.emulator_start_timeout,
    )


def cmd_emulator(settings: Settings) -> int:
    result = _start_emulator(settings)
    if not result.ok:
        return 1
    try:
        while result.running:
            time.sleep(1)
        logger.error("Emulator exited with code %s", result.process.returncode)
        return 1
    except KeyboardInterrupt:
        return 0
    finally:
        stop_emulator(result)


def cmd_serve(settings: Settings, skip_emulator: bool = False) -> int:
    result = None
    if not skip_emulator:
        result = _start_emulator(settings)
        if not result.ok:
            logger.error("Not starting the server: %s", result.error)
            return 1
    try:
        app = create_app(AppState(settings=settings))
        uvicorn.run(app, host=settings.server_host, port=settings.server_port, log_level=settings.log_level.lower())
        return 0
    finally:
        if result is not None:
            stop_emulator(result)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="tasks-web",
        description="Run the tasks web server against a local Firebase RDB emulator.",
    )
    p.add_argument("--log-level", default=None, help="Overrides LOG_LEVEL (DEBUG, INFO, ...).")
    p.add_argument("--bin-dir", type=Path, default=None, help="Directory holding the firebase-server executable.")
    p.add_argument("--rules", type=Path, default=None, help="Database rules file passed to the emulator.")
    p.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the emulator port.")

    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("emulator", help="Start the emulator and wait until interrupted.")

    p_serve = sub.add_parser("serve", help="Start the emulator, then the web server.")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--skip-emulator", action="store_true", help="Use an emulator that is already running.")

    return p


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    overrides = {
        "log_level": args.log_level.upper() if args.log_level else None,
        "emulator_bin_dir": args.bin_dir,
        "emulator_rules_file": args.rules,
        "emulator_start_timeout": args.timeout,
        "server_host": getattr(args, "host", None),
        "server_port": getattr(args, "port", None),
    }
    return replace(settings, **{k: v for k, v in overrides.items() if v is not None})


def main(argv: Iterable[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    try:
        settings = _apply_overrides(load_settings(), args)
    except SettingsError as exc:
        parser.error(str(exc))
    setup_logging(settings.log_level)

    if args.cmd == "emulator":
        return cmd_emulator(settings)
    if args.cmd == "serve":
        return cmd_serve(settings, skip_emulator=args.skip_emulator)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
