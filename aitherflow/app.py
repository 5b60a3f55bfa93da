"""Aither Flow: main application entry point."""

from __future__ import annotations

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [pid=%(process)d] %(message)s"


def configure_logging(
    level: str,
    log_file: Path,
    *,
    to_stderr: bool = False,
) -> None:
    """Send all log records to a rotating file (and optionally stderr)."""
    log_file.parent.mkdir(parents=True, exist_ok=True)
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler = RotatingFileHandler(
        log_file, maxBytes=2_000_000, backupCount=5, encoding="utf-8"
    )
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    if to_stderr:
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)


def _list_projects(config_root: Path) -> int:
    from aitherflow.engine.errors import ProjectStoreError
    from aitherflow.shared.services.projects import ProjectStore

    try:
        entries = ProjectStore(config_root / "projects.json").load()
    except ProjectStoreError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if not entries:
        print("No saved projects.")
    for entry in entries:
        print(f"  {entry.name}\t{entry.path}")
    return 0


def main() -> None:
    import argparse

    from aitherflow.shared.services.paths import config_dir, log_file_path

    parser = argparse.ArgumentParser(
        prog="aitherflow",
        description="Aither Flow: terminal chat client for Claude CLI agents",
    )
    parser.add_argument(
        "--config", metavar="PATH",
        help="YAML config file (default: <config dir>/aitherflow.yaml if present)",
    )
    parser.add_argument(
        "--project", metavar="PATH",
        help="Bookmark and open this project folder on start",
    )
    parser.add_argument(
        "--list-projects", action="store_true",
        help="List saved projects and exit (no TUI)",
    )
    parser.add_argument(
        "--log-level", metavar="LEVEL",
        help="Log level (default: $AITHERFLOW_LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-stderr", action="store_true",
        help="Also write log records to stderr",
    )
    args = parser.parse_args()

    root_dir = config_dir()
    if args.list_projects:
        sys.exit(_list_projects(root_dir))

    log_file = log_file_path()
    configure_logging(
        args.log_level or os.getenv("AITHERFLOW_LOG_LEVEL", "INFO"),
        log_file,
        to_stderr=args.log_stderr,
    )
    logger = logging.getLogger(__name__)

    import yaml

    from aitherflow.adapters.conductor import Conductor
    from aitherflow.engine.yaml_config import resolve_config
    from aitherflow.shared.services.preferences import UserPreferences
    from aitherflow.tui.app import AitherFlowApp

    try:
        config = resolve_config(args.config, root_dir / "aitherflow.yaml")
    except (OSError, yaml.YAMLError) as exc:
        print(f"Error: could not load config {args.config}: {exc}", file=sys.stderr)
        sys.exit(2)
    if args.log_level is None and config.log_level:
        logging.getLogger().setLevel(
            getattr(logging, config.log_level.upper(), logging.INFO)
        )

    logger.info(
        "Starting Aither Flow cwd=%s config=%s log=%s",
        Path.cwd(), args.config or "<default>", log_file,
    )
    app = AitherFlowApp(
        Conductor(config, config_root=root_dir),
        preferences=UserPreferences.load(root_dir / "preferences.json"),
        startup_project=args.project,
    )
    app.run()


if __name__ == "__main__":
    main()
