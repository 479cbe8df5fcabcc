"""
litedoc command line entry point.
Opens a connection over a directory of model stores and reports what is in it.
"""

import asyncio
import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, Any, List, Optional

import yaml

from .adapter import Adapter
from .config import LOG_LEVELS, ConnectionConfig
from .errors import LitedocError

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Set up logging configuration"""

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Configure root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    # Console handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # File handler if specified
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # Set specific logger levels
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def create_argument_parser() -> argparse.ArgumentParser:
    """Create command line argument parser"""

    parser = argparse.ArgumentParser(
        description="litedoc - inspect a directory of embedded document stores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report on the stores described by a models file
  python -m litedoc.main --db-path ./data --models models.yaml

  # Take connection settings from a YAML file, with debug logging
  python -m litedoc.main --config connection.yaml --models models.yaml --log-level DEBUG
        """,
    )

    parser.add_argument(
        "--config", "-c", type=str, help="Path to YAML connection configuration file"
    )
    parser.add_argument(
        "--models", "-m", type=str, required=True,
        help="YAML file mapping model names to attribute definitions",
    )
    parser.add_argument("--identity", type=str, help="Connection identity")
    parser.add_argument("--db-path", type=str, help="Directory holding the model stores")
    parser.add_argument(
        "--in-memory", action="store_true", help="Keep every model store in memory"
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: the configuration's log_level)",
    )
    parser.add_argument(
        "--log-file", type=str, help="Log file path (logs to stdout if not specified)"
    )

    return parser


def load_config(args: argparse.Namespace) -> ConnectionConfig:
    """Configuration file (or environment), then command line overrides"""
    if args.config:
        config = ConnectionConfig.from_file(args.config)
    else:
        config = ConnectionConfig.from_env()

    if args.identity:
        config.identity = args.identity
    if args.db_path:
        config.db_path = args.db_path
    if args.in_memory:
        config.in_memory = True
    if args.log_level:
        config.log_level = args.log_level
    if not config.identity:
        config.identity = "default"

    return config


def load_models(models_path: str) -> Dict[str, Any]:
    with open(models_path, "r") as f:
        return yaml.safe_load(f) or {}


async def inspect(config: ConnectionConfig, models: Dict[str, Any]) -> List[str]:
    """One summary line per model"""
    adapter = Adapter()
    await adapter.register_connection(config, models)
    try:
        lines = []
        for model_name in models:
            store = adapter.native(config.identity, model_name)
            count = await adapter.count(config.identity, model_name)
            indexes = await store.list_indexes()
            lines.append(
                f"{model_name}: {count} document(s), indexes: {', '.join(indexes) or '-'}"
            )
        return lines
    finally:
        await adapter.teardown()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    config = load_config(args)
    if config.log_level.upper() not in LOG_LEVELS:
        parser.error(f"Invalid log level: {config.log_level}")
    setup_logging(config.log_level, args.log_file)

    try:
        models = load_models(args.models)
        lines = asyncio.run(inspect(config, models))
    except (LitedocError, OSError, yaml.YAMLError) as e:
        logger.error(f"Failed to inspect stores: {e}")
        return 1

    for line in lines:
        print(line)
    return 0


if __name__ == "__main__":
    sys.exit(main())
