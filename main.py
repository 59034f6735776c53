#!/usr/bin/env python3
"""
Fundex: expense fraud and reliability scoring for NGO volunteers.
Main application entry point with support for various run modes.

Usage:
    python main.py [options]

Run modes:
    - server: Run as a web server (default)
    - cli: Run as an interactive command line tool
    - rescore: Re-score stored expenses that have no fraud score
"""

import os
import sys
import logging
import argparse
from typing import Any, Dict

# Version
__version__ = "1.0.0"

# Run modes
RUN_MODE_SERVER = "server"
RUN_MODE_CLI = "cli"
RUN_MODE_RESCORE = "rescore"


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Fundex: expense fraud and reliability scoring",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )
    parser.add_argument("--env", help="Environment (development, staging, production)", default="development")
    parser.add_argument("--log-level", help="Logging level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])
    parser.add_argument("--mode", help="Run mode",
                        choices=[RUN_MODE_SERVER, RUN_MODE_CLI, RUN_MODE_RESCORE],
                        default=RUN_MODE_SERVER)
    parser.add_argument("--input", help="JSON file of stored expenses (rescore mode)")
    parser.add_argument("--output", help="Where to write re-scored expenses (rescore mode)")
    parser.add_argument("--port", help="Port for server mode", type=int)
    parser.add_argument("--host", help="Host for server mode")
    parser.add_argument("--version", action="store_true", help="Show version and exit")

    return parser.parse_args(argv)


def run_server_mode(config: Dict[str, Any], args: argparse.Namespace) -> None:
    """Run in server mode."""
    import uvicorn
    from server.app import create_app

    server_config = config.get("server", {})
    host = args.host or server_config.get("host", "0.0.0.0")
    port = args.port or server_config.get("port", 8000)

    logger = logging.getLogger("fundex.main")
    logger.info(f"Starting Fundex server on {host}:{port}")

    app = create_app(config=config)
    uvicorn.run(app, host=host, port=port, log_level=logging.getLevelName(logging.getLogger("fundex").level).lower())


def run_cli_mode(config: Dict[str, Any], args: argparse.Namespace) -> None:
    """Run in command line interface mode."""
    from agents.expense_verification_agent import ExpenseVerificationAgent
    from cli.cli_app import run_cli

    logger = logging.getLogger("fundex.main")
    logger.info("Starting Fundex CLI")

    agent = ExpenseVerificationAgent(
        flag_threshold=config.get("verification", {}).get("flag_threshold", 50),
        processor_id=config.get("google_cloud", {}).get("ocr_processor_id"),
    )
    run_cli(agent=agent, config=config)


def run_rescore_mode(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Re-score stored expenses from a JSON file."""
    from batch.rescore import rescore_file

    logger = logging.getLogger("fundex.main")

    if not args.input:
        logger.error("Expense file (--input) is required for rescore mode")
        sys.exit(1)

    try:
        summary = rescore_file(args.input, args.output)
    except ValueError as e:
        logger.error(f"Error re-scoring expenses: {e}")
        sys.exit(1)

    logger.info(
        f"Re-scoring completed. {summary['total']} expense(s), "
        f"{summary['success']} updated, {summary['failed']} failed."
    )
    return summary


def main(argv=None):
    """Main application entry point."""
    args = parse_arguments(argv)

    if args.version:
        print(f"Fundex version {__version__}")
        sys.exit(0)

    # Set environment variable for config
    os.environ.setdefault('FUNDEX_ENV', args.env)

    from config.config_loader import load_config
    from utils.logging_config import configure_logging

    config = load_config(env=args.env)
    logging_config = config.get("logging", {})
    configure_logging(
        log_level=args.log_level or os.environ.get("FUNDEX_LOG_LEVEL") or logging_config.get("level"),
        log_file=logging_config.get("file"),
    )
    logger = logging.getLogger("fundex.main")

    logger.info("=" * 60)
    logger.info(f"Fundex v{__version__} - expense verification")
    logger.info("=" * 60)
    logger.info(f"Starting Fundex in {config['environment']} mode")

    if args.mode == RUN_MODE_SERVER:
        run_server_mode(config, args)
    elif args.mode == RUN_MODE_CLI:
        run_cli_mode(config, args)
    elif args.mode == RUN_MODE_RESCORE:
        run_rescore_mode(config, args)
    else:
        # Should never happen due to argparse choices
        logger.error(f"Unknown run mode: {args.mode}")
        sys.exit(1)

    logger.info("Fundex shutdown complete")


if __name__ == "__main__":
    main()
