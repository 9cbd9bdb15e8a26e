#!/usr/bin/env python3
"""
Solana Sniper Bot - Entry Point
===============================

Watches pump.fun / PumpSwap / Raydium for new launches (and optionally
tracked wallets), scores each token, buys through Jupiter and manages
exits automatically.

Usage:
    # Run with config.json + .env in the current directory
    python main.py

    # Custom config, debug logging
    python main.py --config my-config.json --log-level debug

    # Show the resolved configuration and exit
    python main.py --show-config

DISCLAIMER: trading tokens carries significant risk. Use a dedicated
wallet with funds you can afford to lose, and try devnet first.
"""
import argparse
import asyncio
import json
import logging
import logging.handlers
import signal
import sys
from pathlib import Path

from sniper.config import LoggingConfig, load_config, validate_config
from sniper.errors import SniperError
from sniper.orchestrator import SniperBot

logger = logging.getLogger("sniper")


class ColoredFormatter(logging.Formatter):
    """Console formatter with level-based colors"""
    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[37m',      # White
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        message = super().format(record)
        color = self.COLORS.get(record.levelname, self.RESET)
        return f"{color}{message}{self.RESET}"


def setup_logging(config: LoggingConfig, level_override: str = None):
    """Console handler always; rotating file handler when enabled."""
    level_name = (level_override or config.level or 'info').upper()
    level = getattr(logging, level_name, logging.INFO)

    console = logging.StreamHandler()
    console.setFormatter(ColoredFormatter(
        '%(asctime)s | %(levelname)-7s | %(message)s', datefmt='%H:%M:%S',
    ))
    handlers = [console]

    if config.to_file:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / 'sniper.log',
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=5,
            encoding='utf-8',
        )
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s | %(levelname)-7s | %(name)s | %(message)s',
        ))
        handlers.append(file_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    # aiohttp / solana debug output is noise at our debug level
    logging.getLogger('aiohttp').setLevel(max(level, logging.WARNING))
    logging.getLogger('httpx').setLevel(max(level, logging.WARNING))


async def run_bot(bot: SniperBot):
    """Run until SIGINT / SIGTERM."""
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass  # Windows

    try:
        await bot.initialize()
        await bot.start()
        logger.info("Press Ctrl+C to stop the bot gracefully.")
        await stop_event.wait()
        logger.info("Received shutdown signal. Shutting down gracefully...")
    finally:
        await bot.stop()


def main():
    parser = argparse.ArgumentParser(
        description="Solana Sniper Bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py
  python main.py --config config.json --log-level debug
  python main.py --show-config
        """,
    )
    parser.add_argument(
        "--config", "-c",
        default="config.json",
        help="Path to the JSON configuration file (default: config.json)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Override the configured log level",
    )
    parser.add_argument(
        "--show-config",
        action="store_true",
        help="Print the resolved configuration and validation result, then exit",
    )

    args = parser.parse_args()

    try:
        config = load_config(args.config)
    except SniperError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging, args.log_level)

    if args.show_config:
        validation = validate_config(config)
        print(json.dumps(config.to_dict(), indent=2))
        for warning in validation.warnings:
            print(f"WARNING: {warning}")
        for error in validation.errors:
            print(f"ERROR: {error}")
        return 0 if validation.valid else 1

    bot = SniperBot(config)
    try:
        asyncio.run(run_bot(bot))
    except SniperError as e:
        logger.error(f"Fatal error: {e}")
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
