"""Entry point to start the webhook bridge.

Usage:
    python scripts/run_bridge.py                         # ~/.webhookbridge/config.json
    python scripts/run_bridge.py --config webhooks.json
    python scripts/run_bridge.py --test "Kitchen Light"  # fire one 'on' endpoint and exit

Environment (also read from ~/.webhookbridge/.env):
    WEBHOOKS_CONFIG_PATH, WEBHOOKS_TIMEOUT, DYNAMODB_TABLE_NAME, AWS_DEFAULT_REGION
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

from webhookbridge.bridge import WebhooksPlatform, load_config
from webhookbridge.exceptions import WebhookConfigError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

ENV_FILE = Path.home() / ".webhookbridge" / ".env"


async def main(args: argparse.Namespace) -> int:
    """Main entry point."""
    if ENV_FILE.exists():
        load_dotenv(ENV_FILE)

    try:
        config = load_config(args.config)
    except (OSError, WebhookConfigError) as e:
        logger.error(str(e))
        return 1

    platform = WebhooksPlatform(config)

    if args.test:
        ok = await platform.test_webhook(args.test)
        return 0 if ok else 1

    # Set up graceful shutdown
    shutdown_event = asyncio.Event()

    def handle_signal():
        logger.info("Shutdown signal received")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    logger.info("Starting webhook bridge...")
    count = await platform.start()
    await platform.configure()
    for name, device in platform.devices.items():
        logger.info(f"  {name}: {device.device_type} actions={device.supported_actions}")
    logger.info(f"Bridge running with {count} devices. Press Ctrl+C to stop")

    await shutdown_event.wait()

    logger.info("Stopping bridge...")
    await platform.stop()
    logger.info("Bridge stopped")

    return 0


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the webhook bridge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to webhook config file (default: ~/.webhookbridge/config.json)",
    )
    parser.add_argument(
        "--test",
        metavar="NAME",
        default=None,
        help="Fire the 'on' endpoint of one webhook and exit",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args()


if __name__ == "__main__":
    args = parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    sys.exit(asyncio.run(main(args)))
