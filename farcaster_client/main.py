"""Main entry point for the Farcaster webhook receiver."""

import argparse
import asyncio
import logging
import sys

import uvicorn

from .config import Config, load_config
from .exceptions import ConfigurationError
from .neynar_client import NeynarAPI
from .poller import MentionPoller
from .webhook_server import create_webhook_app


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def check_mode(config: Config, mode: str) -> None:
    """Reject run modes the configuration cannot support."""
    if mode == "combined" and not config.neynar.bot_fid:
        raise ConfigurationError("combined mode requires neynar.bot_fid to poll mentions")


async def create_neynar_client(config: Config, logger: logging.Logger) -> NeynarAPI:
    """Build the Neynar client and resolve the bot account."""
    neynar = NeynarAPI(
        config.neynar.api_key.get_secret_value(),
        request_config=config.requests,
    )
    if config.neynar.bot_fid:
        signer = config.neynar.signer_uuid.get_secret_value() if config.neynar.signer_uuid else ""
        await neynar.set_farcaster_user(config.neynar.bot_fid, signer)
    else:
        logger.warning("neynar.bot_fid not configured, webhook casts are logged only")
    return neynar


async def run_webhook_server(
    args, logger, config: Config, neynar: NeynarAPI, queue_mentions: bool = False
) -> None:
    """Run webhook server.

    Casts are only queued when a poller drains them.
    """
    port = args.webhook_port or config.webhook.port
    logger.info("Starting webhook server on %s:%d...", config.webhook.host, port)

    app = create_webhook_app(config, neynar, queue_mentions=queue_mentions)

    uvicorn_config = uvicorn.Config(
        app,
        host=config.webhook.host,
        port=port,
        log_level="info" if args.verbose else "warning",
    )
    server = uvicorn.Server(uvicorn_config)
    await server.serve()


async def run_combined(args, logger, config: Config, neynar: NeynarAPI) -> None:
    """Run both the mention poller and the webhook server concurrently."""
    logger.info("Starting combined mode (polling + webhook)")

    poller = MentionPoller(neynar, config.bot.poll_interval)
    polling_task = asyncio.create_task(poller.run())
    webhook_task = asyncio.create_task(
        run_webhook_server(args, logger, config, neynar, queue_mentions=True)
    )

    # Wait for either task to complete (or fail)
    done, pending = await asyncio.wait(
        [polling_task, webhook_task],
        return_when=asyncio.FIRST_COMPLETED
    )

    for task in pending:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    for task in done:
        task.result()


async def async_main(args, logger) -> int:
    """Load configuration and run the selected mode."""
    neynar = None
    try:
        logger.info("Loading configuration from %s", args.config)
        config = load_config(args.config)
        check_mode(config, args.mode)

        neynar = await create_neynar_client(config, logger)

        if args.mode == "combined":
            await run_combined(args, logger, config, neynar)
        else:
            await run_webhook_server(args, logger, config, neynar)

        return 0

    except (FileNotFoundError, ConfigurationError) as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1
    finally:
        if neynar is not None:
            await neynar.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Neynar webhook receiver and mention poller for a Farcaster bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Run webhook server with config.yaml
  %(prog)s -c myconfig.yaml             # Run with custom config
  %(prog)s -v                           # Run with verbose logging
  %(prog)s --mode combined              # Run webhook server + mention poller
  %(prog)s --webhook-port 9000          # Override the configured port
        """,
    )

    parser.add_argument(
        "-c",
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose/debug logging",
    )
    parser.add_argument(
        "--mode",
        choices=["webhook", "combined"],
        default="webhook",
        help="Run mode: webhook only (default) or combined with the mention poller",
    )
    parser.add_argument(
        "--webhook-port",
        type=int,
        default=None,
        help="Port for webhook server (default: webhook.port from config)",
    )

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    return asyncio.run(async_main(args, logger))


if __name__ == "__main__":
    sys.exit(main())
