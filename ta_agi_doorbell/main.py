"""ta-agi-doorbell — process entry point.

Invariants:
    - Config loaded and logging set up exactly once, before any request is served
    - Startup failures (config read/parse/schema, zero PDO, listen bind) exit with status 1
    - Shutdown stops accepting sessions first, then waits for in-flight close pulses
    - Pipeline wiring is explicit (no auto-discovery)
"""

import argparse
import asyncio
import contextlib
import logging
import signal
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ta_agi_doorbell import __version__
from ta_agi_doorbell.config import (
    DEFAULT_CONFIG_PATH,
    Settings,
    build_registry,
    load_settings,
)
from ta_agi_doorbell.core.actuator_registry import ActuatorRegistry
from ta_agi_doorbell.core.errors import ConfigError
from ta_agi_doorbell.infrastructure.agi_server import AgiServer
from ta_agi_doorbell.infrastructure.observability import setup_logging
from ta_agi_doorbell.infrastructure.udp_channel import UdpChannelFactory
from ta_agi_doorbell.services.authenticate_digest import DigestAuthenticator
from ta_agi_doorbell.services.pulse_controller import PulseController
from ta_agi_doorbell.services.request_pipeline import RequestPipeline

logger = logging.getLogger(__name__)


def build_pipeline(
    settings: Settings, registry: ActuatorRegistry, controller: PulseController,
) -> RequestPipeline:
    authenticator = DigestAuthenticator(
        settings.agi.digest_secret, settings.agi.digest_variable,
    )
    return RequestPipeline(authenticator, registry, controller)


@asynccontextmanager
async def lifespan(
    settings: Settings, registry: ActuatorRegistry,
    controller: PulseController | None = None,
) -> AsyncIterator[AgiServer]:
    """Startup/shutdown lifecycle."""
    controller = controller or PulseController(
        UdpChannelFactory(), hold_seconds=settings.cmi.hold_seconds,
    )
    pipeline = build_pipeline(settings, registry, controller)
    server = AgiServer(
        pipeline.handle, settings.agi.listen_host, settings.agi.listen_port,
        read_timeout=settings.agi.read_timeout_seconds,
    )
    await server.start()
    logger.info(
        f"Starting ta-agi-doorbell service {__version__} "
        f"with {len(registry)} actuator(s): {', '.join(registry.names)}"
    )
    try:
        yield server
    finally:
        await server.stop()
        await controller.drain()
        logger.info("ta-agi-doorbell shut down")


async def serve(settings: Settings, registry: ActuatorRegistry) -> None:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)
    async with lifespan(settings, registry):
        await stop.wait()


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ta-agi-doorbell",
        description="Open doors on a TA CMI when an authenticated Asterisk dialplan asks for it.",
    )
    parser.add_argument(
        "-c", "--config",
        help=f"Path to config.toml (default: $TA_AGI_DOORBELL_CONFIG or {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument(
        "--check", action="store_true",
        help="Validate the config file and exit",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def run(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    try:
        settings = load_settings(args.config)
        registry = build_registry(settings)
    except ConfigError as e:
        setup_logging("INFO", "text")
        logger.critical(e.message, extra={"error_code": e.code})
        return 1

    setup_logging(settings.log_level, settings.log_format)
    logger.debug("Successfully created the config")

    if args.check:
        logger.info(f"Config OK: {len(registry)} actuator(s)")
        return 0

    try:
        asyncio.run(serve(settings, registry))
    except OSError as e:
        logger.critical(
            f"Cannot listen on {settings.agi.listen_host}:{settings.agi.listen_port}: {e}",
        )
        return 1
    return 0
