# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Ourochronos Contributors

"""Service runner - wires the startup stages together.

settings file → identity → network engine → bootstrap nodes → detach →
service loop. Any stage error is logged and turned into exit status 1;
nothing partially started is left running.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .. import DAEMON_NAME, DAEMON_VERSION_NUMBER
from ..core.config import get_config
from ..core.exceptions import BootstrapdException
from ..core.logging import LogBackend, configure_logging
from ..identity.keys import establish_identity
from ..network.bootstrap import bootstrap_from_config
from ..network.engine import (
    EngineFactory,
    RelayServer,
    install_motd,
    load_engine_factory,
    start_networking,
    start_relay,
)
from ..network.scheduler import LifecycleScheduler
from .config import load_config
from .detach import DetachRole, ServiceDetacher, default_detacher, warn_if_stale_pid_file

logger = logging.getLogger(__name__)


def prepare_service(
    config_path: str | Path,
    factory: EngineFactory | None = None,
) -> LifecycleScheduler:
    """Run every startup stage up to (not including) detaching.

    Returns:
        A scheduler ready to run.

    Raises:
        BootstrapdException: From whichever stage failed.
    """
    settings = get_config()

    config = load_config(config_path)
    config.validate()
    logger.info("General config read successfully")

    warn_if_stale_pid_file(config.pid_file_path)

    if factory is None:
        factory = load_engine_factory(settings.network_engine)

    keypair = establish_identity(
        config.keys_file_path,
        generate=factory.generate_keypair,
        public_key_size=factory.public_key_size,
        secret_key_size=factory.secret_key_size,
    )
    logger.info("Keys are managed successfully.")

    engine, enable_ipv6 = start_networking(
        factory,
        keypair,
        config.port,
        config.enable_ipv6,
        config.enable_ipv4_fallback,
    )

    if config.enable_motd:
        install_motd(engine, DAEMON_VERSION_NUMBER, config.motd_bytes)

    relay: RelayServer | None = None
    if config.enable_tcp_relay:
        relay = start_relay(engine, config.tcp_relay_ports, enable_ipv6)

    bootstrap_from_config(config_path, engine, enable_ipv6)

    logger.info(f"Public Key: {keypair.public_key_hex}")

    return LifecycleScheduler(
        engine,
        config,
        relay=relay,
        tick_interval=settings.tick_interval,
        lan_discovery_interval=settings.lan_discovery_interval_seconds,
    )


def _describe_settings_error(error: PydanticValidationError) -> str:
    return "; ".join(
        f"BOOTSTRAPD_{'.'.join(str(part) for part in err['loc']).upper()}: {err['msg']}"
        for err in error.errors()
    )


def run_daemon(
    config_path: str | Path,
    log_backend: LogBackend,
    factory: EngineFactory | None = None,
    detacher: ServiceDetacher | None = None,
) -> int:
    """Start the daemon.

    Returns:
        0 in the launching process once the service has been detached,
        1 if any startup stage failed. In the service process this only
        returns if the service loop is torn down from outside.
    """
    try:
        log = configure_logging(backend=log_backend)
    except PydanticValidationError as e:
        # Fall back to the default level and format
        with configure_logging(backend=log_backend, level=logging.INFO, json_format=False):
            logger.error(f"Invalid environment settings: {_describe_settings_error(e)}. Exiting.")
        return 1

    try:
        logger.info(f'Running "{DAEMON_NAME}" version {DAEMON_VERSION_NUMBER}.')

        try:
            scheduler = prepare_service(config_path, factory)
            if detacher is None:
                detacher = default_detacher(
                    scheduler.config.pid_file_path,
                    keep_stdio=log_backend is LogBackend.STDOUT,
                )
            role = detacher.detach()
        except BootstrapdException as e:
            logger.error(f"{e.message}. Exiting.")
            return 1

        if role is DetachRole.PARENT:
            return 0

        asyncio.run(scheduler.run_forever())
        return 0
    finally:
        log.close()
