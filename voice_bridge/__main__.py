"""Run the Voice Bridge HTTP server: ``python -m voice_bridge``."""

import logging
import sys

import voluptuous as vol
from aiohttp import web

from . import config_from_env, setup_agent
from .const import CONF_PORT
from .server import create_app

_LOGGER = logging.getLogger(__name__)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    try:
        config = config_from_env()
    except vol.Invalid as err:
        _LOGGER.error("Invalid configuration: %s", err)
        sys.exit(1)

    app = create_app(setup_agent(config))
    _LOGGER.info("Voice Bridge listening on port %d", config[CONF_PORT])
    web.run_app(app, port=config[CONF_PORT], print=None)


if __name__ == "__main__":
    main()
