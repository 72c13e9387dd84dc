"""
core/logs.py -- Process-wide logging setup.

Every module logs through logging.getLogger("sso.<area>"). Only the process
entry points (main.py, the API lifespan) call setup_logging(); library code
never configures handlers.
"""

import logging

_LEVELS = {
    "local": logging.DEBUG,
    "dev": logging.DEBUG,
    "prod": logging.INFO,
}

LOG_FORMAT = "%(asctime)s %(levelname)-5s %(name)s %(message)s"


def setup_logging(env: str) -> logging.Logger:
    """Configure the root logger for the given environment and return the service logger.

    Unknown environments fall back to INFO so a typo never silences logging.
    force=True replaces handlers left behind by an earlier call (e.g. uvicorn
    reload), keeping exactly one handler on the root logger.
    """
    logging.basicConfig(
        level=_LEVELS.get(env, logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    log = logging.getLogger("sso")
    log.debug("logging configured (env=%s)", env)
    return log
