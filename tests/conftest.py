import logging

import pytest


@pytest.fixture
def package_logger():
    """The `operationkit` logger, with its level and handlers restored afterwards."""

    logger = logging.getLogger("operationkit")
    level = logger.level
    handlers = list(logger.handlers)
    try:
        yield logger
    finally:
        for handler in logger.handlers:
            if handler not in handlers:
                logger.removeHandler(handler)
        logger.setLevel(level)
