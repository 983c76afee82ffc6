import logging

from stockledger.core.config import LOG_LEVEL

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging():
    """Configures the root logger once for the API process and the poller."""
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    # Set logging level for Tortoise ORM
    logging.getLogger('tortoise').setLevel(logging.INFO)
