import logging

from alignsync.app import start_api

logger = logging.getLogger("alignsync")


if __name__ == "__main__":
    logger.info("Starting alignsync server...")
    start_api()
