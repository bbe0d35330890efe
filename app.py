"""
Content Guard - service entrypoint
Runs the content validation API under uvicorn.
"""
import logging

import uvicorn

from config import LOG_LEVEL, PORT
from contentguard.handlers.api import create_app
from contentguard.logging import configure_logging

logger = configure_logging(getattr(logging, LOG_LEVEL, logging.INFO))
app = create_app()


def main():
    logger.info(f"Starting content validation service on port {PORT}...")
    uvicorn.run(app, host="0.0.0.0", port=PORT, log_level=LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
