"""Run the service with uvicorn: ``python -m nvclip``."""

import logging
import sys

import uvicorn
from pydantic import ValidationError

from nvclip.config import get_settings


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as exc:
        logging.basicConfig(level=logging.INFO)
        logging.getLogger("nvclip").critical(f"Failed to start server, invalid configuration: {exc}")
        sys.exit(1)

    uvicorn.run("nvclip.main:app", host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
