"""Run the issue proxy with uvicorn.

Usage:
    python -m scripts.serve                # 0.0.0.0:8000
    python -m scripts.serve --port 9000
"""

import argparse
import logging

import uvicorn

from issue_proxy.config import get_settings
from issue_proxy.middleware import RequestIDLogFilter

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIDLogFilter())


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    configure_logging(get_settings().log_level)
    uvicorn.run(
        "issue_proxy.main:app",
        host=args.host,
        port=args.port,
        log_config=None,
    )


if __name__ == "__main__":
    main()
