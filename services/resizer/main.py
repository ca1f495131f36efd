#!/usr/bin/env python3
"""
Image Resizer Service

Serves resize requests, stores derived images in S3 and redirects clients
to them.

Usage:
    python services/resizer/main.py --port 4321
"""
import os
import sys
import argparse

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from dotenv import load_dotenv
load_dotenv()

import uvicorn

from services.resizer.app import build_app
from services.resizer.config import Settings
from services.resizer.utils import setup_logging

logger = setup_logging("resizer")


def main():
    parser = argparse.ArgumentParser(description="Image Resizer Service")
    parser.add_argument(
        "--host",
        default=os.environ.get("HOST", "0.0.0.0"),
        help="Interface to bind (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to listen on (default: $PORT or 4321)"
    )

    args = parser.parse_args()

    try:
        settings = Settings.from_env()
    except ValueError as e:
        logger.error(str(e))
        sys.exit(1)

    port = args.port or settings.port
    logger.info(f"Starting image resizer on {args.host}:{port} | bucket={settings.bucket} | region={settings.region}")
    uvicorn.run(build_app(settings), host=args.host, port=port, log_level="info")


if __name__ == "__main__":
    main()
