#!/usr/bin/env python3
"""
Manifesto API Runner

Usage:
    python run_app.py                    # Development server with auto-reload
    python run_app.py --mode prod        # Production mode, no reload
    python run_app.py --port 8001        # Custom port
    python run_app.py --host 127.0.0.1   # Custom host
"""

import argparse
import sys

import uvicorn

from manifesto.core.config import get_settings


def main() -> int:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Manifesto API Runner")
    parser.add_argument(
        "--mode",
        choices=["dev", "prod"],
        default="dev",
        help="Server mode (default: dev)"
    )
    parser.add_argument(
        "--host",
        default=settings.HOST,
        help=f"Host to bind to (default: {settings.HOST})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help=f"Port to bind to (default: {settings.PORT})"
    )
    parser.add_argument(
        "--no-reload",
        action="store_true",
        help="Disable auto-reload"
    )
    args = parser.parse_args()

    reload = not args.no_reload and args.mode != "prod"
    print(f"Starting {settings.APP_NAME} on {args.host}:{args.port} ({args.mode})")
    uvicorn.run(
        "manifesto.main:app",
        host=args.host,
        port=args.port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
