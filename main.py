#!/usr/bin/env python3
"""
Fiscal Dashboards — launch the web API.

Usage:
    python main.py                          # http://localhost:8000
    python main.py --port 9000              # http://localhost:9000
    python main.py --host 127.0.0.1         # bind to localhost only
    python main.py --source-url https://xyz.supabase.co --source-key KEY
    python main.py --reload                 # auto-reload on code changes
"""

from __future__ import annotations

import argparse
import os
import sys


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Launch the fiscal dashboards API.",
    )
    parser.add_argument(
        "--host", default=os.getenv("APP_HOST", "127.0.0.1"),
        help="Bind address (default: 127.0.0.1 or APP_HOST env var)",
    )
    parser.add_argument(
        "--port", type=int, default=int(os.getenv("APP_PORT", "8000")),
        help="Port to listen on (default: 8000 or APP_PORT env var)",
    )
    parser.add_argument(
        "--source-url", default=None,
        help="Supabase/PostgREST base URL (default: APP_SOURCE_URL env var)",
    )
    parser.add_argument(
        "--source-key", default=None,
        help="API key for the data source (default: APP_SOURCE_KEY env var)",
    )
    parser.add_argument(
        "--reload", action="store_true",
        help="Enable auto-reload on file changes (development mode)",
    )
    args = parser.parse_args()

    # The app reads its settings from the environment at import time
    if args.source_url is not None:
        os.environ["APP_SOURCE_URL"] = args.source_url
    if args.source_key is not None:
        os.environ["APP_SOURCE_KEY"] = args.source_key

    if not os.getenv("APP_SOURCE_URL"):
        print("Warning: no data source configured")
        print("  Set APP_SOURCE_URL / APP_SOURCE_KEY or pass --source-url / --source-key;")
        print("  every dashboard will report a failed load until then.")
        print()

    try:
        import uvicorn
    except ImportError:
        print("Error: uvicorn is not installed.")
        print("  pip install uvicorn[standard]")
        sys.exit(1)

    print(f"Starting Fiscal Dashboards API at http://{args.host}:{args.port}/docs")
    print()

    uvicorn.run(
        "api.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level="info",
    )


if __name__ == "__main__":
    main()
