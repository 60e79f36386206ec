#!/usr/bin/env python3
"""Main entry point for the metered-paywall service."""

import argparse
import os
import sys


def main() -> int:
    """Run the main application.

    Returns:
        An integer exit code.
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Metered Paywall Access Service"
    )
    parser.add_argument("--server", action="store_true", help="Start the web server")
    parser.add_argument("--host", default="0.0.0.0", help="Address to bind to")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.environ.get("PORT", 8000)),
        help="Port to listen on",
    )

    args: argparse.Namespace = parser.parse_args()

    if args.server:
        from metered_paywall.server import app
        import uvicorn
        uvicorn.run(app, host=args.host, port=args.port, access_log=False)
    else:
        print("Metered Paywall Access Service")
        print("Use --server flag to start the web server")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
