#!/usr/bin/env python3
"""Run the spam checker webhook server.

Usage:
    python run_api.py [--host HOST] [--port PORT]

Examples:
    python run_api.py                    # Default: 0.0.0.0, PORT from env (3000)
    python run_api.py --port 8080        # Custom port
    python run_api.py --host 127.0.0.1   # Localhost only
"""

import argparse
import logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the amoCRM spam checker server")
    parser.add_argument("--host", default="0.0.0.0", help="Host to bind (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=None, help="Port to bind (default: PORT)")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    from amo_spam_checker.api.server import run_server

    run_server(host=args.host, port=args.port)


if __name__ == "__main__":
    main()
