#!/usr/bin/env python3
"""
Run the µLink edge service.

Usage:
    python run.py              # listen on LISTEN_HOST:LISTEN_PORT from .env
    python run.py --port 8080  # override the port

    # or with venv
    .venv/Scripts/python run.py
"""
import argparse
import os
import sys

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run the µLink edge service")
    parser.add_argument("--host", help="Override LISTEN_HOST")
    parser.add_argument("--port", type=int, help="Override LISTEN_PORT")
    return parser.parse_args(argv)


def run(argv=None):
    from ulink.core.config import Config, setup_logging
    from ulink.main import serve

    args = parse_args(argv)
    config = Config.from_env()
    if args.host:
        config.listen_host = args.host
    if args.port:
        config.listen_port = args.port

    setup_logging(config)
    print(f"Starting µLink on {config.listen_host}:{config.listen_port}")
    serve(config)


if __name__ == "__main__":
    run()
