from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import traceback

import uvicorn

from trafficwatch.core.config import HTTP_HOST, HTTP_PORT, LOG_LEVEL


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="trafficwatch", add_help=True)
    parser.add_argument("--host", default=HTTP_HOST, help="Address to bind the HTTP API on.")
    parser.add_argument("--port", type=int, default=HTTP_PORT, help="Port to bind the HTTP API on.")
    parser.add_argument(
        "--log-level",
        default=LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(list(sys.argv[1:] if argv is None else argv))
    if args.port < 0 or args.port > 65535:
        raise ValueError("--port must be in range 0..65535")

    from trafficwatch.core.logging import setup_logging

    setup_logging(args.log_level)

    from trafficwatch.main import app as fastapi_app

    config = uvicorn.Config(
        fastapi_app,
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        access_log=False,
    )
    server = uvicorn.Server(config)

    def _handle_term(*_args: object) -> None:
        server.should_exit = True

    signal.signal(signal.SIGTERM, _handle_term)
    signal.signal(signal.SIGINT, _handle_term)

    asyncio.run(server.serve())


if __name__ == "__main__":
    try:
        main()
    except SystemExit:
        raise
    except Exception:
        traceback.print_exc(file=sys.stderr)
        raise SystemExit(1)
