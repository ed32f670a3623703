from __future__ import annotations

import argparse

import uvicorn
from fastapi import FastAPI

from todo_api.config import get_settings
from todo_api.main import create_app
from todo_api.observability.telemetry import init_telemetry


def build_app() -> FastAPI:
    settings = get_settings()
    return create_app(settings, telemetry=init_telemetry(settings))


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Todo API standalone HTTP server")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    parser.add_argument("--reload", action="store_true", help="Restart on code changes (development)")
    args = parser.parse_args()

    uvicorn.run(
        "todo_api.__main__:build_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=bool(args.reload),
        # Logging is configured by init_telemetry; keep uvicorn from overriding it.
        log_config=None,
    )


if __name__ == "__main__":
    main()
