"""Entry point for running the MessageAI API server.

Usage:
    messageai-serve --host 0.0.0.0 --port 8000
"""

import argparse

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def parse_serve_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse serve-mode arguments (host, port, log level)."""
    parser = argparse.ArgumentParser(description="MessageAI agent server")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Bind address")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Listen port")
    parser.add_argument("--log-level", default="info", help="Uvicorn log level")
    return parser.parse_args(args)


def main(args: list[str] | None = None) -> None:
    """Start uvicorn with a single worker.

    Turns on one conversation must not run concurrently, so the app is not
    safe to spread across workers without external routing by conversation.
    """
    serve_args = parse_serve_args(args)
    import uvicorn

    uvicorn.run(
        "messageai.api.main:app",
        host=serve_args.host,
        port=serve_args.port,
        workers=1,
        log_level=serve_args.log_level,
        lifespan="on",
    )


if __name__ == "__main__":
    main()
