"""CLI entry point for the Scribe dispatch server."""

import argparse
import os


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="scribe-server",
        description="Scribe dispatch server: webhook fan-out and user notifications",
    )
    parser.add_argument("--host", default="0.0.0.0", help="Bind host (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=8080, help="Bind port (default: 8080)")
    parser.add_argument(
        "--local",
        action="store_true",
        help="Local dev mode: SQLite database, no Redis required",
    )
    parser.add_argument("--log-level", default=None, help="Override SCRIBE_LOG_LEVEL")
    args = parser.parse_args(argv)

    # Settings are read on first import of scribe.config, so set env before uvicorn imports the app
    if args.local:
        os.environ["SCRIBE_LOCAL_MODE"] = "1"
    if args.log_level:
        os.environ["SCRIBE_LOG_LEVEL"] = args.log_level

    import uvicorn

    uvicorn.run("scribe.main:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
