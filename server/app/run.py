import argparse
import logging
import os

import uvicorn


def main(argv: list[str] | None = None) -> None:
    """
    Entry point for the CLI.

    - Points the server at a scanner service (flag or environment).
    - Starts the FastAPI server.
    """
    parser = argparse.ArgumentParser(
        prog="sprawl-server",
        description=(
            "Track repository scans and serve sprawl summaries and trees "
            "to the dashboard."
        ),
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host interface to bind the server to (default: 127.0.0.1).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to run the server on (default: 8000).",
    )
    parser.add_argument(
        "--scanner-url",
        default=None,
        help="Base URL of the scanner API (default: $SPRAWL_SCANNER_API_URL).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between scan status polls (default: 2).",
    )

    args = parser.parse_args(argv)
    if args.poll_interval is not None and args.poll_interval < 0:
        raise SystemExit(f"Poll interval must not be negative: {args.poll_interval}")

    # app.config reads these when the server imports it.
    if args.scanner_url:
        os.environ["SPRAWL_SCANNER_API_URL"] = args.scanner_url
    if args.poll_interval is not None:
        os.environ["SPRAWL_POLL_INTERVAL"] = str(args.poll_interval)

    logging.basicConfig(level=logging.INFO)

    url = f"http://{args.host}:{args.port}"
    print(f"🚀 Starting server at {url}")
    print("   Press Ctrl+C to stop.")

    uvicorn.run(
        "app.main:app",
        host=args.host,
        port=args.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
