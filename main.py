"""Command-line entry point for the RAK Porcelain assistant."""

from __future__ import annotations

import argparse
import subprocess
import sys
from collections import Counter
from pathlib import Path
from typing import TYPE_CHECKING

from porcelain_rag.config import config

if TYPE_CHECKING:
    from collections.abc import Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_WIDGET = PROJECT_ROOT / "app.py"


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Run the RAK Porcelain assistant API, widget or ingestion tools.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API with uvicorn.")
    serve.add_argument(
        "--host",
        default="0.0.0.0",  # noqa: S104
        help="Bind address for the API server (default: 0.0.0.0).",
    )
    serve.add_argument(
        "--port",
        type=int,
        default=config.PORT,
        help=f"Port for the API server (default: {config.PORT}).",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Reload the server when source files change.",
    )

    widget = commands.add_parser("widget", help="Launch the Streamlit chat widget.")
    widget.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_WIDGET,
        help="Path to the Streamlit script (default: app.py).",
    )
    widget.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    widget.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    widget.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    widget.set_defaults(headless=True)

    ingest = commands.add_parser(
        "ingest", help="Ingest products from a JSON file into the knowledge base."
    )
    ingest.add_argument("file", type=Path, help="JSON file of products.")

    commands.add_parser(
        "embed", help="Embed catalogue products that have no embeddings yet."
    )

    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def run_streamlit(command: Sequence[str], logger: Logger) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
        )
    except KeyboardInterrupt:
        logger.info("Chat widget stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def run_widget(args: argparse.Namespace, logger: Logger) -> int:
    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting chat widget at http://%s:%s (headless=%s)",
        args.address,
        args.port,
        args.headless,
    )
    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )
    return_code = run_streamlit(command, logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


def run_server(args: argparse.Namespace, logger: Logger) -> int:
    import uvicorn  # noqa: PLC0415

    logger.info(
        "Starting API server on %s:%s (environment=%s)",
        args.host,
        args.port,
        config.ENVIRONMENT,
    )
    uvicorn.run(
        "porcelain_rag.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=config.LOG_LEVEL.lower(),
    )
    return 0


def run_ingest(args: argparse.Namespace, logger: Logger) -> int:
    from porcelain_rag import build_services  # noqa: PLC0415

    try:
        results = build_services().ingestor.ingest_products_file(args.file)
    except (OSError, ValueError):
        logger.exception("Failed to ingest %s", args.file)
        return 1

    failed = [item for item in results if item["status"] != "success"]
    logger.info(
        "Ingested %d of %d products from %s",
        len(results) - len(failed),
        len(results),
        args.file,
    )
    for item in failed:
        logger.error("Product %s failed: %s", item.get("name"), item.get("error"))
    return 1 if failed else 0


def run_embed(logger: Logger) -> int:
    from porcelain_rag import build_services  # noqa: PLC0415

    results = build_services().ingestor.embed_existing_products()
    counts = Counter(item["status"] for item in results)
    logger.info(
        "Embedded %d products, skipped %d, failed %d",
        counts["success"],
        counts["skipped"],
        counts["error"],
    )
    for item in results:
        if item["status"] == "error":
            logger.error("Product %s failed: %s", item["name"], item["error"])
    return 1 if counts["error"] else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and run the selected command."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.command == "serve":
        return run_server(args, logger)
    if args.command == "widget":
        return run_widget(args, logger)
    if args.command == "embed":
        return run_embed(logger)
    return run_ingest(args, logger)


if __name__ == "__main__":
    sys.exit(main())
