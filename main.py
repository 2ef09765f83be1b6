# =============================================================================
# main.py  —  Entry Point for the Cortellis Tool Server
# =============================================================================
#
# HOW TO RUN:
#   python main.py                 MCP server on stdio (default)
#   python main.py --http          REST facade on http://localhost:$PORT
#   python main.py --list-tools    print the tool definitions and exit
#
# WHAT HAPPENS:
#   1. .env is loaded into the environment (python-dotenv)
#   2. Settings are built ONCE from the environment; missing credentials
#      stop the process here with exit code 1
#   3. A CortellisService (query builder + digest client) is created
#   4. Either the FastMCP server or the FastAPI app is started around it
#
# ENVIRONMENT:
#   CORTELLIS_USERNAME, CORTELLIS_PASSWORD   required
#   USE_HTTP=true                            same as --http
#   PORT                                     REST facade port (default 3000)
# =============================================================================

import argparse
import json
import logging
import sys

from dotenv import load_dotenv

from core.config import Settings
from core.cortellis import CortellisService
from core.errors import ConfigurationError
from tools.mcp_server import configure_logging, create_mcp_server
from tools.registry import list_tools


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cortellis tool server (MCP over stdio, or REST).")
    parser.add_argument("--list-tools", action="store_true", help="Print the tool definitions as JSON and exit.")
    parser.add_argument("--http", action="store_true", help="Serve the REST facade instead of MCP stdio.")
    parser.add_argument("--port", type=int, default=None, help="REST facade port (overrides PORT).")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def serve_http(service: CortellisService, port: int) -> None:
    import uvicorn

    from api.rest import create_app

    logging.info(f"Cortellis REST facade running on http://localhost:{port}")
    uvicorn.run(create_app(service), host="0.0.0.0", port=port, log_config=None)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)

    # --list-tools needs no credentials and must not touch the network.
    if args.list_tools:
        print(json.dumps(list_tools(), indent=2))
        return 0

    # Logging goes to stderr; stdout belongs to the MCP transport.
    configure_logging(logging.DEBUG if args.debug else logging.INFO)
    load_dotenv()

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        logging.error(f"Error: {exc.message}")
        return 1

    service = CortellisService.from_settings(settings)

    if args.http or settings.use_http:
        serve_http(service, args.port or settings.port)
    else:
        logging.info("Cortellis MCP Server running on stdio")
        create_mcp_server(service).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
