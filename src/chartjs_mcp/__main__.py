#!/usr/bin/env python3
"""
ChartJS MCP - Entry Point

Supports two transport modes:
- stdio: Standard I/O (default, for Claude Desktop)
- streamable-http: Session-based streamable HTTP transport
"""

import argparse
import logging
import os
import sys

logger = logging.getLogger("chartjs_mcp")

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="chartjs-mcp",
        description="MCP server that renders Chart.js charts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with STDIO transport (default, for Claude Desktop)
  chartjs-mcp

  # Run with streamable HTTP transport on port 3000
  chartjs-mcp --transport=streamable-http

  # Custom port and directory for saved PNG files
  chartjs-mcp --transport streamable-http --port 8080 --output-dir ./charts

Environment:
  PORT              overrides --port
  CHART_OUTPUT_DIR  default for --output-dir
  LOG_LEVEL         default for --log-level
  CHARTJS_CDN_URL   Chart.js script URL used by rendered pages

Note: PNG output requires Playwright with Chromium (playwright install chromium).
"""
    )
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        default="stdio",
        help="Transport mode (default: stdio)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=3000,
        help="Port for streamable HTTP transport (default: 3000, PORT env overrides)"
    )
    parser.add_argument(
        "--host",
        type=str,
        default="0.0.0.0",
        help="Host to bind for streamable HTTP transport (default: 0.0.0.0)"
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=os.environ.get("CHART_OUTPUT_DIR", os.path.join(os.getcwd(), "charts")),
        help="Directory for PNG files saved with saveToFile (default: ./charts)"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=os.environ.get("LOG_LEVEL", "INFO").upper(),
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__import__('chartjs_mcp').__version__}"
    )

    args = parser.parse_args(argv)

    port = os.environ.get("PORT")
    if port:
        try:
            args.port = int(port)
        except ValueError:
            parser.error(f"PORT must be an integer, got {port!r}")

    # argparse does not check choices against the LOG_LEVEL default
    if args.log_level not in LOG_LEVELS:
        parser.error(f"LOG_LEVEL must be one of: {', '.join(LOG_LEVELS)}, got {args.log_level!r}")

    return args


def main(argv=None) -> int:
    args = parse_args(argv)

    # stdout carries the stdio protocol, so logs go to stderr
    logging.basicConfig(
        level=args.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    # Saved charts are written here
    os.environ["CHART_OUTPUT_DIR"] = os.path.abspath(args.output_dir)

    try:
        from .server import mcp

        if args.transport == "stdio":
            mcp.run()
        else:
            from .http_transport import run_http_server

            run_http_server(mcp._mcp_server, args.host, args.port, args.log_level)

    except KeyboardInterrupt:
        pass
    except ImportError as e:
        logger.error("Transport %s is missing dependencies: %s", args.transport, e)
        return 1
    except Exception:
        logger.exception("Fatal error in main()")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
