"""Main CLI entry point for pagegraph.

Provides commands: identify, query, adblock_rules, downstream_requests,
request_id_info
"""

import argparse
import logging
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

from pagegraph.cli.adblock_rules import adblock_rules_command
from pagegraph.cli.identify import identify_command
from pagegraph.cli.query import NAMED_QUERIES, OUTPUT_FORMATS, query_command
from pagegraph.cli.requests import downstream_requests_command, request_id_info_command
from pagegraph.config import ReaderConfig
from pagegraph.errors import PageGraphError
from pagegraph.graph.io import read_from_file

logger = logging.getLogger("pagegraph.cli")


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    """Setup logging configuration with Rich integration.

    Args:
        verbose: Enable verbose logging.
        console: Rich Console instance for coordinated output (optional).
    """
    if verbose:
        level = logging.DEBUG
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        tracebacks_show_locals=verbose,
        log_time_format="[%H:%M:%S]",
    )

    logging.basicConfig(
        level=level,
        format="[%(name)s] [%(levelname)s] %(message)s",
        handlers=[handler],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagegraph",
        description="PageGraph - query browser page-load recordings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "-f",
        "--file",
        dest="graph_file",
        metavar="FILE",
        help="PageGraph GraphML file to query",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--lenient",
        action="store_true",
        help=(
            "Drop attributes that are not part of a node or edge kind "
            "instead of failing the read"
        ),
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Identify command
    identify_parser = subparsers.add_parser(
        "identify",
        help="Show a node or edge and everything directly attached to it",
    )
    identify_parser.add_argument(
        "id",
        help="Node or edge id (n12, e7, or a bare number; nodes are tried first)",
    )

    # Query command
    query_parser = subparsers.add_parser(
        "query",
        help="Run a built-in named query",
    )
    query_parser.add_argument(
        "name",
        choices=sorted(NAMED_QUERIES),
        help="Query to run",
    )
    query_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="Output format (default: json)",
    )
    query_parser.add_argument(
        "--tag",
        help="Only report elements with this tag name (deleted_elements)",
    )
    query_parser.add_argument(
        "--min-modifications",
        type=int,
        default=4,
        help="Minimum number of modifications to report (modified_elements, default: 4)",
    )

    # Adblock rules command
    adblock_parser = subparsers.add_parser(
        "adblock_rules",
        help="Find resources whose requests match adblock filter rules",
    )
    adblock_parser.add_argument(
        "rules",
        nargs="+",
        metavar="RULE",
        help="Filter rule in Adblock Plus syntax",
    )
    adblock_parser.add_argument(
        "--exceptions",
        action="store_true",
        help="Report resources matched by exception (@@) rules instead",
    )
    adblock_parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default="json",
        help="Output format (default: json)",
    )

    # Downstream requests command
    downstream_parser = subparsers.add_parser(
        "downstream_requests",
        help="Find network requests caused by a given edge",
    )
    downstream_parser.add_argument(
        "edge_id",
        help="Edge id to check downstream requests for",
    )
    downstream_parser.add_argument(
        "--nested",
        action="store_true",
        help="Report each request with the requests it caused in turn",
    )

    # Request id info command
    request_parser = subparsers.add_parser(
        "request_id_info",
        help="Show everything recorded about a Blink request id",
    )
    request_parser.add_argument(
        "request_id",
        type=int,
        help="Blink request id from the graph",
    )
    request_parser.add_argument(
        "frame_id",
        nargs="?",
        help="Frame id the request belongs to (defaults to the root frame)",
    )

    return parser


COMMANDS = {
    "identify": identify_command,
    "query": query_command,
    "adblock_rules": adblock_rules_command,
    "downstream_requests": downstream_requests_command,
    "request_id_info": request_id_info_command,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point.

    Returns:
        int: Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if not args.command:
        parser.print_help()
        return 1
    if not args.graph_file:
        parser.print_usage()
        logger.error("A graph file is required (-f FILE)")
        return 1

    config = ReaderConfig(strict_attributes=not args.lenient)
    try:
        graph = read_from_file(args.graph_file, config)
    except PageGraphError as exc:
        logger.error("Failed to read %s: %s", args.graph_file, exc)
        return 1
    except OSError as exc:
        logger.error("Cannot open %s: %s", args.graph_file, exc)
        return 1

    return COMMANDS[args.command](graph, args)


if __name__ == "__main__":
    sys.exit(main())
