"""CLI entrypoint for the cluster diagnostics collector."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from cluster_diag import __version__
from cluster_diag.collector import PreflightError, print_result, run_collection
from cluster_diag.config import get_settings


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capture a diagnostics bundle (pods, logs, events, networking, nodes) for a namespace.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--namespace",
        "-n",
        default=None,
        help="Namespace to capture (default: NAMESPACE env or 'default')",
    )
    parser.add_argument(
        "--log-tail",
        type=int,
        default=None,
        help="Lines of logs per pod (default: LOG_TAIL env or 200)",
    )
    parser.add_argument(
        "--events-tail",
        type=int,
        default=None,
        help="Most recent events to keep (default: EVENTS_TAIL env or 50)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Root directory for run output (default: OUTPUT_DIR env or ./diagnostics)",
    )
    parser.add_argument(
        "--kubeconfig",
        type=Path,
        default=None,
        help="Path to kubeconfig (default: KUBECONFIG env or ~/.kube/config)",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubernetes context to use",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for cluster-diag CLI."""
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True)],
    )
    logger = logging.getLogger("cluster_diag")
    if not args.verbose:
        logger.setLevel(logging.WARNING)

    console = Console()
    try:
        settings = get_settings(
            namespace=args.namespace,
            log_tail=args.log_tail,
            events_tail=args.events_tail,
            output_dir=args.output_dir,
            kube_context=args.context,
        )
        report = run_collection(
            settings=settings,
            kubeconfig=str(args.kubeconfig) if args.kubeconfig else None,
            console=console,
        )
    except PreflightError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]", highlight=False)
        return 1
    except Exception as e:
        logging.exception("Diagnostics capture failed")
        print(f"Error: {e}", file=sys.stderr)
        return 2
    print_result(report, console)
    return 0


if __name__ == "__main__":
    sys.exit(main())
