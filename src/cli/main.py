"""CLI for the devtool guard."""

import argparse
import json
import logging
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from src.core.config import load_app_settings, load_guard_options
from src.engine.guard import DevtoolGuard
from src.host.page import SimulatedPage
from src.policy.bypass import token_digest


def setup_logging(level: str = "INFO"):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def cmd_token(args):
    """Token command handler."""
    print(token_digest(args.value))


def cmd_simulate(args):
    """Simulate command handler."""
    load_dotenv()
    settings = load_app_settings()
    setup_logging(args.log_level or settings.log_level)
    logger = logging.getLogger(__name__)

    options: Dict[str, Any] = {}
    config_path = args.config or settings.config_path
    if config_path:
        options.update(load_guard_options(config_path))

    detections: List[Dict[str, Any]] = []
    if args.no_action:
        options["ondevtoolopen"] = lambda kind, default_action: detections.append(
            {"kind": int(kind), "name": kind.name.lower()}
        )

    page = SimulatedPage(url=args.url)
    if args.user_agent:
        page.user_agent = args.user_agent

    guard = DevtoolGuard(page)
    result = guard.start(options)
    if not result.success:
        print(json.dumps(result.to_dict()))
        return

    timers = page.timers
    if args.open_at is not None and args.open_at < args.duration:
        timers.advance(args.open_at)
        logger.info("Opening devtools")
        page.open_devtools(docked=args.docked, pause_ms=args.pause_ms)
        timers.advance(args.duration - args.open_at)
    else:
        timers.advance(args.duration)

    summary = guard.get_status()
    summary["events"] = [event.to_dict() for event in guard.events]
    summary["final_url"] = page.url
    if args.no_action:
        summary["detections"] = detections
    print(json.dumps(summary, indent=2))


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Devtool guard - heuristic devtools presence detection"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Token command
    token_parser = subparsers.add_parser("token", help="Print the md5 value for a bypass token")
    token_parser.add_argument("value", help="Token value passed in the URL")
    token_parser.set_defaults(func=cmd_token)

    # Simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Run the guard on a simulated page")
    simulate_parser.add_argument(
        "--config", "-c",
        help="Path to guard options YAML file",
        default=None,
    )
    simulate_parser.add_argument(
        "--url",
        default="https://example.com/",
        help="Page URL",
    )
    simulate_parser.add_argument(
        "--user-agent", "-u",
        help="navigator.userAgent of the page",
    )
    simulate_parser.add_argument(
        "--duration", "-d",
        type=float,
        default=3000,
        help="Simulated milliseconds to run",
    )
    simulate_parser.add_argument(
        "--open-at",
        type=float,
        default=None,
        help="Millisecond at which devtools open",
    )
    simulate_parser.add_argument(
        "--docked",
        action="store_true",
        help="Open devtools docked to the window",
    )
    simulate_parser.add_argument(
        "--pause-ms",
        type=float,
        default=0.0,
        help="Pause a debugger statement takes while devtools are open",
    )
    simulate_parser.add_argument(
        "--no-action",
        action="store_true",
        help="Record detections instead of leaving the page",
    )
    simulate_parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (defaults to LOG_LEVEL)",
    )
    simulate_parser.set_defaults(func=cmd_simulate)

    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
