#!/usr/bin/env python3
"""
iODO command-line launcher.

Runs one diagnostic on this machine and prints the report as JSON on
stdout.  Logging goes to stderr and the log file.
"""
import argparse
import json
import sys
from dataclasses import replace
from typing import List, Optional

from iodo.diagnostics import run_diagnostics
from iodo.utils.config import ConfigManager, get_config_manager
from iodo.utils.logger import log_exception, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="iodo-diagnose",
        description="Capture device telemetry and diagnose faults",
    )
    parser.add_argument(
        "--config",
        help="Directory holding config.json (default: ~/.config/iodo)",
    )
    parser.add_argument("--origin", help="Base URL of the analysis service")
    parser.add_argument(
        "--offline", action="store_true",
        help="Skip the analysis service and use local heuristics",
    )
    parser.add_argument(
        "--timeout", type=float,
        help="Seconds to wait for the analysis service",
    )
    parser.add_argument("--user-agent", help="Identity string to report")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Log file path")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the ``iodo-diagnose`` console script."""
    args = build_parser().parse_args(argv)

    # Logging must be up before the config file is read
    setup_logger(debug=args.debug, log_file=args.log_file)

    manager = ConfigManager(args.config) if args.config else get_config_manager()
    manager.load()
    config = manager.get_diagnostics_config()

    overrides = {}
    if args.origin:
        overrides["analysis_origin"] = args.origin
    if args.offline:
        overrides["offline"] = True
    if args.timeout is not None:
        overrides["request_timeout"] = args.timeout
    if args.user_agent:
        overrides["user_agent"] = args.user_agent
    if args.debug:
        overrides["debug"] = True
    if args.log_file:
        overrides["log_file"] = args.log_file
    config = replace(config, **overrides)

    setup_logger(debug=config.debug, log_file=config.log_file)

    try:
        report = run_diagnostics(config)
    except Exception as e:
        log_exception(e, "diagnostic run")
        return 1

    json.dump(report.to_dict(), sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
