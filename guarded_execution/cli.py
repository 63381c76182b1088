#!/usr/bin/env python3
"""Print the guard's effective limits and safety status.

The core keeps no state across restarts, so this shows the posture a freshly
started bot would run with: configured limits, breaker READY, zero trades.
"""
import argparse
import json
import logging
import sys

from guarded_execution.config import build_core, get_settings
from guarded_execution.logging_setup import close_logging, setup_logging
from guarded_execution.status_reporter import render_status_report

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(description="Show guarded execution safety status")
    parser.add_argument("--json", action="store_true", help="emit the snapshot as JSON")
    parser.add_argument("--log-dir", default=None, help="write a rotating log file here")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    cfg = get_settings()
    log_dir = args.log_dir or cfg.LOG_DIR
    if log_dir:
        setup_logging(log_dir, cfg.LOG_LEVEL)
    try:
        core = build_core(cfg)
        view = core.snapshot()
        if args.json:
            print(json.dumps(view.to_dict(), indent=2))
        else:
            print(render_status_report(view))
        if not view.test_mode.enabled:
            logger.warning("test mode is DISABLED in configuration - production limits apply")
    finally:
        if log_dir:
            close_logging()
    return 0


if __name__ == '__main__':
    sys.exit(main())
