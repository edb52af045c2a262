#!/usr/bin/env python3
"""
gradedrop command line.

Usage:
    gradedrop serve [--host 0.0.0.0] [--port 8080] [--ledger submissions.csv]
                    [--extra-keys drop|overflow] [--require-fingerprint]
    gradedrop check path/to/rubric.yml
"""

import argparse
import logging
import os
import sys

from .dropbox.ledger import DEFAULT_LEDGER_PATH, EXTRA_KEY_POLICIES, Ledger
from .errors import ConfigError
from .grading.report import render_report
from .grading.rubric_loader import load_rubric
from .logging_utils import setup_logging

logger = logging.getLogger(__name__)


def cmd_serve(args) -> int:
    from .main import (
        EXTRA_KEYS_ENV, LEDGER_PATH_ENV, REQUIRE_FINGERPRINT_ENV,
        IntakeService, _env_flag, create_app,
    )
    from .secrets import get_fingerprint_secret

    ledger = Ledger(
        args.ledger or os.environ.get(LEDGER_PATH_ENV, DEFAULT_LEDGER_PATH),
        extra_keys=args.extra_keys or os.environ.get(EXTRA_KEYS_ENV, "drop"),
    )
    require = args.require_fingerprint or _env_flag(REQUIRE_FINGERPRINT_ENV)
    try:
        service = IntakeService(
            ledger,
            expected_secret=get_fingerprint_secret(),
            require_fingerprint=require,
        )
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    app = create_app(service)
    print(f"Dropbox is open! Accepting POST requests to /submit, writing to {ledger.path}")
    app.run(host=args.host, port=args.port, threaded=True)
    return 0


def cmd_check(args) -> int:
    try:
        rubric = load_rubric(args.rubric)
    except (ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    print(render_report(rubric))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="gradedrop", description="Rubric grading and submission dropbox")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Open the dropbox")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8080)
    serve.add_argument("--ledger", help="CSV file to write submissions to")
    serve.add_argument("--extra-keys", choices=EXTRA_KEY_POLICIES,
                       help="What to do with data keys missing from the ledger header")
    serve.add_argument("--require-fingerprint", action="store_true",
                       help="Refuse submissions whose fingerprint doesn't verify")
    serve.set_defaults(func=cmd_serve)

    check = sub.add_parser("check", help="Load a rubric and print it")
    check.add_argument("rubric")
    check.set_defaults(func=cmd_check)

    return parser


def main(argv=None) -> int:
    setup_logging()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
