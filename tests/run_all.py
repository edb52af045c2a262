#!/usr/bin/env python3
"""
Run the gradedrop test suites.

Usage:
    python tests/run_all.py              # unit + integration (default)
    python tests/run_all.py unit         # unit tests only
    python tests/run_all.py integration  # real dropbox server on localhost
"""

import subprocess
import sys

SUITES = {
    "unit":        {"path": "tests/unit/",        "timeout": 30, "desc": "Unit tests (fast, no network)"},
    "integration": {"path": "tests/integration/", "timeout": 60, "desc": "Integration tests (local dropbox server)"},
}


def run_suite(name: str) -> bool:
    suite = SUITES[name]
    print(f"\n{'='*60}")
    print(f"  {suite['desc']}")
    print(f"  pytest {suite['path']} --timeout={suite['timeout']}")
    print(f"{'='*60}\n")

    result = subprocess.run(
        [sys.executable, "-m", "pytest", suite["path"],
         "-v", "--tb=short", f"--timeout={suite['timeout']}"],
    )
    return result.returncode == 0


def main():
    arg = sys.argv[1] if len(sys.argv) > 1 else None

    if arg is None or arg == "all":
        suites = list(SUITES)
    elif arg in SUITES:
        suites = [arg]
    else:
        print(f"Unknown suite: {arg}")
        print(f"Available: {', '.join(SUITES)}, all")
        return 1

    results = {name: run_suite(name) for name in suites}

    print(f"\n{'='*60}")
    print("  Summary")
    print(f"{'='*60}")
    for name, passed in results.items():
        icon = "✓" if passed else "✗"
        print(f"  {icon} {name}: {'PASSED' if passed else 'FAILED'}")

    return 0 if all(results.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
