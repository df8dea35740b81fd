"""Timestamped diagnostics + GitHub Actions formatting.

Command output owns stdout, so everything here goes to stderr.
"""

import os
import sys
from datetime import datetime

_verbose = False


def _timestamp() -> str:
    return datetime.now().strftime("%H:%M:%S")


def _is_github_actions() -> bool:
    return os.environ.get("GITHUB_ACTIONS") == "true"


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose or os.environ.get("RUNSTREAM_VERBOSE") == "1"


def info(msg: str) -> None:
    print(f"[{_timestamp()}] {msg}", file=sys.stderr, flush=True)


def debug(msg: str) -> None:
    if not is_verbose():
        return
    if _is_github_actions():
        print(f"::debug::{msg}", file=sys.stderr, flush=True)
        return
    print(f"[{_timestamp()}] DEBUG: {msg}", file=sys.stderr, flush=True)


def success(msg: str) -> None:
    info(f"  ✓ {msg}")


def error(msg: str) -> None:
    if _is_github_actions():
        print(f"::error::{msg}", file=sys.stderr, flush=True)
    print(f"[{_timestamp()}] ERROR: {msg}", file=sys.stderr, flush=True)
