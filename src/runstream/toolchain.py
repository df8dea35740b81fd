"""Toolchain version lookup, computed once per process."""

import re
import threading
from collections.abc import Callable
from concurrent.futures import Future

from runstream import config
from runstream.errors import VersionParseError


def parse_version(output: str, pattern: str = config.DEFAULT_TOOLCHAIN_PATTERN) -> str:
    """Extract group 1 of ``pattern`` from ``output``, stripped."""
    match = re.search(pattern, output)
    if match is None:
        raise VersionParseError(output)
    return match.group(1).strip()


class VersionCache:
    """Single-flight cache around ``lookup``.

    Concurrent first callers share one in-flight lookup and see the same value
    or the same exception. A value, once resolved, is kept for good; a failure
    is not, so the next call after it looks up again.
    """

    def __init__(self, lookup: Callable[[], str]):
        self._lookup = lookup
        self._lock = threading.Lock()
        self._value: str | None = None
        self._inflight: Future | None = None

    @property
    def value(self) -> str | None:
        return self._value

    def get(self) -> str:
        with self._lock:
            if self._value is not None:
                return self._value
            future = self._inflight
            owner = future is None
            if owner:
                future = self._inflight = Future()

        if not owner:
            return future.result()

        try:
            value = self._lookup()
        except BaseException as e:
            # Waiters block on the future; it must resolve even on KeyboardInterrupt
            with self._lock:
                self._inflight = None
            future.set_exception(e)
            raise

        with self._lock:
            self._value = value
            self._inflight = None
        future.set_result(value)
        return value


def _lookup() -> str:
    from runstream import system

    settings = config.current()
    output = system.capture(settings.toolchain_command).decode("utf-8", errors="replace")
    return parse_version(output, settings.toolchain_pattern)


_shared = VersionCache(_lookup)


def toolchain_version() -> str:
    return _shared.get()
