"""Shared test fixtures."""

import pytest


@pytest.fixture(autouse=True)
def settings(monkeypatch, tmp_path):
    """Fresh default settings per test, short cancel grace, quiet logs."""
    from runstream import config, log

    monkeypatch.delenv("RUNSTREAM_CONFIG", raising=False)
    monkeypatch.delenv("RUNSTREAM_VERBOSE", raising=False)
    monkeypatch.delenv("GITHUB_ACTIONS", raising=False)
    s = config.Settings(cancel_grace=1.0)
    config.configure(s)
    log.set_verbose(False)
    yield s
    config.configure(None)
    log.set_verbose(False)


@pytest.fixture
def mock_system(monkeypatch):
    """Mock the system operations the CLI calls."""
    from runstream import system

    calls = []
    responses = {}

    def record(name):
        def fake(*args, **kwargs):
            calls.append((name, args, kwargs))
            response = responses.get(name)
            if isinstance(response, Exception):
                raise response
            return response

        return fake

    for name in ("run", "capture", "run_and_print", "run_detached", "which", "toolchain_version"):
        monkeypatch.setattr(system, name, record(name))

    return type("MockSystem", (), {"calls": calls, "responses": responses})()
