"""Tests for cli.py — Click CLI commands."""

from click.testing import CliRunner

from runstream import config, log
from runstream.cli import main
from runstream.errors import LaunchError, SignalledError, TerminatedError, VersionParseError


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "runstream" in result.output
    assert "0.1.0" in result.output


def test_run(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["run", "make", "-j", "4"])
    assert result.exit_code == 0
    assert mock_system.calls == [("run", (["make", "-j", "4"],), {})]


def test_run_requires_command(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["run"])
    assert result.exit_code != 0
    assert mock_system.calls == []


def test_run_failure_propagates_exit_code(mock_system):
    mock_system.responses["run"] = TerminatedError("make", 2, b"no rule\n")
    runner = CliRunner()
    result = runner.invoke(main, ["run", "make"])
    assert result.exit_code == 2


def test_run_signalled_exit_code(mock_system):
    mock_system.responses["run"] = SignalledError("make", 9)
    runner = CliRunner()
    result = runner.invoke(main, ["run", "make"])
    assert result.exit_code == 137


def test_run_launch_error(mock_system):
    mock_system.responses["run"] = LaunchError(["nope"], "No such file or directory")
    runner = CliRunner()
    result = runner.invoke(main, ["run", "nope"])
    assert result.exit_code == 1


def test_capture_prints_output(mock_system):
    mock_system.responses["capture"] = b"hello\n"
    runner = CliRunner()
    result = runner.invoke(main, ["capture", "echo", "hello"])
    assert result.exit_code == 0
    assert result.stdout_bytes == b"hello\n"
    assert mock_system.calls == [("capture", (["echo", "hello"],), {})]


def test_stream(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["stream", "sh", "-c", "echo hi"])
    assert result.exit_code == 0
    assert mock_system.calls == [("run_and_print", (["sh", "-c", "echo hi"],), {"pipe_to": None})]


def test_stream_pipe_to(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["stream", "--pipe-to", "wc -c", "cat", "big.txt"])
    assert result.exit_code == 0
    assert mock_system.calls == [
        ("run_and_print", (["cat", "big.txt"],), {"pipe_to": ["wc", "-c"]})
    ]


def test_detach(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["detach", "sleep", "60"])
    assert result.exit_code == 0
    assert mock_system.calls == [("run_detached", (["sleep", "60"],), {})]


def test_which(mock_system):
    mock_system.responses["which"] = "/bin/sh"
    runner = CliRunner()
    result = runner.invoke(main, ["which", "sh"])
    assert result.exit_code == 0
    assert result.output == "/bin/sh\n"


def test_toolchain_version(mock_system):
    mock_system.responses["toolchain_version"] = "5.9.2"
    runner = CliRunner()
    result = runner.invoke(main, ["toolchain-version"])
    assert result.exit_code == 0
    assert result.output == "5.9.2\n"


def test_toolchain_version_parse_failure(mock_system):
    mock_system.responses["toolchain_version"] = VersionParseError("garbage")
    runner = CliRunner()
    result = runner.invoke(main, ["toolchain-version"])
    assert result.exit_code == 1


def test_verbose_flag(mock_system):
    runner = CliRunner()
    result = runner.invoke(main, ["--verbose", "run", "true"])
    assert result.exit_code == 0
    assert log.is_verbose()


def test_config_option(mock_system, tmp_path):
    path = tmp_path / "settings.yml"
    path.write_text("chunk_size: 123\n")
    runner = CliRunner()
    result = runner.invoke(main, ["--config", str(path), "run", "true"])
    assert result.exit_code == 0
    assert config.current().chunk_size == 123


def test_real_capture():
    runner = CliRunner()
    result = runner.invoke(main, ["capture", "printf", "abc"])
    assert result.exit_code == 0
    assert result.stdout_bytes == b"abc"


def test_real_run_failure():
    runner = CliRunner()
    result = runner.invoke(main, ["run", "sh", "-c", "exit 3"])
    assert result.exit_code == 3
