"""Click entry point — all commands."""

import shlex
import sys

import click

from runstream import __version__, config, log, system
from runstream.errors import ExecutionError, LaunchError, SignalledError, TerminatedError


def _exit_code(e: Exception) -> int:
    if isinstance(e, TerminatedError):
        return e.code
    if isinstance(e, SignalledError):
        return 128 + e.code
    return 1


def _fail(e: Exception) -> None:
    log.error(str(e))
    sys.exit(_exit_code(e))


@click.group()
@click.version_option(version=__version__, prog_name="runstream")
@click.option("--verbose", "-v", is_flag=True, help="Log commands and their output")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help="Settings file (default: $RUNSTREAM_CONFIG or .runstream.yml)",
)
def main(verbose, config_path):
    """Run external commands: capture, stream, pipe, detach."""
    if config_path:
        config.configure(config.load_settings(config_path))
    if verbose:
        log.set_verbose(True)


_command_settings = {"ignore_unknown_options": True}


@main.command(context_settings=_command_settings)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def run(command):
    """Run COMMAND and discard its output."""
    try:
        system.run(list(command))
    except (LaunchError, ExecutionError) as e:
        _fail(e)


@main.command(context_settings=_command_settings)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def capture(command):
    """Run COMMAND and print its standard output once it exits."""
    try:
        output = system.capture(list(command))
    except (LaunchError, ExecutionError) as e:
        _fail(e)
    click.echo(output, nl=False)


@main.command(context_settings=_command_settings)
@click.option("--pipe-to", default=None, help='Second command fed by COMMAND, e.g. "wc -c"')
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def stream(pipe_to, command):
    """Run COMMAND, streaming its output as it arrives."""
    second = shlex.split(pipe_to) if pipe_to else None
    try:
        system.run_and_print(list(command), pipe_to=second)
    except (LaunchError, ExecutionError) as e:
        _fail(e)


@main.command(context_settings=_command_settings)
@click.argument("command", nargs=-1, required=True, type=click.UNPROCESSED)
def detach(command):
    """Start COMMAND in its own process group and return immediately."""
    try:
        system.run_detached(list(command))
    except LaunchError as e:
        _fail(e)
    log.success(f"started {system.escaped(command)}")


@main.command()
@click.argument("name")
def which(name):
    """Print the full path of executable NAME."""
    try:
        click.echo(system.which(name))
    except (LaunchError, ExecutionError) as e:
        _fail(e)


@main.command(name="toolchain-version")
def toolchain_version():
    """Print the toolchain version."""
    try:
        click.echo(system.toolchain_version())
    except (LaunchError, ExecutionError) as e:
        _fail(e)


if __name__ == "__main__":
    main()
