"""Launch and execution failures."""


class LaunchError(RuntimeError):
    """The OS refused to start the process (not found, not executable, ...)."""

    def __init__(self, command: list[str], reason: str):
        self.command = command
        self.reason = reason
        super().__init__(f"Couldn't launch '{command[0]}': {reason}")


class ExecutionError(RuntimeError):
    """Base for failures of a process that did run.

    ``kind`` is "abort" when the tool itself failed and "bug" when the tool
    succeeded but its output broke our expectations.
    """

    kind = "abort"


def _message_suffix(stderr: bytes) -> str:
    if not stderr:
        return ""
    try:
        return f" and message:\n{stderr.decode('utf-8')}"
    except UnicodeDecodeError:
        return ""


class TerminatedError(ExecutionError):
    def __init__(self, command: str, code: int, stderr: bytes = b""):
        self.command = command
        self.code = code
        self.stderr = stderr
        super().__init__(
            f"The '{command}' command exited with error code {code}{_message_suffix(stderr)}"
        )


class SignalledError(ExecutionError):
    def __init__(self, command: str, code: int, stderr: bytes = b""):
        self.command = command
        self.code = code
        self.stderr = stderr
        super().__init__(
            f"The '{command}' was interrupted with a signal {code}{_message_suffix(stderr)}"
        )


class VersionParseError(ExecutionError):
    kind = "bug"

    def __init__(self, output: str):
        self.output = output
        super().__init__(f"Couldn't obtain the toolchain version from the output: {output}.")
