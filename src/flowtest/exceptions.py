"""
Test Run Exceptions
===================

Exceptions that abort a test run. Failing test cases are not exceptions:
they are recorded as `TestOutcome` values with an error message and the run
continues.
"""


class FlowTestException(Exception):
    """
    Base class for errors that stop the whole run.
    """

    pass


class ConfigError(FlowTestException):
    """
    Raised for invalid flag combinations, unsupported coverage file formats,
    malformed project files and contracts without a testing alias.

    Always raised before or during setup, never after partial results exist.
    """

    pass


class ResolutionError(FlowTestException):
    """
    Raised when an import location cannot be matched to a configured contract.
    """

    def __init__(self, location):
        self.location = location
        super().__init__(
            f"cannot find contract with location '{location}' in configuration"
        )


class ExecutorError(FlowTestException):
    """
    Raised by a script executor when it cannot run a file's suite at all,
    e.g. because the test script does not parse.
    """

    def __init__(self, message: str, script_path: str | None = None):
        self.script_path = script_path
        prefix = f"{script_path}: " if script_path else ""
        super().__init__(f"{prefix}{message}")
