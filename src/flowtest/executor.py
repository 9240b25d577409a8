# SPDX-License-Identifier: AGPL-3.0

"""
Interface between the test runner and the contract-language interpreter.

The interpreter itself lives outside of this package. It is plugged in as a
`ScriptExecutor`, registered under the `flowtest.executors` entry point group,
e.g. in the plugin's pyproject.toml:

    [project.entry-points."flowtest.executors"]
    cadence = "my_plugin.executor:CadenceExecutor"
"""

import random
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from importlib.metadata import entry_points

from flowtest.coverage import CoverageReport
from flowtest.exceptions import ConfigError
from flowtest.locations import ImportLocation

ENTRY_POINT_GROUP = "flowtest.executors"


@dataclass(frozen=True)
class TestOutcome:
    __test__ = False

    test_name: str
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ExecutionContext:
    """Everything an executor needs to run the suite of one test file."""

    script_path: str

    # resolves import statements to source code
    import_resolver: Callable[[ImportLocation], str]

    # reads files referenced by the test script (e.g. with readFile)
    file_resolver: Callable[[str], str]

    # contract name -> address on the testing network
    contracts: Mapping[str, str]

    # shared by all the files of a run, None if coverage is disabled
    coverage: CoverageReport | None = None

    # 0 means declaration order
    seed: int = 0

    def ordered(self, test_names: Sequence[str]) -> list[str]:
        """Returns the order in which the given tests should run.

        The same seed always produces the same order for the same names."""

        names = list(test_names)
        if self.seed > 0:
            random.Random(self.seed).shuffle(names)
        return names


class ScriptExecutor(ABC):
    @abstractmethod
    def run_tests(self, code: str, context: ExecutionContext) -> list[TestOutcome]:
        """Run every test case of the given test script.

        Failing test cases are returned as outcomes with an error message.
        Raises ExecutorError if the script can't be run at all, and lets
        errors raised by the resolvers propagate."""
        ...


def available_executors() -> list[str]:
    return sorted(entry.name for entry in entry_points(group=ENTRY_POINT_GROUP))


def load_executor(name: str) -> ScriptExecutor:
    """Instantiate the executor registered under the given name.

    The entry point may refer to a ScriptExecutor subclass or to any
    callable returning an executor."""

    for entry in entry_points(group=ENTRY_POINT_GROUP):
        if entry.name == name:
            factory = entry.load()
            executor = factory()
            if not isinstance(executor, ScriptExecutor):
                raise ConfigError(
                    f"executor '{name}' ({entry.value}) is not a ScriptExecutor"
                )
            return executor

    available = ", ".join(available_executors()) or "none installed"
    raise ConfigError(f"executor '{name}' not found. Available executors: {available}")
