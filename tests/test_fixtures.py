import re
from dataclasses import dataclass, field

import pytest

from flowtest.config import ConfigSource, default_config
from flowtest.exceptions import ExecutorError
from flowtest.executor import ExecutionContext, ScriptExecutor, TestOutcome
from flowtest.locations import AddressLocation, ScriptLocation, StringLocation
from flowtest.project import ContractConfig, Project

FOO_SOURCE = """access(all) contract Foo {
    access(all) fun hello(): String {
        return "hello"
    }
}
"""

BAR_SOURCE = """access(all) contract Bar {}
"""


@dataclass
class MemoryFileReader:
    files: dict[str, bytes] = field(default_factory=dict)
    reads: list[str] = field(default_factory=list)

    def read_file(self, path: str) -> bytes:
        self.reads.append(path)
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(path) from None


class FakeExecutor(ScriptExecutor):
    """Runs a tiny line-oriented test language:

        import Foo from 0x07      address import (recorded in coverage)
        import "path or name"     string import
        read "file"               file resolver
        script <hash>             a script execution (recorded in coverage)
        test <name>               passing test
        test <name> fails: <msg>  failing test

    Anything else is a syntax error.
    """

    def __init__(self):
        self.imported: dict[str, list[str]] = {}
        self.contexts: list[ExecutionContext] = []

    def run_tests(self, code: str, context: ExecutionContext) -> list[TestOutcome]:
        self.contexts.append(context)
        imported = self.imported.setdefault(context.script_path, [])
        tests: dict[str, str | None] = {}

        for line in code.splitlines():
            line = line.strip()
            if not line or line.startswith("//"):
                continue

            if m := re.fullmatch(r"import (\w+) from (0x[0-9a-fA-F]+)", line):
                location = AddressLocation(m[2], m[1])
                source = context.import_resolver(location)
                imported.append(source)
                self.record_contract(context, m[1], source)
            elif m := re.fullmatch(r'import "([^"]*)"', line):
                imported.append(context.import_resolver(StringLocation(m[1])))
            elif m := re.fullmatch(r'read "([^"]*)"', line):
                imported.append(context.file_resolver(m[1]))
            elif m := re.fullmatch(r"script (\w+)", line):
                if context.coverage is not None:
                    location = ScriptLocation(m[1])
                    context.coverage.add_location(location, [1, 2])
                    context.coverage.add_line_hit(location, 1)
            elif m := re.fullmatch(r"test (\w+)(?: fails: (.*))?", line):
                tests[m[1]] = m[2]
            else:
                raise ExecutorError(f"unexpected token: {line}", context.script_path)

        return [
            TestOutcome(test_name=name, error=tests[name])
            for name in context.ordered(list(tests))
        ]

    def record_contract(self, context: ExecutionContext, name: str, source: str):
        if context.coverage is None:
            return

        # every non blank line is a statement, only the first one runs
        location = AddressLocation(context.contracts[name], name)
        lines = [i for i, text in enumerate(source.splitlines(), 1) if text.strip()]
        context.coverage.add_location(location, lines)
        context.coverage.add_line_hit(location, lines[0])


@pytest.fixture
def args():
    return default_config()


@pytest.fixture
def with_args(args):
    def _with_args(**overrides):
        return args.with_overrides(ConfigSource.command_line, **overrides)

    return _with_args


@pytest.fixture
def project():
    return Project(
        contracts=(
            ContractConfig(
                name="Foo",
                source="contracts/Foo.cdc",
                aliases={"testing": "0x0000000000000007", "emulator": "0xf8d6e0586b0a20c7"},
            ),
            ContractConfig(
                name="Bar",
                source="contracts/Bar.cdc",
                aliases={"testing": "0x0000000000000008"},
            ),
        )
    )


@pytest.fixture
def reader():
    return MemoryFileReader(
        {
            "contracts/Foo.cdc": FOO_SOURCE.encode(),
            "contracts/Bar.cdc": BAR_SOURCE.encode(),
            "tests/test_helper.cdc": b"access(all) fun setup() {}\n",
        }
    )


@pytest.fixture
def executor():
    return FakeExecutor()
