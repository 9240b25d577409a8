# SPDX-License-Identifier: AGPL-3.0

import json
import os
import sys
import traceback
from dataclasses import dataclass
from importlib import metadata

from flowtest.config import Config as FlowTestConfig
from flowtest.config import (
    ConfigSource,
    default_config,
    parse_cli_args,
    resolve_config_files,
    toml_parser,
)
from flowtest.coverage import write_coverage_report
from flowtest.env import init_env
from flowtest.exceptions import ConfigError, FlowTestException
from flowtest.executor import load_executor
from flowtest.logs import debug, error, info, set_debug
from flowtest.project import LocalFileReader, Project
from flowtest.result import RunResult
from flowtest.runner import read_test_files, run_test_files, validate_flags
from flowtest.ui import ui
from flowtest.utils import NamedTimer, color_error, color_good

# sometimes defaults to cp1252 on Windows, which can cause UnicodeEncodeError
if sys.stdout.encoding != "utf-8":
    sys.stdout.reconfigure(encoding="utf-8")


def load_config(_args) -> FlowTestConfig:
    config = default_config()

    # parse CLI args first, so that can get `--help` out of the way
    # but don't apply the CLI overrides yet
    cli_overrides = parse_cli_args(_args)

    # then for each config file, parse it and override the args
    config_files = resolve_config_files(_args)
    for config_file in config_files:
        if not os.path.exists(config_file):
            error(f"Config file not found: {config_file}")
            sys.exit(2)

        overrides = toml_parser().parse_file(config_file)
        config = config.with_overrides(ConfigSource.config_file, **overrides)

    # finally apply the CLI overrides
    return config.with_overrides(ConfigSource.command_line, **cli_overrides)


@dataclass(frozen=True)
class MainResult:
    exitcode: int
    result: RunResult | None = None


def render(result: RunResult, output: str) -> str:
    match output:
        case "json":
            return json.dumps(result.json(), indent=2)
        case "inline":
            return result.oneliner()
        case _:
            return str(result)


def run(args: FlowTestConfig) -> RunResult:
    """Load the project and the executor, then run every test file.

    Raises ConfigError, FlowTestException or OSError when the run can't
    complete; test failures are part of the returned result."""

    reader = LocalFileReader(args.root)

    project = Project.load(reader, args.project_file)
    executor = load_executor(args.executor)

    try:
        test_files = read_test_files(reader, args.files)
    except OSError as err:
        raise FlowTestException(f"error loading script file: {err}") from err

    if not args.no_status and ui.is_interactive:
        ui.start_status()

    try:
        return run_test_files(test_files, project, executor, args, reader)
    finally:
        ui.stop_status()


def _main(_args=None) -> MainResult:
    timer = NamedTimer("total")

    args = load_config(_args)

    if args.version:
        print(f"flowtest {metadata.version('flowtest')}")
        return MainResult(0)

    if args.debug or args.verbose:
        set_debug()

    if args.debug_config:
        debug(f"config:\n{args.formatted_layers()}")

    # reject bad flags before touching any file
    try:
        validate_flags(args)
    except ConfigError as err:
        error(str(err))
        return MainResult(2)

    if not args.files:
        error("no test files given")
        return MainResult(2)

    init_env(args.root)

    timer.create_subtimer("tests")
    try:
        result = run(args)
        if result.coverage_report is not None:
            timer.create_subtimer("coverage")
            write_coverage_report(result.coverage_report, args.coverprofile)
    except ConfigError as err:
        error(str(err))
        return MainResult(2)
    except (FlowTestException, OSError) as err:
        error(f"{type(err).__name__}: {err}")
        if args.debug:
            traceback.print_exc()
        return MainResult(1)
    timer.stop()

    print(render(result, args.output))

    if args.output == "text":
        color = color_good if result.exitcode == 0 else color_error
        print(
            color(
                f"Test result: {result.num_passed} passed; {result.num_failed} failed"
            )
        )

    if result.coverage_report is not None and args.output == "text":
        print(f"Coverage report saved to: {args.coverprofile}")

    if args.json_output:
        info(f"Writing output to {args.json_output}")
        try:
            with open(args.json_output, "w") as json_file:
                json.dump(result.json(), json_file, indent=4)
        except OSError as err:
            error(f"error writing {args.json_output}: {err}")
            return MainResult(1, result)

    if args.statistics:
        print(f"\n[time] {timer.report()}")

    return MainResult(result.exitcode, result)


# entrypoint for the `flowtest` script
def main() -> int:
    return _main().exitcode


# entrypoint for `python -m flowtest`
if __name__ == "__main__":
    sys.exit(main())
