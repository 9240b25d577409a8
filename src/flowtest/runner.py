# SPDX-License-Identifier: AGPL-3.0

import os
import random
from collections.abc import Mapping

from flowtest.config import Config
from flowtest.constants import (
    COVER_PROFILE_FORMATS,
    DEFAULT_COVER_PROFILE,
    SEED_UPPER_BOUND,
    TESTING_NETWORK,
)
from flowtest.coverage import new_coverage_report
from flowtest.exceptions import ConfigError
from flowtest.executor import ExecutionContext, ScriptExecutor
from flowtest.logs import IGNORED_SEED, debug, warn_code
from flowtest.project import FileReader, Project
from flowtest.resolver import FileResolver, ImportResolver, read_text
from flowtest.result import RunResult
from flowtest.ui import ui


def validate_flags(args: Config) -> None:
    """Reject flag combinations that can't produce a valid run.

    Called before any test file is read."""

    if not args.cover and args.coverprofile != DEFAULT_COVER_PROFILE:
        raise ConfigError("the '--coverprofile' flag requires the '--cover' flag")

    if args.cover:
        ext = os.path.splitext(args.coverprofile)[1]
        if ext not in COVER_PROFILE_FORMATS:
            raise ConfigError(
                f"given format: {ext or '(none)'}, only .json and .lcov are supported"
            )


def select_seed(use_random: bool, seed: int, rng: random.Random | None = None) -> int:
    """Returns the seed that orders the tests of a run, 0 for declaration order.

    --random takes precedence over an explicit --seed."""

    if use_random:
        return (rng or random).randrange(1, SEED_UPPER_BOUND)
    if seed > 0:
        return seed
    return 0


def contract_aliases(project: Project, network: str = TESTING_NETWORK) -> dict[str, str]:
    return project.aliases(network)


def read_test_files(reader: FileReader, paths: list[str]) -> dict[str, str]:
    # preserves the command line order
    return {path: read_text(reader, path) for path in paths}


def run_test_files(
    test_files: Mapping[str, str],
    project: Project,
    executor: ScriptExecutor,
    args: Config,
    reader: FileReader,
) -> RunResult:
    """Run the suite of every test file and collect the outcomes.

    Test failures are recorded in the result. Any exception raised while
    running a file (executor structural errors, unresolved imports, unreadable
    files, sources that are not valid UTF-8) aborts the whole run.
    """

    coverage_report = new_coverage_report(args.covercode) if args.cover else None

    if args.random and args.seed > 0:
        warn_code(IGNORED_SEED, f"--seed {args.seed} is ignored since --random is given")

    # chosen once per run, shared by every file
    seed = select_seed(args.random, args.seed)
    if seed:
        debug(f"ordering tests with seed {seed}")

    contracts = contract_aliases(project)

    results = {}
    for script_path, code in test_files.items():
        ui.update_status(f"Running tests in {script_path}")
        debug(f"running tests in {script_path}")

        context = ExecutionContext(
            script_path=script_path,
            import_resolver=ImportResolver(
                script_path=script_path,
                contracts=project,
                reader=reader,
                helper_marker=args.helper_marker,
            ),
            file_resolver=FileResolver(script_path=script_path, reader=reader),
            contracts=contracts,
            coverage=coverage_report,
            seed=seed,
        )

        outcomes = executor.run_tests(code, context)
        results[script_path] = tuple(outcomes)

        num_failed = sum(not o.passed for o in outcomes)
        debug(f"{script_path}: {len(outcomes) - num_failed} passed; {num_failed} failed")

    return RunResult(results=results, coverage_report=coverage_report, seed=seed)
