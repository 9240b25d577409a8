# SPDX-License-Identifier: AGPL-3.0

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from flowtest.coverage import CoverageReport
from flowtest.executor import TestOutcome


def pretty_print_results(outcomes: Sequence[TestOutcome], script_path: str) -> str:
    lines = [f'Test results: "{script_path}"']
    for outcome in outcomes:
        if outcome.passed:
            lines.append(f"- PASS: {outcome.test_name}")
        else:
            lines.append(f"- FAIL: {outcome.test_name}")
            lines.append(f"\t\t{outcome.error}")
    return "\n".join(lines) + "\n"


def outcome_status(outcome: TestOutcome) -> str:
    return "PASS" if outcome.passed else f"FAIL: {outcome.error}"


@dataclass(frozen=True)
class RunResult:
    # test file path -> outcomes, in execution order
    results: Mapping[str, Sequence[TestOutcome]]
    coverage_report: CoverageReport | None = None

    # 0 means the tests ran in declaration order
    seed: int = 0

    @property
    def num_passed(self) -> int:
        return sum(o.passed for outcomes in self.results.values() for o in outcomes)

    @property
    def num_failed(self) -> int:
        return sum(not o.passed for outcomes in self.results.values() for o in outcomes)

    @property
    def exitcode(self) -> int:
        return 1 if self.num_failed else 0

    def json(self) -> dict[str, dict[str, str]]:
        results = {
            path: {o.test_name: outcome_status(o) for o in outcomes}
            for path, outcomes in self.results.items()
        }

        meta = {}
        if self.coverage_report is not None:
            meta["coverage"] = self.coverage_report.percentage()
        if self.seed > 0:
            meta["seed"] = str(self.seed)
        results["meta"] = meta

        return results

    def __str__(self) -> str:
        sections = [
            pretty_print_results(outcomes, path)
            for path, outcomes in self.results.items()
        ]
        if self.coverage_report is not None:
            sections.append(str(self.coverage_report) + "\n")
        if self.seed > 0:
            sections.append(f"Seed: {self.seed}\n")
        return "\n".join(sections)

    def oneliner(self) -> str:
        parts = [
            pretty_print_results(outcomes, path)
            for path, outcomes in self.results.items()
        ]
        if self.coverage_report is not None:
            parts.append(str(self.coverage_report) + "\n")
        if self.seed > 0:
            parts.append(f"Seed: {self.seed}\n")
        return "".join(parts)
