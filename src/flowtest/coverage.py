# SPDX-License-Identifier: AGPL-3.0

import json
import os
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TypeAlias

from flowtest.constants import COVER_CODE_ALL, COVER_CODE_CONTRACTS
from flowtest.exceptions import ConfigError
from flowtest.locations import AddressLocation, Location, parse_location

LocationFilter: TypeAlias = Callable[[Location], bool]


def contracts_only(location: Location) -> bool:
    # scripts and transactions cannot be attributed to their source files
    return isinstance(location, AddressLocation)


def format_percentage(covered: int, total: int) -> str:
    percentage = 100.0 if total == 0 else covered / total * 100
    return f"{percentage:0.1f}%"


@dataclass
class LocationCoverage:
    # line number -> hit count, including statements that were never hit
    line_hits: dict[int, int] = field(default_factory=dict)

    @property
    def statements(self) -> int:
        return len(self.line_hits)

    def covered_lines(self) -> list[int]:
        return sorted(line for line, count in self.line_hits.items() if count > 0)

    def missed_lines(self) -> list[int]:
        return sorted(line for line, count in self.line_hits.items() if count == 0)

    def percentage(self) -> str:
        return format_percentage(len(self.covered_lines()), self.statements)


class CoverageReport:
    """Accumulates line hit counts per location over all the files of a run.

    A single report is shared by every file of a run. Executors register the
    statement lines of each location they load (`add_location`) and record
    every executed line (`add_line_hit`). Locations rejected by the filter, or
    explicitly excluded, are ignored.
    """

    def __init__(self, location_filter: LocationFilter | None = None) -> None:
        self._location_filter = location_filter
        self._coverage: dict[Location, LocationCoverage] = {}
        self._excluded: set[Location] = set()

    #
    # recording
    #

    def is_location_inspected(self, location: Location) -> bool:
        if location in self._excluded:
            return False
        return self._location_filter is None or self._location_filter(location)

    def exclude_location(self, location: Location) -> None:
        self._excluded.add(location)
        self._coverage.pop(location, None)

    def add_location(self, location: Location, lines: Iterable[int]) -> None:
        """Register the statement lines of a location, with zero hits."""
        if not self.is_location_inspected(location):
            return

        line_hits = self._coverage.setdefault(location, LocationCoverage()).line_hits
        for line in lines:
            line_hits.setdefault(line, 0)

    def add_line_hit(self, location: Location, line: int, count: int = 1) -> None:
        if not self.is_location_inspected(location):
            return

        line_hits = self._coverage.setdefault(location, LocationCoverage()).line_hits
        line_hits[line] = line_hits.get(line, 0) + count

    def merge(self, other: "CoverageReport") -> None:
        """Add the hits and exclusions of another report to this one."""
        for location in other._excluded:
            self.exclude_location(location)

        for location, coverage in other._coverage.items():
            self.add_location(location, coverage.line_hits)
            for line, count in coverage.line_hits.items():
                if count:
                    self.add_line_hit(location, line, count)

    #
    # queries
    #

    def locations(self) -> list[Location]:
        return sorted(self._coverage, key=str)

    def excluded_locations(self) -> list[Location]:
        return sorted(self._excluded, key=str)

    def coverage_for(self, location: Location) -> LocationCoverage | None:
        return self._coverage.get(location)

    def total_statements(self) -> int:
        return sum(c.statements for c in self._coverage.values())

    def covered_statements(self) -> int:
        return sum(len(c.covered_lines()) for c in self._coverage.values())

    def percentage(self) -> str:
        return format_percentage(self.covered_statements(), self.total_statements())

    #
    # serialization
    #

    def to_dict(self) -> dict:
        locations = {}
        for location in self.locations():
            coverage = self._coverage[location]
            locations[str(location)] = {
                "line_hits": {
                    str(line): count
                    for line, count in sorted(coverage.line_hits.items())
                },
                "missed_lines": coverage.missed_lines(),
                "statements": coverage.statements,
                "percentage": coverage.percentage(),
            }

        return {
            "coverage": locations,
            "excluded_locations": [str(loc) for loc in self.excluded_locations()],
        }

    def to_json(self, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @staticmethod
    def from_dict(
        data: dict, location_filter: LocationFilter | None = None
    ) -> "CoverageReport":
        """Rebuild a report from its `to_dict()` form.

        Derived fields (missed lines, statements, percentage) are recomputed
        from the line hits."""

        report = CoverageReport(location_filter)

        for location_id in data.get("excluded_locations", []):
            report.exclude_location(parse_location(location_id))

        for location_id, entry in data.get("coverage", {}).items():
            location = parse_location(location_id)
            line_hits = {int(line): count for line, count in entry["line_hits"].items()}
            report.add_location(location, line_hits)
            for line, count in line_hits.items():
                if count:
                    report.add_line_hit(location, line, count)

        return report

    def to_lcov(self) -> str:
        """Generate an LCOV format coverage report.

        The LCOV format includes:
        - SF: Source file (the location id)
        - DA: Line data (line number and execution count)
        - LF: Total number of lines found in the file
        - LH: Number of lines that were executed at least once
        """
        lcov_lines = ["TN:"]

        for location in self.locations():
            coverage = self._coverage[location]

            lcov_lines.append(f"SF:{location}")

            for line_number, count in sorted(coverage.line_hits.items()):
                lcov_lines.append(f"DA:{line_number},{count}")

            lcov_lines.append(f"LF:{coverage.statements}")
            lcov_lines.append(f"LH:{len(coverage.covered_lines())}")

            lcov_lines.append("end_of_record")

        return "\n".join(lcov_lines) + "\n"

    def __str__(self) -> str:
        lines = [f"Coverage: {self.percentage()} of statements"]
        for location in self.locations():
            coverage = self._coverage[location]
            lines.append(
                f"  {location}: {coverage.percentage()}"
                f" ({len(coverage.covered_lines())}/{coverage.statements} statements)"
            )
        return "\n".join(lines)


def new_coverage_report(covercode: str = COVER_CODE_ALL) -> CoverageReport:
    match covercode:
        case "all":
            return CoverageReport()
        case "contracts":
            return CoverageReport(location_filter=contracts_only)
        case _:
            raise ConfigError(
                f"invalid --covercode value: {covercode!r}, "
                f"expected '{COVER_CODE_ALL}' or '{COVER_CODE_CONTRACTS}'"
            )


def write_coverage_report(report: CoverageReport, path: str) -> None:
    """Write the report to path, in JSON or LCOV format depending on the extension."""

    ext = os.path.splitext(path)[1]
    match ext:
        case ".json":
            content = report.to_json(indent=2)
        case ".lcov":
            content = report.to_lcov()
        case _:
            raise ConfigError(
                f"given format: {ext or '(none)'}, only .json and .lcov are supported"
            )

    with open(path, "w") as f:
        f.write(content)
