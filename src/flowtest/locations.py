# SPDX-License-Identifier: AGPL-3.0

"""
Locations identify the source of code that is imported or executed by a test.

Import statements in test scripts produce an `ImportLocation`: either a
configured contract (`AddressLocation`) or a path-like string
(`StringLocation`). Scripts and transactions submitted by tests only show up
in coverage reports, as `ScriptLocation` and `TransactionLocation`.

Every location has a stable string id, which is also its key in serialized
coverage reports:

    A.<address>.<Name>   AddressLocation
    S.<path>             StringLocation
    s.<hash>             ScriptLocation
    t.<hash>             TransactionLocation
"""

from dataclasses import dataclass
from typing import TypeAlias

from flowtest.utils import normalize_address, stripped


@dataclass(frozen=True)
class AddressLocation:
    address: str
    name: str

    def __post_init__(self):
        object.__setattr__(self, "address", normalize_address(self.address))

    @property
    def id(self) -> str:
        return f"A.{stripped(self.address)}.{self.name}"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class StringLocation:
    path: str

    @property
    def id(self) -> str:
        return f"S.{self.path}"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class ScriptLocation:
    hash: str

    @property
    def id(self) -> str:
        return f"s.{self.hash}"

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class TransactionLocation:
    hash: str

    @property
    def id(self) -> str:
        return f"t.{self.hash}"

    def __str__(self) -> str:
        return self.id


ImportLocation: TypeAlias = AddressLocation | StringLocation
Location: TypeAlias = (
    AddressLocation | StringLocation | ScriptLocation | TransactionLocation
)


def parse_location(location_id: str) -> Location:
    """Inverse of `Location.id`.

    Raises ValueError for ids that don't start with a known prefix."""

    prefix, sep, rest = location_id.partition(".")
    if not sep or not rest:
        raise ValueError(f"invalid location id: {location_id!r}")

    match prefix:
        case "A":
            address, sep, name = rest.partition(".")
            if not sep or not name:
                raise ValueError(f"invalid address location id: {location_id!r}")
            return AddressLocation(address, name)
        case "S":
            return StringLocation(rest)
        case "s":
            return ScriptLocation(rest)
        case "t":
            return TransactionLocation(rest)
        case _:
            raise ValueError(f"unknown location kind in {location_id!r}")
