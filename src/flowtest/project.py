# SPDX-License-Identifier: AGPL-3.0

import json
import os
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from flowtest import env
from flowtest.constants import TESTING_NETWORK
from flowtest.exceptions import ConfigError
from flowtest.logs import debug
from flowtest.utils import normalize_address


class FileReader(Protocol):
    """Reads raw file contents. Raises OSError (e.g. FileNotFoundError) on failure."""

    def read_file(self, path: str) -> bytes: ...


@dataclass(frozen=True)
class LocalFileReader:
    """Reads files from disk, relative paths being resolved against the project root."""

    root: str = "."

    def resolve(self, path: str) -> str:
        return path if os.path.isabs(path) else os.path.join(self.root, path)

    def read_file(self, path: str) -> bytes:
        with open(self.resolve(path), "rb") as f:
            return f.read()


@dataclass(frozen=True)
class ContractConfig:
    name: str
    source: str

    # network -> address
    aliases: dict[str, str] = field(default_factory=dict)

    def alias_for(self, network: str) -> str | None:
        return self.aliases.get(network)


@dataclass(frozen=True)
class Project:
    """The contracts of a project, with their sources and per-network aliases."""

    contracts: tuple[ContractConfig, ...] = ()

    def __post_init__(self):
        seen = set()
        for contract in self.contracts:
            if contract.name in seen:
                raise ConfigError(f"duplicate contract name: {contract.name}")
            seen.add(contract.name)

    def __iter__(self) -> Iterator[ContractConfig]:
        return iter(self.contracts)

    def __len__(self) -> int:
        return len(self.contracts)

    def by_name(self, name: str) -> ContractConfig | None:
        for contract in self.contracts:
            if contract.name == name:
                return contract
        return None

    def aliases(self, network: str = TESTING_NETWORK) -> dict[str, str]:
        """Returns contract name -> address for the given network.

        Every contract must have an alias on that network."""

        result = {}
        for contract in self.contracts:
            address = contract.alias_for(network)
            if address is None:
                raise ConfigError(
                    f"unable to find '{network}' alias for contract: {contract.name}"
                )
            result[contract.name] = address
        return result

    @staticmethod
    def from_dict(data: dict, source: str = "project file") -> "Project":
        """Builds a project from the parsed content of a project file.

        Each entry under "contracts" is either a source path, or an object with
        a "source" path and an optional "aliases" map of network -> address.
        Addresses written as `$NAME` are read from the environment.
        """

        if not isinstance(data, dict):
            raise ConfigError(f"{source}: expected an object at the top level")

        contracts_data = data.get("contracts", {})
        if not isinstance(contracts_data, dict):
            raise ConfigError(f"{source}: 'contracts' must be an object")

        contracts = []
        for name, entry in contracts_data.items():
            match entry:
                case str() if entry:
                    contracts.append(ContractConfig(name=name, source=entry))
                case {"source": str() as contract_source, **rest} if contract_source:
                    aliases = rest.get("aliases", {})
                    if not isinstance(aliases, dict):
                        raise ConfigError(
                            f"{source}: aliases of contract {name} must be an object"
                        )
                    contracts.append(
                        ContractConfig(
                            name=name,
                            source=contract_source,
                            aliases={
                                network: _parse_alias(source, name, network, address)
                                for network, address in aliases.items()
                            },
                        )
                    )
                case _:
                    raise ConfigError(
                        f"{source}: invalid entry for contract {name}: {entry!r}"
                    )

        return Project(contracts=tuple(contracts))

    @staticmethod
    def load(reader: FileReader, path: str) -> "Project":
        """Reads and parses a project file.

        A missing file is an error, since aliases are needed to run any test."""

        debug(f"loading project file {path}")
        content = reader.read_file(path)

        try:
            data = json.loads(content)
        except json.JSONDecodeError as err:
            raise ConfigError(f"{path}: invalid JSON: {err}") from err

        return Project.from_dict(data, source=path)


def _parse_alias(source: str, contract: str, network: str, address) -> str:
    if not isinstance(address, str):
        raise ConfigError(
            f"{source}: alias of contract {contract} on '{network}' must be a string"
        )

    try:
        return normalize_address(env.expand(address))
    except KeyError as err:
        raise ConfigError(
            f"{source}: environment variable {err} used by contract {contract} is not set"
        ) from err
    except ValueError as err:
        raise ConfigError(
            f"{source}: invalid '{network}' alias for contract {contract}: {err}"
        ) from err
