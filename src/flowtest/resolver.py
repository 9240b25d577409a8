# SPDX-License-Identifier: AGPL-3.0

import os
from collections.abc import Iterable
from dataclasses import dataclass
from typing import assert_never

from flowtest.constants import HELPER_SCRIPT_MARKER
from flowtest.exceptions import FlowTestException, ResolutionError
from flowtest.locations import AddressLocation, ImportLocation, StringLocation
from flowtest.logs import debug_once
from flowtest.project import ContractConfig, FileReader


def absolute_path(base_path: str, file_path: str) -> str:
    """Resolve file_path relative to the directory containing base_path.

    Absolute paths are returned unchanged."""

    if os.path.isabs(file_path):
        return file_path

    return os.path.normpath(os.path.join(os.path.dirname(base_path), file_path))


def decode_text(path: str, data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise FlowTestException(f"error loading {path}: not valid UTF-8 ({err})") from err


def read_text(reader: FileReader, path: str) -> str:
    return decode_text(path, reader.read_file(path))


@dataclass(frozen=True)
class ImportResolver:
    """Resolves the imports of the test script at `script_path` to source code.

    Helper script imports (paths containing `helper_marker`) are read relative
    to the test script, and a missing helper script resolves to empty code.
    Every other import must match a configured contract, and a contract source
    that can't be read is an error.
    """

    script_path: str
    contracts: Iterable[ContractConfig]
    reader: FileReader
    helper_marker: str = HELPER_SCRIPT_MARKER

    def __call__(self, location: ImportLocation) -> str:
        match location:
            case AddressLocation(name=name):
                contract = self.find_by_name(name)

            case StringLocation(path=ref):
                if self.helper_marker and self.helper_marker in ref:
                    return self.read_helper(ref)
                contract = self.find_by_ref(ref)

            case _:
                assert_never(location)

        if contract is None:
            raise ResolutionError(location)

        return read_text(self.reader, contract.source)

    def find_by_name(self, name: str) -> ContractConfig | None:
        for contract in self.contracts:
            if contract.name == name:
                return contract
        return None

    def find_by_ref(self, ref: str) -> ContractConfig | None:
        # an exact name wins over any path overlap
        if contract := self.find_by_name(ref):
            return contract

        if not ref:
            return None

        for contract in self.contracts:
            if ref in contract.source or contract.source in ref:
                return contract
        return None

    def read_helper(self, ref: str) -> str:
        path = absolute_path(self.script_path, ref)
        try:
            return self.reader.read_file(path).decode("utf-8")
        except (OSError, UnicodeDecodeError) as err:
            debug_once(f"helper script {path} not read: {err}")
            return ""


@dataclass(frozen=True)
class FileResolver:
    """Reads files referenced by the test script at `script_path`.

    Unlike helper script imports, read errors are propagated."""

    script_path: str
    reader: FileReader

    def __call__(self, path: str) -> str:
        return read_text(self.reader, absolute_path(self.script_path, path))
