import logging

import pytest
from test_fixtures import BAR_SOURCE, FOO_SOURCE

from flowtest.exceptions import FlowTestException, ResolutionError
from flowtest.locations import AddressLocation, StringLocation
from flowtest.project import ContractConfig, Project
from flowtest.resolver import FileResolver, ImportResolver, absolute_path


@pytest.fixture
def resolver(project, reader):
    return ImportResolver(
        script_path="tests/foo_test.cdc", contracts=project, reader=reader
    )


def test_absolute_path_relative_to_script_dir():
    assert absolute_path("tests/foo_test.cdc", "bar.cdc") == "tests/bar.cdc"
    assert absolute_path("tests/foo_test.cdc", "../contracts/Foo.cdc") == (
        "contracts/Foo.cdc"
    )
    assert absolute_path("foo_test.cdc", "bar.cdc") == "bar.cdc"


def test_absolute_path_passes_absolute_paths_through():
    assert absolute_path("tests/foo_test.cdc", "/abs/bar.cdc") == "/abs/bar.cdc"


def test_address_location_returns_contract_source(resolver):
    code = resolver(AddressLocation("0x07", "Foo"))
    assert code == FOO_SOURCE


def test_address_location_matches_by_name_only(resolver):
    # the address in the import is not checked against the aliases
    assert resolver(AddressLocation("0x01", "Bar")) == BAR_SOURCE


def test_address_location_unknown_contract(resolver):
    location = AddressLocation("0x07", "Missing")
    with pytest.raises(ResolutionError) as exc_info:
        resolver(location)

    assert exc_info.value.location == location
    assert "A.0000000000000007.Missing" in str(exc_info.value)


def test_string_location_by_name(resolver):
    assert resolver(StringLocation("Foo")) == FOO_SOURCE


def test_string_location_by_source_path(resolver):
    # the configured source contains the import path
    assert resolver(StringLocation("Bar.cdc")) == BAR_SOURCE

    # the import path contains the configured source
    assert resolver(StringLocation("../contracts/Foo.cdc")) == FOO_SOURCE


def test_string_location_exact_name_wins(reader):
    reader.files["contracts/FooBar.cdc"] = b"contract FooBar {}"
    reader.files["contracts/Foo.cdc"] = b"contract Foo {}"
    project = Project(
        contracts=(
            ContractConfig(name="FooBar", source="contracts/FooBar.cdc"),
            ContractConfig(name="Foo", source="contracts/Foo.cdc"),
        )
    )
    resolver = ImportResolver("tests/foo_test.cdc", project, reader)

    # "Foo" is also a substring of the source of FooBar, configured first
    assert resolver(StringLocation("Foo")) == "contract Foo {}"
    assert resolver(StringLocation("FooBar")) == "contract FooBar {}"


def test_string_location_unknown(resolver):
    with pytest.raises(ResolutionError) as exc_info:
        resolver(StringLocation("Baz"))
    assert "S.Baz" in str(exc_info.value)


def test_empty_string_location_does_not_match_every_contract(resolver):
    with pytest.raises(ResolutionError):
        resolver(StringLocation(""))


def test_helper_script_read_relative_to_test_file(resolver):
    code = resolver(StringLocation("test_helper.cdc"))
    assert code == "access(all) fun setup() {}\n"


def test_missing_helper_script_resolves_to_empty_code(resolver, reader):
    assert resolver(StringLocation("missing_helper.cdc")) == ""
    assert "tests/missing_helper.cdc" in reader.reads


def test_helper_script_not_utf8_resolves_to_empty_code(resolver, reader):
    reader.files["tests/bin_helper.cdc"] = b"\xff\xfe not text"
    assert resolver(StringLocation("bin_helper.cdc")) == ""


def test_missing_helper_script_logged_once(resolver, caplog):
    caplog.set_level(logging.DEBUG, logger="flowtest")

    for _ in range(3):
        assert resolver(StringLocation("once/missing_helper.cdc")) == ""

    assert caplog.text.count("helper script tests/once/missing_helper.cdc") == 1


def test_missing_contract_source_is_an_error(project, reader):
    del reader.files["contracts/Foo.cdc"]
    resolver = ImportResolver("tests/foo_test.cdc", project, reader)

    with pytest.raises(FileNotFoundError):
        resolver(AddressLocation("0x07", "Foo"))


def test_contract_source_not_utf8_is_an_error(project, reader):
    reader.files["contracts/Foo.cdc"] = b"\xff\xfe contract"
    resolver = ImportResolver("tests/foo_test.cdc", project, reader)

    with pytest.raises(FlowTestException) as exc_info:
        resolver(StringLocation("Foo"))
    assert "error loading contracts/Foo.cdc: not valid UTF-8" in str(exc_info.value)


def test_custom_helper_marker(project, reader):
    reader.files["tests/utils.cdc"] = b"// utils"
    resolver = ImportResolver(
        "tests/foo_test.cdc", project, reader, helper_marker="utils"
    )

    assert resolver(StringLocation("utils.cdc")) == "// utils"

    # the default marker is now a regular import
    with pytest.raises(ResolutionError):
        resolver(StringLocation("test_helper.cdc"))


def test_file_resolver_reads_relative_to_test_file(reader):
    reader.files["tests/data/input.json"] = b"{}"
    resolver = FileResolver("tests/foo_test.cdc", reader)
    assert resolver("data/input.json") == "{}"


def test_file_resolver_propagates_missing_files(reader):
    resolver = FileResolver("tests/foo_test.cdc", reader)

    # even for paths that look like helper scripts
    with pytest.raises(FileNotFoundError):
        resolver("missing_helper.cdc")
