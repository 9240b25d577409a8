# SPDX-License-Identifier: AGPL-3.0

import argparse
import os
import sys
from collections import OrderedDict
from dataclasses import MISSING, dataclass, fields
from dataclasses import field as dataclass_field
from enum import IntEnum
from typing import Any

import toml

from flowtest.constants import (
    COVER_CODE_ALL,
    COVER_CODE_CONTRACTS,
    DEFAULT_CONFIG_FILE,
    DEFAULT_COVER_PROFILE,
    DEFAULT_PROJECT_FILE,
    HELPER_SCRIPT_MARKER,
)
from flowtest.logs import warn

# common strings
internal = "internal"

# groups
coverage_opts, ordering_opts, output_opts, debugging = (
    "Coverage options",
    "Ordering options",
    "Output options",
    "Debugging options",
)


class ConfigSource(IntEnum):
    """Layers of configuration, in increasing order of precedence."""

    void = 0
    default = 1
    config_file = 2
    command_line = 3


# helper to define config fields
def arg(
    help: str,
    global_default: Any,
    metavar: str | None = None,
    group: str | None = None,
    choices: list[str] | None = None,
    short: str | None = None,
    countable: bool = False,
    positional: bool = False,
    global_default_str: str | None = None,
):
    return dataclass_field(
        default=None,
        metadata={
            "help": help,
            "global_default": global_default,
            "metavar": metavar,
            "group": group,
            "choices": choices,
            "short": short,
            "countable": countable,
            "positional": positional,
            "global_default_str": global_default_str,
        },
    )


@dataclass(frozen=True)
class Config:
    """Configuration object for flowtest.

    Don't instantiate this directly, since all fields have default value None. Instead, use:

     - `default_config()` to get the default configuration with the actual default values
     - `with_overrides()` to create a new configuration object with some fields overridden
    """

    ### Internal fields (not used to generate arg parsers)

    _parent: "Config" = dataclass_field(
        repr=False,
        metadata={
            internal: True,
        },
    )

    _source: ConfigSource = dataclass_field(
        metadata={
            internal: True,
        },
    )

    ### General options
    #
    # These fields generate the arg parser. A Config object built from external
    # arguments only holds the values that were actually given (everything else
    # is None), and is layered on top of `default_config()`, which is built from
    # the `global_default` metadata.

    files: list = arg(
        help="test files to run",
        global_default=[],
        metavar="FILE",
        positional=True,
    )

    root: str = arg(
        help="project root directory",
        metavar="ROOT",
        global_default=os.getcwd,
        global_default_str="current working directory",
    )

    config: str = arg(
        help="path to the config file",
        metavar="FILE",
        global_default=lambda: os.path.join(os.getcwd(), DEFAULT_CONFIG_FILE),
        global_default_str=f"ROOT/{DEFAULT_CONFIG_FILE}",
    )

    project_file: str = arg(
        help="project configuration file with contract sources and aliases, relative to the project root",
        global_default=DEFAULT_PROJECT_FILE,
        metavar="FILE",
    )

    executor: str = arg(
        help="name of the script executor used to run test files (registered under the `flowtest.executors` entry point group)",
        global_default="cadence",
        metavar="NAME",
    )

    helper_marker: str = arg(
        help="imports whose path contains this substring are read as helper scripts relative to the test file",
        global_default=HELPER_SCRIPT_MARKER,
        metavar="SUBSTRING",
    )

    version: bool = arg(
        help="print the version number",
        global_default=False,
    )

    ### Coverage options

    cover: bool = arg(
        help="calculate a coverage report",
        global_default=False,
        group=coverage_opts,
    )

    coverprofile: str = arg(
        help="filename to write the calculated coverage report to. Supported extensions are .json and .lcov",
        global_default=DEFAULT_COVER_PROFILE,
        metavar="FILE",
        group=coverage_opts,
    )

    covercode: str = arg(
        help="calculate coverage only for certain types of code. `contracts` excludes scripts and transactions",
        global_default=COVER_CODE_ALL,
        choices=[COVER_CODE_ALL, COVER_CODE_CONTRACTS],
        group=coverage_opts,
    )

    ### Ordering options

    random: bool = arg(
        help="execute test cases in a random order",
        global_default=False,
        group=ordering_opts,
    )

    seed: int = arg(
        help="seed for the order in which test cases are executed; 0 means declaration order",
        global_default=0,
        metavar="SEED",
        group=ordering_opts,
    )

    ### Output options

    output: str = arg(
        help="format of the printed results",
        global_default="text",
        choices=["text", "json", "inline"],
        short="o",
        group=output_opts,
    )

    json_output: str = arg(
        help="also write the test results in JSON to the given file",
        global_default=None,
        metavar="JSON_FILE_PATH",
        group=output_opts,
    )

    ### Debugging options

    verbose: int = arg(
        help="increase verbosity levels: -v, -vv, -vvv, ...",
        global_default=0,
        group=debugging,
        short="v",
        countable=True,
    )

    statistics: bool = arg(
        help="print statistics",
        global_default=False,
        group=debugging,
        short="st",
    )

    no_status: bool = arg(
        help="disable progress display",
        global_default=False,
        group=debugging,
    )

    debug: bool = arg(
        help="run in debug mode",
        global_default=False,
        group=debugging,
    )

    debug_config: bool = arg(
        help="print the resolved configuration layers",
        global_default=False,
        group=debugging,
    )

    ### Methods

    def __getattribute__(self, name):
        """Look up values in parent object if they are not set in the current object.

        This is because we consider the current object to override its parent.

        Because of this, printing a Config object will show a "flattened/resolved" view of the configuration.
        """

        # look up value in current object
        value = object.__getattribute__(self, name)
        if value is not None:
            return value

        # look up value in parent object
        parent = object.__getattribute__(self, "_parent")
        if parent is not None:
            return getattr(parent, name)

        return value

    def with_overrides(self, source: ConfigSource, **overrides):
        """Create a new configuration object with some fields overridden.

        Use vars(namespace) to pass in the arguments from an argparse parser or
        just a dictionary with the overrides (e.g. from a toml or json file)."""

        try:
            return Config(_parent=self, _source=source, **overrides)
        except TypeError as e:
            # follow argparse error message format and behavior
            warn(f"error: unrecognized argument: {str(e).split()[-1]}")
            sys.exit(2)

    def value_with_source(self, name: str) -> tuple[Any, ConfigSource]:
        # look up value in current object
        value = object.__getattribute__(self, name)
        if value is not None:
            return (value, self._source)

        # look up value in parent object
        parent = self._parent
        if parent is not None:
            return parent.value_with_source(name)

        return (value, self._source)

    def values_with_sources(self) -> dict[str, tuple[Any, ConfigSource]]:
        # field -> (value, source)
        values = {}
        for field in fields(self):
            if field.metadata.get(internal):
                continue
            values[field.name] = self.value_with_source(field.name)
        return values

    def values(self):
        skip_empty = self._parent is not None

        for field in fields(self):
            if field.metadata.get(internal):
                continue

            field_value = object.__getattribute__(self, field.name)
            if skip_empty and field_value is None:
                continue

            yield field.name, field_value

    def values_by_layer(self) -> dict[str, dict[str, Any]]:
        # source -> {field, value}
        if self._parent is None:
            return OrderedDict([(self._source.name, dict(self.values()))])

        values = self._parent.values_by_layer()
        values[self._source.name] = dict(self.values())
        return values

    def formatted_layers(self) -> str:
        lines = []
        for layer, values in self.values_by_layer().items():
            lines.append(f"{layer}:")
            for field, value in values.items():
                lines.append(f"  {field}: {value}")
        return "\n".join(lines)


def resolve_config_files(
    args: list[str] | None, include_missing: bool = False
) -> list[str]:
    config_parser = argparse.ArgumentParser(add_help=False)
    config_parser.add_argument(
        "--root",
        metavar="DIRECTORY",
        default=os.getcwd(),
    )

    config_parser.add_argument("--config", metavar="FILE")

    # beware: errors will cause a system exit
    args = config_parser.parse_known_args(args)[0]

    # if --config is passed explicitly, use that
    # no check for existence is done here, we don't want to silently ignore
    # missing config files when they are requested explicitly
    if args.config:
        return [args.config]

    # we expect to find flowtest.toml in the project root directory
    default_config_path = os.path.join(args.root, DEFAULT_CONFIG_FILE)
    if not include_missing and not os.path.exists(default_config_path):
        return []

    return [default_config_path]


class TomlParser:
    def parse_file(self, toml_file_path: str) -> dict:
        with open(toml_file_path) as f:
            return self.parse_str(f.read(), source=toml_file_path)

    # exposed for easier testing
    def parse_str(self, file_contents: str, source: str = DEFAULT_CONFIG_FILE) -> dict:
        parsed = toml.loads(file_contents)
        return self.parse_dict(parsed, source=source)

    # exposed for easier testing
    def parse_dict(self, parsed: dict, source: str = DEFAULT_CONFIG_FILE) -> dict:
        if len(parsed) != 1:
            warn(
                f"error: expected a single `[global]` section in {source}, "
                f"got {len(parsed)}: {', '.join(parsed.keys())}"
            )
            sys.exit(2)

        data = parsed.get("global")
        if data is None:
            for key in parsed:
                warn(f"error: expected a `[global]` section in {source}, got '{key}'")
                sys.exit(2)

        return {key.replace("-", "_"): value for key, value in data.items()}


def _create_default_config() -> "Config":
    values = {}

    for field in fields(Config):
        # we build the default config by looking at the global_default metadata field
        default = field.metadata.get("global_default", MISSING)
        if default == MISSING:
            continue

        # retrieve the default value
        values[field.name] = default() if callable(default) else default

    return Config(_parent=None, _source=ConfigSource.default, **values)


def _create_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flowtest",
        description="Run contract test scripts, with optional coverage reports",
    )

    groups = {
        None: parser,
    }

    # add arguments from the Config dataclass
    for field_info in fields(Config):
        # skip internal fields
        if field_info.metadata.get(internal, False):
            continue

        arg_help = field_info.metadata.get("help", "")
        metavar = field_info.metadata.get("metavar", None)

        if field_info.metadata.get("positional", False):
            parser.add_argument(
                field_info.name, nargs="*", help=arg_help, metavar=metavar
            )
            continue

        long_name = f"--{field_info.name.replace('_', '-')}"
        names = [long_name]

        short_name = field_info.metadata.get("short", None)
        if short_name:
            names.append(f"-{short_name}")

        group_name = field_info.metadata.get("group", None)
        if group_name not in groups:
            groups[group_name] = parser.add_argument_group(group_name)

        group = groups[group_name]

        if field_info.type is bool:
            group.add_argument(*names, help=arg_help, action="store_true", default=None)
        elif field_info.metadata.get("countable", False):
            group.add_argument(*names, help=arg_help, action="count")
        else:
            # add the default value to the help text
            default = field_info.metadata.get("global_default", None)
            if default is not None:
                default_str = field_info.metadata.get("global_default_str", None)
                default_str = repr(default) if default_str is None else default_str
                arg_help += f" (default: {default_str})"

            kwargs = {
                "help": arg_help,
                "metavar": metavar,
                "type": field_info.type,
            }
            if choices := field_info.metadata.get("choices", None):
                kwargs["choices"] = choices
            group.add_argument(*names, **kwargs)

    return parser


def parse_cli_args(args: list[str] | None) -> dict:
    """Parse command line arguments into a dict of config overrides.

    An empty positional list means "no files given", so it must not hide the
    files listed in a config file."""

    overrides = vars(arg_parser().parse_args(args))
    if not overrides.get("files"):
        overrides.pop("files", None)
    return overrides


def _create_toml_parser() -> TomlParser:
    return TomlParser()


# public singleton accessors
def default_config() -> "Config":
    return _default_config


def arg_parser() -> argparse.ArgumentParser:
    return _arg_parser


def toml_parser():
    return _toml_parser


# init module-level singletons
_arg_parser = _create_arg_parser()
_default_config = _create_default_config()
_toml_parser = _create_toml_parser()


# can generate a sample config file using:
# python -m flowtest.config ARGS > flowtest.toml
def main():
    def _to_toml_str(value: Any, type) -> str:
        assert value is not None
        if type is str:
            return f'"{value}"'
        if type is bool:
            return str(value).lower()
        if type is list:
            return toml.dumps({"v": value}).split("=", 1)[1].strip()
        return str(value)

    config = default_config().with_overrides(
        ConfigSource.command_line, **parse_cli_args(None)
    )

    lines = ["[global]"]
    current_group_name = None

    for field_info in fields(config):
        if field_info.metadata.get(internal, False):
            # skip internal fields
            continue

        name = field_info.name.replace("_", "-")
        if name in ["config", "root", "version"]:
            # skip fields that don't make sense in a config file
            continue

        group_name = field_info.metadata.get("group", None)
        if group_name != current_group_name:
            separator = "#" * 80
            lines.append(f"\n{separator}")
            lines.append(f"# {group_name: ^76} #")
            lines.append(separator)
            current_group_name = group_name

        arg_help = field_info.metadata.get("help", "")
        arg_help_tokens = arg_help.split(". ")  # split on sentences
        arg_help_str = "\n# ".join(arg_help_tokens)
        lines.append(f"\n# {arg_help_str}")

        (value, source) = config.value_with_source(field_info.name)
        default = field_info.metadata.get("global_default", None)

        # callable defaults depend on the context, so don't emit them
        # unless they were explicitly set on the command line
        if value is None or (
            callable(default) and source != ConfigSource.command_line
        ):
            metavar = field_info.metadata.get("metavar", None)
            lines.append(f"# {name} = {metavar}")
        else:
            value_str = _to_toml_str(value, field_info.type)
            lines.append(f"{name} = {value_str}")

    print("\n".join(lines))


if __name__ == "__main__":
    main()
