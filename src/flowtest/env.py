# SPDX-License-Identifier: AGPL-3.0

from __future__ import annotations

import os

from dotenv import find_dotenv, load_dotenv

from flowtest.logs import debug


def init_env(path: str | None = None):
    if path is None:
        path = find_dotenv(usecwd=True)

    if not path:
        debug("no .env file found")
        return

    if not os.path.exists(path):
        debug(f"file {path} does not exist")
        return

    if os.path.isdir(path):
        path = os.path.join(path, ".env")

    if os.path.isfile(path):
        debug(f"loading .env from {path}")
        load_dotenv(path)
        return

    debug(f"file {path} is not a file")


def get_string(key: str, default: str | None = None) -> str:
    value = os.getenv(key, default)
    if value is None:
        raise KeyError(key)
    return value


def expand(value: str) -> str:
    """
    Returns the value of the environment variable named by a `$NAME` string,
    or the string itself if it does not start with `$`.

    Raises KeyError if the referenced environment variable is not set.
    """

    if value.startswith("$") and len(value) > 1:
        return get_string(value[1:])
    return value
