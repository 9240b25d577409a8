# SPDX-License-Identifier: AGPL-3.0

import logging
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler

#
# Basic logging
#

# stdout is reserved for the rendered results
handler = RichHandler(
    level=logging.NOTSET,
    show_time=False,
    show_path=False,
    console=Console(stderr=True),
)

logging.basicConfig(format="%(message)s", handlers=[handler])

logger = logging.getLogger("flowtest")


#
# Logging with filtering out duplicate log messages
#


class UniqueLoggingFilter(logging.Filter):
    def __init__(self):
        self.records = set()

    def filter(self, record):
        if record.msg in self.records:
            return False
        self.records.add(record.msg)
        return True


logger_unique = logging.getLogger("flowtest.unique")
logger_unique.addFilter(UniqueLoggingFilter())


def logger_for(allow_duplicate=True) -> logging.Logger:
    return logger if allow_duplicate else logger_unique


def debug(text: str, allow_duplicate=True) -> None:
    logger_for(allow_duplicate).debug(text)


def info(text: str, allow_duplicate=True) -> None:
    logger_for(allow_duplicate).info(text)


def warn(text: str, allow_duplicate=True) -> None:
    logger_for(allow_duplicate).warning(text)


def error(text: str, allow_duplicate=True) -> None:
    logger_for(allow_duplicate).error(text)


def debug_once(text: str) -> None:
    debug(text, allow_duplicate=False)


def set_debug(enabled: bool = True) -> None:
    level = logging.DEBUG if enabled else logging.NOTSET
    logger.setLevel(level)
    logger_unique.setLevel(level)


#
# Warnings with error code
#

WARNINGS_BASE_URL = "https://github.com/flowtest/flowtest/wiki/warnings"


@dataclass
class ErrorCode:
    code: str

    def url(self) -> str:
        return f"{WARNINGS_BASE_URL}#{self.code}"


IGNORED_SEED = ErrorCode("ignored-seed")


def warn_code(error_code: ErrorCode, msg: str, allow_duplicate=True):
    logger_for(allow_duplicate).warning(f"{msg}\n(see {error_code.url()})")
