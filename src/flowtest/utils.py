# SPDX-License-Identifier: AGPL-3.0

from timeit import default_timer as timer

from flowtest.constants import ADDRESS_LENGTH


def stripped(hexstring: str) -> str:
    """Remove 0x prefix from hexstring"""
    return hexstring[2:] if hexstring.startswith("0x") else hexstring


def normalize_address(value: str) -> str:
    """
    Returns the canonical form of an account address: 0x followed by 16
    lowercase hex digits.

    Raises ValueError if the value is not a hex number that fits in 8 bytes.

    e.g.:
        0x01 -> 0x0000000000000001
        f8d6e0586b0a20c7 -> 0xf8d6e0586b0a20c7
    """
    digits = stripped(value.strip().lower())
    if not digits or len(digits) > ADDRESS_LENGTH * 2:
        raise ValueError(f"invalid address: {value!r}")

    # int() would accept underscores and signs
    if any(c not in "0123456789abcdef" for c in digits):
        raise ValueError(f"invalid address: {value!r}")

    return f"0x{int(digits, 16):0{ADDRESS_LENGTH * 2}x}"


def green(text: str) -> str:
    return f"\033[32m{text}\033[0m"


def red(text: str) -> str:
    return f"\033[31m{text}\033[0m"


color_good = green
color_error = red


class NamedTimer:
    def __init__(self, name: str, auto_start=True):
        self.name = name
        self.start_time = timer() if auto_start else None
        self.end_time = None
        self.sub_timers = []

    def start(self):
        if self.start_time is not None:
            raise ValueError(f"Timer {self.name} has already been started.")
        self.start_time = timer()

    def stop(self, stop_subtimers=True):
        if stop_subtimers:
            for sub_timer in self.sub_timers:
                sub_timer.stop()

        # if the timer has already been stopped, do nothing
        self.end_time = self.end_time or timer()

    def create_subtimer(self, name, auto_start=True, stop_previous=True):
        for subtimer in self.sub_timers:
            if subtimer.name == name:
                raise ValueError(f"Timer with name {name} already exists.")

        if stop_previous and self.sub_timers:
            self.sub_timers[-1].stop()

        sub_timer = NamedTimer(name, auto_start=auto_start)
        self.sub_timers.append(sub_timer)
        return sub_timer

    def __getitem__(self, name):
        for subtimer in self.sub_timers:
            if subtimer.name == name:
                return subtimer
        raise ValueError(f"Timer with name {name} does not exist.")

    def elapsed(self) -> float:
        if self.start_time is None:
            raise ValueError(f"Timer {self.name} has not been started")

        end_time = self.end_time if self.end_time is not None else timer()

        return end_time - self.start_time

    def report(self, include_subtimers=True) -> str:
        sub_reports_str = ""

        if include_subtimers:
            sub_reports = [
                f"{timer.name}: {format_time(timer.elapsed())}"
                for timer in self.sub_timers
            ]
            sub_reports_str = f" ({', '.join(sub_reports)})" if sub_reports else ""

        return f"{self.name}: {format_time(self.elapsed())}{sub_reports_str}"

    def __str__(self):
        return self.report()


def format_time(seconds: float) -> str:
    """
    Returns a pretty string for an elapsed time in seconds.
    Automatically chooses a relevant time unit (h, m, s, ms, µs, ns)

    Examples:
        3602.13 -> 1h00m02s
        62.003 -> 1m02s
        1.000000001 -> 1.000s
        0.123456789 -> 123.457ms
        0.000000001 -> 1.000ns
    """
    if seconds >= 3600:
        hours = int(seconds / 3600)
        minutes = int((seconds - (3600 * hours)) / 60)
        seconds_rounded = int(seconds - (3600 * hours) - (60 * minutes))
        return f"{hours}h{minutes:02}m{seconds_rounded:02}s"
    elif seconds >= 60:
        minutes = int(seconds / 60)
        seconds_rounded = int(seconds - (60 * minutes))
        return f"{minutes}m{seconds_rounded:02}s"
    elif seconds >= 1:
        return f"{seconds:.3f}s"
    elif seconds >= 1e-3:
        return f"{seconds * 1e3:.3f}ms"
    elif seconds >= 1e-6:
        return f"{seconds * 1e6:.3f}µs"
    else:
        return f"{seconds * 1e9:.3f}ns"
