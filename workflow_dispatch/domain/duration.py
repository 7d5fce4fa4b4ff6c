"""Duration strings for poll intervals and timeouts: "10s", "1m", "1h" -> seconds."""

import re

from workflow_dispatch.domain.exceptions import InvalidDurationFormatError

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
}

_DURATION_RE = re.compile(r"^(?P<value>[0-9]+)(?P<unit>[smh])$")


def parse_duration(text: str) -> int:
    """
    Parse "<integer><unit>" into whole seconds. Unit is one of s, m, h.
    Zero is a legal duration. Raises InvalidDurationFormatError otherwise.
    """
    if not isinstance(text, str):
        raise InvalidDurationFormatError(f"Duration must be a string, got {type(text).__name__}")
    match = _DURATION_RE.match(text.strip())
    if match is None:
        raise InvalidDurationFormatError(
            f"Invalid duration {text!r}: expected a non-negative integer followed by one of "
            f"{', '.join(UNIT_SECONDS)} (e.g. '10s', '1m', '1h')"
        )
    return int(match.group("value")) * UNIT_SECONDS[match.group("unit")]


def format_duration(value: int, unit: str = "s") -> str:
    """Build the textual form accepted by parse_duration."""
    if unit not in UNIT_SECONDS:
        raise InvalidDurationFormatError(f"Unknown duration unit {unit!r}")
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidDurationFormatError(f"Duration magnitude must be a non-negative integer, got {value!r}")
    return f"{value}{unit}"
