"""Decoding of ``ddcutil getvcp --terse`` responses.

The terse format is a single whitespace separated line starting with ``VCP``::

    VCP 10 C 43 100                 # continuous feature: current, max
    VCP 62 CNC x00 x64 x00 x32      # volume style: min, max, flags, current
    VCP 10 ERR                      # feature could not be read

``ddcutil`` may print warnings before the data line, so only the last ``VCP``
line of the output is considered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

ERROR_MARKER = "ERR"
MULTI_FIELD_MARKER = "CNC"
HEX_PREFIX = "x"

_VCP_LINE = re.compile(r"^VCP.*$", re.MULTILINE)


@dataclass(frozen=True, slots=True)
class VcpReading:
    """Structured view of one getvcp response."""

    tokens: Tuple[str, ...]
    current: Optional[int]
    maximum: Optional[int]

    @property
    def complete(self) -> bool:
        return self.current is not None and self.maximum is not None

    @property
    def fraction(self) -> Optional[float]:
        if not self.complete:
            return None
        return self.current / self.maximum


def parse_response(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    matches = _VCP_LINE.findall(raw.strip())
    if not matches:
        return []
    return matches[-1].split()


def is_valid(tokens: Sequence[str]) -> bool:
    if len(tokens) < 5 or tokens[2] == ERROR_MARKER:
        return False
    if tokens[2] == MULTI_FIELD_MARKER:
        return len(tokens) >= 7
    return True


def decode_value(token: Optional[str]) -> Optional[int]:
    """Decode a ``x``-prefixed hex or plain decimal token, ``None`` if neither."""

    if not isinstance(token, str):
        return None
    try:
        if token.startswith(HEX_PREFIX):
            return int(token[len(HEX_PREFIX):], 16)
        return int(token, 10)
    except ValueError:
        return None


def current_and_max(tokens: Sequence[str]) -> Tuple[Optional[int], Optional[int]]:
    if not is_valid(tokens):
        return None, None

    if len(tokens) >= 7 and tokens[2] == MULTI_FIELD_MARKER:
        # marker, min, max, flags, current
        current = decode_value(tokens[6])
        maximum = decode_value(tokens[4])
    else:
        current = decode_value(tokens[3])
        maximum = decode_value(tokens[4])

    if maximum is not None and maximum <= 0:
        maximum = None
    return current, maximum


def decode(raw: Optional[str]) -> VcpReading:
    tokens = parse_response(raw)
    current, maximum = current_and_max(tokens)
    return VcpReading(tokens=tuple(tokens), current=current, maximum=maximum)


__all__ = [
    "VcpReading",
    "current_and_max",
    "decode",
    "decode_value",
    "is_valid",
    "parse_response",
]
