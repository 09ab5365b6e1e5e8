# printsheet/domain/keys.py
"""
Adjustment keys. Fronts are keyed per item, backs per series; saved
templates store them as "{head}-{tail}" and "back-{series}".
"""
from dataclasses import dataclass
from typing import Union

BACK_PREFIX = "back-"


@dataclass(frozen=True)
class FrontKey:
    head: str
    tail: str

    def to_wire(self) -> str:
        return f"{self.head}-{self.tail}"


@dataclass(frozen=True)
class BackKey:
    series: str

    def to_wire(self) -> str:
        return f"{BACK_PREFIX}{self.series}"


AdjustmentKey = Union[FrontKey, BackKey]


def parse_wire_key(key: str) -> AdjustmentKey:
    """Parse a saved-template key ("{head}-{tail}" or "back-{series}")."""
    if key.startswith(BACK_PREFIX):
        return BackKey(key[len(BACK_PREFIX):])
    head, sep, tail = key.partition("-")
    if not sep:
        raise ValueError(f"Malformed adjustment key '{key}'")
    return FrontKey(head, tail)
