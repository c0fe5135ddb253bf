"""
DSL token types.

A token stream is a flat, ordered list of:
    Text("hello ")        plain text run
    Pause(None)           [pause]
    Pause(800)            [pause:800]
    Start(Modifier.SLOW)  [slow]
    End(Modifier.SLOW)    [/slow]
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union


class Modifier(str, Enum):
    """Modifier kinds; the value is the tag name used in markup."""
    SLOW = "slow"
    FAST = "fast"
    EMPHASIS = "emphasis"
    SPELL = "spell"
    WHISPER = "whisper"


@dataclass(frozen=True)
class Text:
    text: str


@dataclass(frozen=True)
class Pause:
    ms: Optional[int] = None


@dataclass(frozen=True)
class Start:
    kind: Modifier


@dataclass(frozen=True)
class End:
    kind: Modifier


Token = Union[Text, Pause, Start, End]

_TAG_KINDS = {m.value: m for m in Modifier}


def modifier_for_tag(name: str) -> Optional[Modifier]:
    """Return the Modifier for an exact lowercase tag name, else None."""
    return _TAG_KINDS.get(name)
