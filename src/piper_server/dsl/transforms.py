"""
DSL Transform Engine.

Walks a token stream with a ModifierStack and renders a plain-text
string for the phonemizer. The DSL only approximates prosody through
punctuation and casing.

Modifier precedence is fixed, independent of nesting order:
    1. spell     "AbC"      -> "A. B. C."  (alphanumerics only)
    2. emphasis  "hi"       -> "HI"        (skipped under spell)
    3. fast      "a, b..."  -> "a b"       (strips "..." and commas; beats slow)
    4. slow      "one two"  -> "one... two..."
    5. whisper   "Secret"   -> "(secret)"  (applies on top of all others)

Pauses:
    [pause]       -> "..."
    [pause:<ms>]  -> max(3, ms // 200) dots followed by a space
"""
from __future__ import annotations

from typing import AbstractSet, Iterable, List

from .tokens import End, Modifier, Pause, Start, Text, Token

# Upper bound on a timed pause; keeps output size bounded for huge values
MAX_PAUSE_MS = 60000
MIN_PAUSE_DOTS = 3
MS_PER_DOT = 200


class ModifierStack:
    """
    Currently open modifiers, innermost last.

    Closing a kind removes its top-most occurrence wherever it sits, so
    overlapping markup like "[slow][fast]x[/slow]y[/fast]" resolves
    without failing. Closing a kind that is not open is a no-op.
    """

    def __init__(self) -> None:
        self._items: List[Modifier] = []

    def push(self, kind: Modifier) -> None:
        self._items.append(kind)

    def close(self, kind: Modifier) -> bool:
        """Remove the top-most occurrence of kind. Returns False if absent."""
        for idx in range(len(self._items) - 1, -1, -1):
            if self._items[idx] is kind:
                del self._items[idx]
                return True
        return False

    def active(self) -> frozenset:
        return frozenset(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items))


def pause_dots(ms: int) -> int:
    """Dot count for a timed pause; monotonic in ms, never below three."""
    return max(MIN_PAUSE_DOTS, min(max(ms, 0), MAX_PAUSE_MS) // MS_PER_DOT)


def render_pause(ms: int | None) -> str:
    if ms is None:
        return "..."
    return "." * pause_dots(ms) + " "


def apply_modifiers(text: str, active: AbstractSet[Modifier]) -> str:
    """Apply the active modifier set to one text run."""
    if not text:
        return ""

    if Modifier.SPELL in active:
        out = " ".join(f"{c.upper()}." for c in text if c.isalnum())
    else:
        out = text
        if Modifier.EMPHASIS in active:
            out = out.upper()
        if Modifier.FAST in active:
            out = out.replace("...", "").replace(",", "")
        elif Modifier.SLOW in active:
            words = out.split()
            out = "... ".join(words) + "..." if words else ""

    if Modifier.WHISPER in active and out:
        out = f"({out.lower()})"
    return out


def transform(tokens: Iterable[Token]) -> str:
    """
    Render a token stream to plain text.

    Unclosed modifiers stay active through the end of input.

    Examples:
        >>> from piper_server.dsl.tokenizer import tokenize
        >>> transform(tokenize("[spell]AbC[/spell]"))
        'A. B. C.'
        >>> transform(tokenize("[slow]one two"))
        'one... two...'
    """
    stack = ModifierStack()
    parts: List[str] = []

    for token in tokens:
        if isinstance(token, Text):
            parts.append(apply_modifiers(token.text, stack.active()))
        elif isinstance(token, Pause):
            parts.append(render_pause(token.ms))
        elif isinstance(token, Start):
            stack.push(token.kind)
        elif isinstance(token, End):
            stack.close(token.kind)

    return "".join(parts)
