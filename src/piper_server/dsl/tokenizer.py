"""
DSL Tokenizer.

Hand-written left-to-right scanner turning marked-up text into tokens.

Recognized tags (exact, lowercase):
    [pause] [pause:<digits>]  (values above MAX_PAUSE_MS saturate)
    [slow] [fast] [emphasis] [spell] [whisper] and their [/...] closers

Everything else is text:
    - Unknown or malformed bracket sequences stay verbatim ("a [bogus] b").
    - "\\[" escapes a bracket: the text up to and including the next "]"
      is literal, without the backslash. If another "[" or the end of input
      comes first, only the "[" is literal.
    - A "[" met while reading a tag candidate ends that candidate; the
      first "[" is text and scanning resumes right after it.

Adjacent text is coalesced into a single Text token. The scanner never
raises and emits at most one token per input character.
"""
from __future__ import annotations

from typing import List, Optional

from .tokens import End, Pause, Start, Text, Token, modifier_for_tag
from .transforms import MAX_PAUSE_MS

_DIGITS = "0123456789"
_PAUSE = "pause"
_PAUSE_PREFIX = "pause:"
_MAX_PAUSE_DIGITS = len(str(MAX_PAUSE_MS))


def _pause_ms(digits: str) -> int:
    """Value of an ASCII digit run, saturated at MAX_PAUSE_MS."""
    significant = digits.lstrip("0")
    if len(significant) > _MAX_PAUSE_DIGITS:
        return MAX_PAUSE_MS
    return min(int(significant or "0"), MAX_PAUSE_MS)


def _parse_tag(body: str) -> Optional[Token]:
    """Parse the inside of "[...]" into a tag token, or None if not a tag."""
    if body == _PAUSE:
        return Pause(None)

    if body.startswith(_PAUSE_PREFIX):
        digits = body[len(_PAUSE_PREFIX):]
        if digits and all(c in _DIGITS for c in digits):
            return Pause(_pause_ms(digits))
        return None

    if body.startswith("/"):
        kind = modifier_for_tag(body[1:])
        return End(kind) if kind is not None else None

    kind = modifier_for_tag(body)
    return Start(kind) if kind is not None else None


def _find_candidate_end(text: str, start: int) -> int:
    """
    Index of the "]" closing the candidate opened at text[start], or -1
    when another "[" comes first or the input ends.
    """
    for i in range(start + 1, len(text)):
        ch = text[i]
        if ch == "]":
            return i
        if ch == "[":
            return -1
    return -1


def tokenize(text: str) -> List[Token]:
    """
    Scan text into DSL tokens.

    Examples:
        >>> tokenize("Hi [pause:400] there")
        [Text(text='Hi '), Pause(ms=400), Text(text=' there')]
        >>> tokenize("a [bogus] b")
        [Text(text='a [bogus] b')]
    """
    tokens: List[Token] = []
    buf: List[str] = []

    def flush() -> None:
        if buf:
            tokens.append(Text("".join(buf)))
            buf.clear()

    i = 0
    n = len(text)
    while i < n:
        ch = text[i]

        if ch == "\\" and i + 1 < n and text[i + 1] == "[":
            close = _find_candidate_end(text, i + 1)
            if close == -1:
                buf.append("[")
                i += 2
            else:
                buf.append(text[i + 1:close + 1])
                i = close + 1
            continue

        if ch == "[":
            end = _find_candidate_end(text, i)
            if end == -1:
                buf.append("[")
                i += 1
                continue
            tag = _parse_tag(text[i + 1:end])
            if tag is None:
                buf.append(text[i:end + 1])
            else:
                flush()
                tokens.append(tag)
            i = end + 1
            continue

        buf.append(ch)
        i += 1

    flush()
    return tokens
