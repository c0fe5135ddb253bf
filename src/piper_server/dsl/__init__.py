"""
Markup DSL: tokenizer and transform engine.

    from piper_server.dsl import process
    process("Call [spell]bbc[/spell] now[pause:1000]thanks")
    # 'Call B. B. C. now..... thanks'
"""
from __future__ import annotations

from .tokenizer import tokenize
from .tokens import End, Modifier, Pause, Start, Text, Token
from .transforms import MAX_PAUSE_MS, ModifierStack, apply_modifiers, pause_dots, transform


def process(text: str) -> str:
    """Tokenize and transform marked-up text in one step."""
    return transform(tokenize(text))


__all__ = [
    "Modifier",
    "Text",
    "Pause",
    "Start",
    "End",
    "Token",
    "ModifierStack",
    "MAX_PAUSE_MS",
    "tokenize",
    "transform",
    "apply_modifiers",
    "pause_dots",
    "process",
]
