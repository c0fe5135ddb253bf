"""
Tests for the DSL transform engine.

Tests cover:
- Documented examples (spell, emphasis, whisper, unknown tag, unclosed tag)
- Pause rendering and dot-count monotonicity
- Fixed modifier precedence (spell > emphasis, fast > slow, whisper on top)
- Tolerant handling of overlapping and stray closing tags
- ModifierStack behavior
"""
import pytest

from piper_server.dsl import (
    MAX_PAUSE_MS,
    Modifier,
    ModifierStack,
    Pause,
    Text,
    apply_modifiers,
    pause_dots,
    process,
    tokenize,
    transform,
)


class TestDocumentedExamples:
    """Examples every implementation must reproduce."""

    def test_empty(self):
        assert transform(tokenize("")) == ""
        assert transform([]) == ""

    def test_spell(self):
        assert process("[spell]AbC[/spell]") == "A. B. C."

    def test_emphasis(self):
        assert process("[emphasis]hi[/emphasis]") == "HI"

    def test_whisper(self):
        assert process("[whisper]Secret[/whisper]") == "(secret)"

    def test_unknown_tag_passthrough(self):
        assert process("a [bogus] b") == "a [bogus] b"

    def test_unclosed_tag_runs_to_end(self):
        assert process("[slow]one two") == "one... two..."

    @pytest.mark.parametrize("text", [
        "Hello, world.",
        "   leading and trailing   ",
        "tabs\tand\nnewlines",
        "unicode: çğıöşü ñ 日本語",
        "back\\slash and ] closing",
        "...",
    ])
    def test_text_without_brackets_is_identity(self, text):
        assert transform(tokenize(text)) == text


class TestPauses:
    """Tests for [pause] rendering."""

    def test_bare_pause(self):
        assert process("Hello [pause] world") == "Hello ... world"

    def test_short_pause_has_three_dots(self):
        assert process("[pause:0]") == "... "
        assert process("[pause:100]") == "... "

    def test_long_pause(self):
        assert process("[pause:1000]") == "..... "

    def test_pause_dots_monotonic_with_floor(self):
        previous = 0
        for ms in range(0, MAX_PAUSE_MS + 5000, 50):
            dots = pause_dots(ms)
            assert dots >= 3
            assert dots >= previous
            previous = dots

    def test_huge_pause_is_clamped(self):
        assert pause_dots(10 ** 12) == MAX_PAUSE_MS // 200
        assert transform([Pause(10 ** 12)]) == "." * (MAX_PAUSE_MS // 200) + " "

    def test_pause_with_thousands_of_digits(self):
        assert process("[pause:" + "9" * 5000 + "]") == "." * (MAX_PAUSE_MS // 200) + " "
        assert process("[pause:" + "1" * 4400 + "]") == "." * (MAX_PAUSE_MS // 200) + " "

    def test_pause_ignores_modifiers(self):
        assert process("[whisper]a[pause]b[/whisper]") == "(a)...(b)"


class TestPrecedence:
    """Tests for the fixed modifier precedence."""

    def test_spell_drops_non_alphanumerics(self):
        assert process("[spell]a-1 b![/spell]") == "A. 1. B."

    def test_spell_supersedes_emphasis(self):
        assert process("[emphasis][spell]ab[/spell][/emphasis]") == "A. B."

    def test_spell_supersedes_slow(self):
        assert process("[slow][spell]ab cd[/spell][/slow]") == "A. B. C. D."

    def test_whisper_wraps_spell(self):
        assert process("[whisper][spell]ab[/spell][/whisper]") == "(a. b.)"

    def test_whisper_lowercases_emphasis(self):
        assert process("[whisper][emphasis]Hi[/emphasis][/whisper]") == "(hi)"

    def test_fast_strips_ellipses_and_commas(self):
        assert process("[fast]a, b... c[/fast]") == "a b c"

    def test_fast_beats_slow(self):
        assert process("[slow][fast]one, two[/fast][/slow]") == "one two"

    def test_fast_beats_slow_regardless_of_order(self):
        assert process("[fast][slow]one, two[/slow][/fast]") == "one two"

    def test_emphasis_with_slow(self):
        assert process("[emphasis][slow]go now[/slow][/emphasis]") == "GO... NOW..."

    def test_slow_whitespace_only_is_empty(self):
        assert process("[slow]   [/slow]") == ""

    def test_slow_then_plain(self):
        assert process("[slow]one two[/slow] three") == "one... two... three"

    def test_empty_pair_contributes_nothing(self):
        assert process("a[emphasis][/emphasis]b") == "ab"

    def test_apply_modifiers_empty_text(self):
        assert apply_modifiers("", frozenset(Modifier)) == ""


class TestMalformedNesting:
    """Tests for overlapping and stray tags."""

    def test_stray_close_is_ignored(self):
        assert process("[/slow]text") == "text"

    def test_overlapping_close_removes_only_that_kind(self):
        # slow closes first, fast stays active for " y"
        assert process("[slow][fast]x[/slow] y[/fast] z") == "x y z"

    def test_double_open_needs_double_close(self):
        assert process("[emphasis][emphasis]a[/emphasis]b[/emphasis]c") == "ABc"

    def test_transform_accepts_hand_built_tokens(self):
        assert transform([Text("a"), Pause(None), Text("b")]) == "a...b"


class TestModifierStack:
    """Tests for ModifierStack."""

    def test_push_and_active(self):
        stack = ModifierStack()
        stack.push(Modifier.SLOW)
        stack.push(Modifier.WHISPER)
        assert stack.active() == {Modifier.SLOW, Modifier.WHISPER}
        assert len(stack) == 2

    def test_close_removes_topmost_occurrence(self):
        stack = ModifierStack()
        for kind in (Modifier.SLOW, Modifier.FAST, Modifier.SLOW):
            stack.push(kind)
        assert stack.close(Modifier.SLOW) is True
        assert list(stack) == [Modifier.SLOW, Modifier.FAST]

    def test_close_from_middle_keeps_order(self):
        stack = ModifierStack()
        for kind in (Modifier.SLOW, Modifier.FAST, Modifier.SPELL):
            stack.push(kind)
        stack.close(Modifier.FAST)
        assert list(stack) == [Modifier.SLOW, Modifier.SPELL]

    def test_close_absent_kind(self):
        stack = ModifierStack()
        stack.push(Modifier.SLOW)
        assert stack.close(Modifier.FAST) is False
        assert list(stack) == [Modifier.SLOW]
