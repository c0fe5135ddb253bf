"""
espeak-ng Phonemizer and Phoneme-Id Mapping.

Piper voices are trained on espeak-ng IPA output. The phonemizer shells
out to the espeak-ng binary:

    espeak-ng --ipa -q -v <locale> --stdin

espeak-ng prints one line per clause; lines are joined with single
spaces. Text is passed on stdin so it never appears in the process list
and cannot be mistaken for an option.

phonemes_to_ids() turns the IPA string into model input ids using the
voice's phoneme_id_map:

    [BOS] ids(p1) [PAD] ids(p2) [PAD] ... [EOS]

BOS/EOS/PAD are the map's "^", "$" and "_" entries. Missing BOS/EOS fall
back to id 0; a missing PAD is simply omitted. Symbols absent from the
map are skipped.
"""
from __future__ import annotations

import subprocess
from typing import List, Mapping, Sequence

from piper_server.core.errors import PhonemizationError
from piper_server.core.logging import debug, get_logger

_LOG = get_logger("piper-server.phonemizer")

BOS = "^"
EOS = "$"
PAD = "_"
SENTINEL_ID = 0


class EspeakPhonemizer:
    """
    Phonemizer backed by the espeak-ng executable.

    Args:
        executable: Binary name or path.
        timeout_s: Per-call timeout in seconds.
    """

    def __init__(self, executable: str = "espeak-ng", timeout_s: float = 30.0):
        self.executable = executable
        self.timeout_s = timeout_s

    def _command(self, locale: str) -> List[str]:
        return [self.executable, "--ipa", "-q", "-v", locale, "--stdin"]

    def phonemize(self, text: str, locale: str) -> str:
        """
        Convert text to an IPA phoneme string.

        Raises:
            PhonemizationError: Binary missing, non-zero exit or timeout.
        """
        if not text.strip():
            return ""

        try:
            result = subprocess.run(
                self._command(locale),
                input=text,
                capture_output=True,
                text=True,
                encoding="utf-8",
                timeout=self.timeout_s,
            )
        except FileNotFoundError as e:
            raise PhonemizationError(
                f"{self.executable} not found (is espeak-ng installed?)",
                {"executable": self.executable},
            ) from e
        except subprocess.TimeoutExpired as e:
            raise PhonemizationError(
                f"{self.executable} timed out after {self.timeout_s}s",
                {"locale": locale},
            ) from e
        except OSError as e:
            raise PhonemizationError(f"failed to run {self.executable}: {e}") from e

        if result.returncode != 0:
            raise PhonemizationError(
                f"{self.executable} failed: {result.stderr.strip() or 'exit ' + str(result.returncode)}",
                {"locale": locale, "returncode": result.returncode},
            )

        lines = [line.strip() for line in result.stdout.splitlines()]
        phonemes = " ".join(line for line in lines if line)
        debug(_LOG, "phonemized", locale=locale, chars=len(text), phonemes=len(phonemes))
        return phonemes


def phonemes_to_ids(phonemes: str, id_map: Mapping[str, Sequence[int]]) -> List[int]:
    """
    Map an IPA string to model input ids.

    Example:
        >>> phonemes_to_ids("ab", {"^": [1], "$": [2], "_": [0], "a": [5], "b": [6]})
        [1, 5, 0, 6, 0, 2]
    """
    pad = list(id_map.get(PAD, ()))
    ids: List[int] = list(id_map.get(BOS, (SENTINEL_ID,)))

    for ch in phonemes:
        mapped = id_map.get(ch)
        if mapped is None:
            continue
        ids.extend(mapped)
        ids.extend(pad)

    ids.extend(id_map.get(EOS, (SENTINEL_ID,)))
    return ids
