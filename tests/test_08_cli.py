import json
from unittest.mock import patch

import pytest

from fakes import VOICE_ID, FakeEngine, FakePhonemizer, voice_config, write_voice


def _json_lines(out):
    return [json.loads(line) for line in out.splitlines() if line.startswith('{"ok"')]


def _fake_backends():
    return (
        patch("piper_server.services.tts_service.EspeakPhonemizer", return_value=FakePhonemizer("həlo")),
        patch("piper_server.services.tts_service.PiperEngine.load", return_value=FakeEngine()),
    )


def test_cli_dry_run(capsys):
    from piper_server import cli

    code = cli.main(["--text", "dry run test", "--dry-run"])
    assert code == 0
    out = capsys.readouterr().out
    assert "DRY_RUN_OK" in out
    assert "dry run test" in out


def test_cli_dry_run_json(capsys):
    from piper_server import cli

    code = cli.main(["[spell]bbc[/spell] now[pause:1000]thanks", "--dry-run", "--json"])
    assert code == 0
    out = capsys.readouterr().out
    payload = _json_lines(out)[0]
    assert payload["dry_run"] is True
    item = payload["items"][0]
    assert item["processed"] == "B. B. C. now..... thanks"
    assert item["tokens"] == 6
    assert item["text_len"] == len("[spell]bbc[/spell] now[pause:1000]thanks")


def test_cli_dry_run_batch_file(tmp_path, capsys):
    from piper_server import cli

    f = tmp_path / "inputs.txt"
    f.write_text("[emphasis]one[/emphasis]\n\n[whisper]Two[/whisper]\n", encoding="utf-8")
    assert cli.main(["--file", str(f), "--dry-run"]) == 0
    out = capsys.readouterr().out
    assert "ONE" in out
    assert "(two)" in out


def test_cli_requires_text():
    from piper_server import cli

    with pytest.raises(SystemExit):
        cli.main(["--dry-run"])


def test_cli_rejects_text_with_file(tmp_path):
    from piper_server import cli

    f = tmp_path / "inputs.txt"
    f.write_text("a\n", encoding="utf-8")
    with pytest.raises(SystemExit):
        cli.main(["--file", str(f), "--text", "b", "--dry-run"])


def test_cli_requires_voice(monkeypatch, voices_dir, tmp_path):
    from piper_server import cli

    monkeypatch.delenv("PIPER_SERVER_VOICE", raising=False)
    with pytest.raises(SystemExit):
        cli.main(["hello", "--voices-dir", str(voices_dir), "--out", str(tmp_path / "x.wav")])


def test_cli_list_voices(voices_dir, capsys):
    from piper_server import cli

    write_voice(voices_dir, "en_GB-alba-medium", voice_config(espeak="en-gb"))
    assert cli.main(["--voices", "--voices-dir", str(voices_dir), "--json"]) == 0
    payload = _json_lines(capsys.readouterr().out)[0]
    assert [v["id"] for v in payload["voices"]] == ["en_GB-alba-medium", VOICE_ID]


def test_cli_synth_writes_wav(voices_dir, tmp_path, capsys):
    from piper_server import cli

    out_path = tmp_path / "out" / "hello.wav"
    phon, load = _fake_backends()
    with phon, load:
        code = cli.main(["hello", "--voice", VOICE_ID, "--voices-dir", str(voices_dir), "--out", str(out_path)])

    assert code == 0
    data = out_path.read_bytes()
    assert data[:4] == b"RIFF"
    assert data[8:12] == b"WAVE"
    assert "CLI_OK" in capsys.readouterr().out


def test_cli_batch_numbered_outputs(voices_dir, tmp_path, monkeypatch, capsys):
    from piper_server import cli

    monkeypatch.setenv("PIPER_SERVER_VOICE", VOICE_ID)
    f = tmp_path / "inputs.txt"
    f.write_text("one\ntwo\n", encoding="utf-8")
    out_dir = tmp_path / "batch"

    phon, load = _fake_backends()
    with phon, load:
        code = cli.main(["--file", str(f), "--voices-dir", str(voices_dir), "--out", str(out_dir), "--json"])

    assert code == 0
    assert sorted(p.name for p in out_dir.iterdir()) == ["0001.wav", "0002.wav"]
    payload = _json_lines(capsys.readouterr().out)[0]
    assert [item["sample_rate"] for item in payload["items"]] == [22050, 22050]


def test_cli_synthesis_error_exit_code(voices_dir, tmp_path, capsys):
    from piper_server import cli

    code = cli.main([
        "hello", "--voice", "en_US-nobody-low",
        "--voices-dir", str(voices_dir), "--out", str(tmp_path / "x.wav"), "--json",
    ])
    assert code == 1
    payload = _json_lines(capsys.readouterr().out)[0]
    assert payload["ok"] is False
    assert payload["error"] == "VOICE_NOT_FOUND"
    assert payload["item"] == 1


@pytest.mark.slow
def test_cli_synth_real_voice(tmp_path):
    """Needs espeak-ng plus PIPER_SERVER_VOICES_DIR and PIPER_SERVER_TEST_VOICE."""
    import os
    import shutil

    from piper_server import cli

    voices_dir = os.getenv("PIPER_SERVER_VOICES_DIR")
    voice = os.getenv("PIPER_SERVER_TEST_VOICE")
    if not voices_dir or not voice or shutil.which("espeak-ng") is None:
        pytest.skip("real voice or espeak-ng not available")

    out_path = tmp_path / "real.wav"
    code = cli.main(["Hello [pause] world.", "--voice", voice, "--voices-dir", voices_dir, "--out", str(out_path)])
    assert code == 0
    data = out_path.read_bytes()
    assert data[:4] == b"RIFF"
    assert len(data) > 44
