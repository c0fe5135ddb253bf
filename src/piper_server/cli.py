"""
Command-Line Interface for piper-server.

Synthesizes without running the HTTP server, previews DSL processing,
lists voices, or starts the server.

Usage Examples:
    # Single text synthesis
    piper-server --text "Hello [pause] world" --voice en_US-lessac-medium --out hello.wav

    # Positional text (same as above)
    piper-server "Hello [pause] world" --voice en_US-lessac-medium

    # Batch processing from file (one utterance per line -> 0001.wav, 0002.wav, ...)
    piper-server --file inputs.txt --voice en_US-lessac-medium --out output_dir/

    # Dry-run mode (DSL only, no phonemizer or model needed)
    piper-server "[spell]BBC[/spell] news" --dry-run --json

    # List voices / run the HTTP server
    piper-server --voices
    piper-server --serve --port 3000

Environment Variables:
    PIPER_SERVER_SETTINGS: Settings file (default config/settings.yaml)
    PIPER_SERVER_VOICES_DIR: Voices directory override
    PIPER_SERVER_VOICE: Default voice for synthesis
    HOST / PORT: Bind address for --serve

Exit code is 0 on success and 1 on any synthesis error.
"""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import List, Optional
from uuid import uuid4

from piper_server.core.config import Settings, default_settings, load_settings
from piper_server.core.errors import SynthesisError
from piper_server.core.logging import configure_logging, fail, get_logger, info, set_request_id
from piper_server.dsl import process, tokenize


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="piper-server", description="piper-server CLI")

    # Input options (mutually exclusive: text vs file)
    parser.add_argument("text_pos", nargs="?", help="Text to synthesize (positional)")
    parser.add_argument("--text", help="Text to synthesize")
    parser.add_argument("--file", help="Batch input file (1 line = 1 item)")

    parser.add_argument("--voice", help="Voice id (default: $PIPER_SERVER_VOICE)")
    parser.add_argument("--out", help="Output path (file or dir in batch mode)")
    parser.add_argument("--voices-dir", help="Voices directory override")
    parser.add_argument("--config", help="Settings file (default: $PIPER_SERVER_SETTINGS)")

    # Execution modes
    parser.add_argument("--dry-run", action="store_true",
                        help="Process DSL markup and summarize without synth")
    parser.add_argument("--json", action="store_true",
                        help="Print JSON summary")
    parser.add_argument("--voices", action="store_true",
                        help="List available voices")

    # Server
    parser.add_argument("--serve", action="store_true", help="Run the HTTP server")
    parser.add_argument("--host", help="Bind host for --serve")
    parser.add_argument("--port", type=int, help="Bind port for --serve")

    return parser.parse_args(argv)


def _load_settings(args: argparse.Namespace) -> Settings:
    """Settings from --config (must exist) or the default path (optional)."""
    if args.config:
        settings = load_settings(args.config)
    else:
        try:
            settings = load_settings(os.getenv("PIPER_SERVER_SETTINGS", "config/settings.yaml"))
        except FileNotFoundError:
            settings = default_settings()

    if args.voices_dir:
        raw = dict(settings.raw)
        raw["voices"] = {**(raw.get("voices") or {}), "dir": args.voices_dir}
        settings = Settings(raw=raw)
    return settings


def _load_texts(args: argparse.Namespace) -> List[str]:
    """
    Load input texts from arguments or file.

    Raises:
        SystemExit: If no input provided or conflicting options used.
    """
    text = args.text or args.text_pos

    if args.file:
        if text:
            raise SystemExit("Use --file without --text or positional text.")
        lines = Path(args.file).read_text(encoding="utf-8").splitlines()
        items = [line.strip() for line in lines if line.strip()]
        if not items:
            raise SystemExit("Input file is empty.")
        return items

    if not text:
        raise SystemExit("Provide --text or a positional text.")
    return [text]


def _resolve_output_paths(args: argparse.Namespace, count: int) -> List[Path]:
    """Numbered files in --out for batch mode, else a single path."""
    if args.file:
        out_dir = Path(args.out or "out")
        out_dir.mkdir(parents=True, exist_ok=True)
        return [out_dir / f"{i + 1:04d}.wav" for i in range(count)]

    out_path = Path(args.out or "out.wav")
    out_path.parent.mkdir(parents=True, exist_ok=True)
    return [out_path]


def _summary_for_text(text: str) -> dict:
    """Dry-run summary: DSL output without phonemizing or synthesizing."""
    processed = process(text)
    return {
        "text_len": len(text),
        "tokens": len(tokenize(text)),
        "processed": processed,
        "processed_len": len(processed),
    }


def _serve(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from piper_server.main import create_app

    config = settings.get_service_config()
    app = create_app(settings)
    uvicorn.run(app, host=args.host or config.server.host, port=args.port or config.server.port)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 for success, 1 for synthesis errors).
    """
    args = _parse_args(argv)

    configure_logging()
    log = get_logger("piper-server.cli")
    set_request_id(str(uuid4())[:12])

    settings = _load_settings(args)

    if args.serve:
        return _serve(settings, args)

    from piper_server.services.tts_service import SpeakRequest, TTSService

    if args.voices:
        try:
            voices = TTSService(settings).list_voices()
        except SynthesisError as e:
            fail(log, "list_voices_failed", code=e.code, error=e.message)
            return 1
        if args.json:
            print(json.dumps({"ok": True, "voices": [v.to_dict() for v in voices]}, ensure_ascii=False))
        else:
            for v in voices:
                print(f"{v.id}\t{v.name}\t{v.language}")
        return 0

    texts = _load_texts(args)

    if args.dry_run:
        payload = {"ok": True, "dry_run": True, "items": [_summary_for_text(t) for t in texts]}
        if args.json:
            print(json.dumps(payload, ensure_ascii=False))
        else:
            info(log, "dry_run", items=len(texts))
            for item in payload["items"]:
                print(item["processed"])
        print("DRY_RUN_OK")
        return 0

    voice = args.voice or os.getenv("PIPER_SERVER_VOICE")
    if not voice:
        raise SystemExit("Provide --voice or set PIPER_SERVER_VOICE.")

    out_paths = _resolve_output_paths(args, len(texts))
    service = TTSService(settings)
    results = []

    for i, (text, out_path) in enumerate(zip(texts, out_paths)):
        try:
            result = service.synthesize(SpeakRequest(text=text, voice=voice), request_id=f"cli-{i + 1:04d}")
        except SynthesisError as e:
            if args.json:
                print(json.dumps({**e.to_dict(), "item": i + 1}, ensure_ascii=False))
            else:
                print(f"error: {e.code}: {e.message}")
            return 1

        out_path.write_bytes(result.wav_bytes)
        results.append({
            "out": str(out_path),
            "bytes": len(result.wav_bytes),
            "sample_rate": result.sample_rate,
        })

    payload = {"ok": True, "dry_run": False, "items": results}
    if args.json:
        print(json.dumps(payload, ensure_ascii=False))
    else:
        for item in results:
            print(f"{item['out']}\t{item['bytes']} bytes\t{item['sample_rate']} Hz")
    print("CLI_OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
