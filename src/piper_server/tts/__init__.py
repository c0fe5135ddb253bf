"""
Speech synthesis building blocks.

    - voices.py: Voice registry (.onnx + .onnx.json on disk)
    - phonemizer.py: espeak-ng phonemizer and phoneme-id mapping
    - engine.py: onnxruntime Piper engine
    - engine_cache.py: Per-voice engine cache with single-flight loading
"""
