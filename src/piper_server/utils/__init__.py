"""
Utility Modules for piper-server.

    - audio.py: WAV encoding of float32 samples
    - timeit.py: Performance measurement utilities
"""
