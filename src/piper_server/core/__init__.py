"""
Core infrastructure for piper-server.

    - config.py: Settings loading and validation
    - errors.py: SynthesisError hierarchy and error codes
    - logging/: Structured logging
    - metrics.py: Prometheus metrics
"""
