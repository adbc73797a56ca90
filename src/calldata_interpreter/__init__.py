"""Contract call-data interpreter: ABI resolution, selector decoding and LLM risk analysis."""

__version__ = "1.0.0"
