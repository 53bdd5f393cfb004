"""Deterministic content hashing for published NFA code commitments."""

__version__ = "0.1.0"
