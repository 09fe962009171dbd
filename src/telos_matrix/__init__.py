"""Telos idea matrix: score ideas against a goals document and analyze captured ideas."""

__version__ = "1.0.0"
