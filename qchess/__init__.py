"""Quantum chess: weighted superpositions of classical chess positions."""

__version__ = "0.1.0"
