"""Complementary skills calculator for tabletop RPG skill checks."""

__version__ = "0.1.0"
