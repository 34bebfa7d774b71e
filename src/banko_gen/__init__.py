"""Banko (90-ball bingo) card generator with prank-mode exclusion planning."""

from .version import __version__

__all__ = ["__version__"]
