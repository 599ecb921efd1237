"""Schrijfcoach: backend for the assignment writing workspace."""

__version__ = "0.1.0"
