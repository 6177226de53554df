"""Curriculum scheduling core for an English-learning academy."""

__version__ = "0.1.0"
