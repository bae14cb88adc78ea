"""Reforge: modernize a GitHub repository with a language model."""

__version__ = "0.1.0"
