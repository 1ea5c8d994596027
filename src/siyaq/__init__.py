"""Siyaq: Arabic-first context window management and multi-model chat pipeline."""

__version__ = "1.0.0"
