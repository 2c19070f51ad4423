"""Shroud: content-visibility policy for document-viewing hosts."""

__version__ = "0.1.0"

__all__ = ["__version__"]
