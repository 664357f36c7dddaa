"""Experimental encodings for source map scope information."""

__version__ = "0.1.0"
