"""Cartograph: repository graph analysis and hybrid code retrieval."""

__version__ = "0.1.0"
