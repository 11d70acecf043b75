"""Spreadsheet import normalization and multi-field search for a pharma
distribution back office (products / parties)."""

__version__ = "0.1.0"
