"""Tooling for the layered warehouse naming convention (history -> ... -> business)."""

__version__ = "0.1.0"
