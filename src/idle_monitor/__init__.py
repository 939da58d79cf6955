"""Classify machine activity state from OS signals and total time per state."""

__version__ = "0.1.0"
