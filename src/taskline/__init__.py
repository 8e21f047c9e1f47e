"""taskline: personal task tracking with a time-derived task lifecycle."""

__version__ = "0.1.0"
