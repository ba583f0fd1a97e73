"""Git repository state and history analytics."""

__version__ = "0.1.0"
