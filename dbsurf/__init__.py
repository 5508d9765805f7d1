"""Terminal database browser with a multi-tab query workspace."""

__version__ = "0.1.0"
