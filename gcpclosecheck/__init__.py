"""Rules, escape analysis and tracking of Google Cloud resources that must be closed or stopped."""

__version__ = "0.1.0"