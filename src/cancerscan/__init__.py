"""Binary cancer image screening service."""

__version__ = "0.1.0"
