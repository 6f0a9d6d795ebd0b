"""callvm.version — package version (bump on tagged releases)."""

__version__ = "0.1.0"
