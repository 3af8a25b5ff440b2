"""Pack a source tree into a single AI-readable artifact."""

__version__ = "1.1.2"
