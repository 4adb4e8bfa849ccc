"""News search proxy and editorial cartoon generation service."""

__version__ = "1.0.0"
