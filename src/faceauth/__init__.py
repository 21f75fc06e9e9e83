"""Face descriptor enrollment, matching and session management service."""

__version__ = "1.0.0"
