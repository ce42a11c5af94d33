"""HTTP API for SQLGuard."""

from sqlguard import __version__

__all__ = ["__version__"]
