"""Version metadata for Proof Services."""

from __future__ import annotations

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"


def version() -> str:
    """Return the package version string."""
    return __version__


__all__ = ["__version__", "version"]
