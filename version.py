"""
Version information for iODO device diagnostics.
"""

MAJOR = 1
MINOR = 0
PATCH = 0


def get_version() -> str:
    """Get the full version string."""
    return f"{MAJOR}.{MINOR}.{PATCH}"


def get_version_tuple() -> tuple:
    """Get version as tuple (major, minor, patch)."""
    return (MAJOR, MINOR, PATCH)
