"""MadChef package."""

from madchef.version import __version__

__all__ = ["__version__"]
