"""ngupgrade: in-place framework major-version upgrade for Node.js projects."""

from ngupgrade.version import __version__

__all__ = ["__version__"]
