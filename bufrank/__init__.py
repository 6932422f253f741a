"""bufrank — frecency ranking and per-project history for editor buffers."""

from bufrank.version import __version__

__all__ = ["__version__"]
