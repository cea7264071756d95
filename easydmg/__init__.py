"""EasyDMG: install apps from disk images without dragging and dropping."""

from .__version__ import __version__


__all__ = ["__version__"]
