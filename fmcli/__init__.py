"""fmcli - interactive file manager shell"""

from .version import __version__

__all__ = ["__version__"]
