"""
Walltaker command line interface.
"""

from walltaker.core import __version__

__all__ = ['__version__']
