"""
Walltaker tag search engine and link reaction machine.
"""

from walltaker.core import __version__

__all__ = ['__version__']
