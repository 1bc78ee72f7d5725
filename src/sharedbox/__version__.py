"""
Module to retrieve the version of the 'sharedbox' package.

The version is read from the installed distribution metadata via
:func:`importlib.metadata.version`. A source checkout that was never
installed reports ``0.0.0``.

Attributes
----------
__version__ : str
    The version string of the 'sharedbox' package.
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__: str = version("sharedbox")
except PackageNotFoundError:
    __version__ = "0.0.0"
