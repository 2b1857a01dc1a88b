"""ruledex: index, validate and resolve markdown rule documents for coding agents."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ruledex")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"
