"""
incrfuzz CLI - differential testing of cargo incremental builds

Commands:
- incrfuzz replay <range> - build/test every commit normally and incrementally
- incrfuzz build - checkpoint the work tree and build incrementally
"""

from incrfuzz import __version__

__all__ = ["__version__"]
