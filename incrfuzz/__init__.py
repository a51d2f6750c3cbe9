"""
Differential testing harness for cargo incremental compilation.

Replays a slice of git history, building and testing each commit both
from scratch and incrementally, and fails loudly the moment the two modes
disagree.
"""

__version__ = "0.1.0"
