"""
codecount - hierarchical, cache-backed line counting for source trees.
"""

__version__ = "0.1.0"
