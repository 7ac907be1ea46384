"""
Incremental Voronoi diagram construction.
"""

__version__ = "0.1.0"
