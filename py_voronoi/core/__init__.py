"""
Core diagram construction functionality.
"""

from .geometry import EPSILON, BoundingBox, Point, Segment, bisector, intersection
from .cell_graph import BorderSegment, Cell, SENTINEL_COUNT
from .spatial_hash import SpatialHash
from .diagram import Diagram, DiagramStats, InsertResult, InsertStatus
from .point_sources import PointFile, PointFileError, random_points, read_points_file

__all__ = ['EPSILON', 'BoundingBox', 'Point', 'Segment', 'bisector', 'intersection',
           'BorderSegment', 'Cell', 'SENTINEL_COUNT', 'SpatialHash',
           'Diagram', 'DiagramStats', 'InsertResult', 'InsertStatus',
           'PointFile', 'PointFileError', 'random_points', 'read_points_file']
