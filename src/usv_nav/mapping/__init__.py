"""
Mapping Module

- OccupancyGrid: walkability grid over the operating water area
"""

from .occupancy_grid import (
    OccupancyGrid,
    Cell,
    ViewBounds,
    GridCell
)

__all__ = [
    'OccupancyGrid',
    'Cell',
    'ViewBounds',
    'GridCell',
]
