"""Navigation grid construction, repair and A* search."""

from .models import GridPosition, GridSnapshot, Node, Vec3
from .nav_grid import NavGrid
from .obstacles import DynamicObstacle, on_obstacle_activated, on_obstacle_deactivated
from .pathfinding import (
    PathFinder,
    PathResult,
    PathStopReason,
    SearchRecord,
    SearchScratch,
    octile_distance,
)
from .sampler import Box, HeightfieldSampler, Sampler, TerrainHit

__all__ = [
    # Models
    "GridPosition",
    "GridSnapshot",
    "Node",
    "Vec3",
    # Sampling
    "Box",
    "HeightfieldSampler",
    "Sampler",
    "TerrainHit",
    # Grid
    "NavGrid",
    # Obstacles
    "DynamicObstacle",
    "on_obstacle_activated",
    "on_obstacle_deactivated",
    # Search
    "PathFinder",
    "PathResult",
    "PathStopReason",
    "SearchRecord",
    "SearchScratch",
    "octile_distance",
]
