"""Terrain-conforming navigation grid with A* pathfinding."""

from .config import Config, GridConfig, PathfindingConfig, load_config, setup_logging
from .grid import (
    Box,
    DynamicObstacle,
    HeightfieldSampler,
    NavGrid,
    PathFinder,
    PathResult,
    PathStopReason,
    Vec3,
)

__all__ = [
    "Config",
    "GridConfig",
    "PathfindingConfig",
    "load_config",
    "setup_logging",
    "Box",
    "DynamicObstacle",
    "HeightfieldSampler",
    "NavGrid",
    "PathFinder",
    "PathResult",
    "PathStopReason",
    "Vec3",
]
