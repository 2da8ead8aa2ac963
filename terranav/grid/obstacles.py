"""
Dynamic obstacle notifications.

Obstacles that appear or disappear at runtime tell the grid to re-sample
the cells around them. This is the only way the grid changes after
construction.
"""

import logging
from typing import Optional

from ..config import ObstacleConfig
from .models import Vec3
from .nav_grid import NavGrid
from .sampler import Box, HeightfieldSampler

logger = logging.getLogger(__name__)


def on_obstacle_activated(grid: NavGrid, position: Vec3, update_range: float) -> int:
    """Refresh the grid after an obstacle appeared at position."""
    return grid.update_grid_area(position, update_range)


def on_obstacle_deactivated(grid: NavGrid, position: Vec3, update_range: float) -> int:
    """Refresh the grid after an obstacle at position went away."""
    return grid.update_grid_area(position, update_range)


class DynamicObstacle:
    """
    A box obstacle that can be switched on and off.

    When a scene is attached the box is added to / removed from it before
    the grid is refreshed, so the grid's next occupancy probes see the
    change. Without a scene the caller is responsible for updating whatever
    the grid's sampler reads.

    update_range defaults to config.update_range (ObstacleConfig defaults
    when no config is given).
    """

    def __init__(
        self,
        grid: Optional[NavGrid],
        bounds: Box,
        update_range: Optional[float] = None,
        scene: Optional[HeightfieldSampler] = None,
        config: Optional[ObstacleConfig] = None,
    ):
        self.grid = grid
        self.bounds = bounds
        if update_range is None:
            update_range = (config or ObstacleConfig()).update_range
        self.update_range = update_range
        self.scene = scene
        self._active = False

    @property
    def position(self) -> Vec3:
        return self.bounds.center

    @property
    def active(self) -> bool:
        return self._active

    def activate(self) -> None:
        """Place the obstacle and refresh the surrounding grid cells."""
        if self._active:
            return
        self._active = True
        if self.scene is not None:
            self.scene.add_obstacle(self.bounds)
        if self._grid_ready():
            on_obstacle_activated(self.grid, self.position, self.update_range)

    def deactivate(self) -> None:
        """Remove the obstacle and refresh the surrounding grid cells."""
        if not self._active:
            return
        self._active = False
        if self.scene is not None:
            self.scene.remove_obstacle(self.bounds)
        if self._grid_ready():
            on_obstacle_deactivated(self.grid, self.position, self.update_range)

    def _grid_ready(self) -> bool:
        # Obstacles may toggle before the grid is built; create_grid() will
        # pick up their current state anyway
        if self.grid is None or not self.grid.is_created:
            logger.debug(f"Grid not ready, skipping update for obstacle at {self.position.as_tuple()}")
            return False
        return True
