"""
Terrain and occupancy sampling.

The grid never talks to a physics engine directly. It asks a Sampler two
questions per cell: where is the ground under this XZ point, and does a
sphere at this point overlap anything unwalkable. HeightfieldSampler is a
self-contained implementation backed by a numpy height array and a list of
box obstacles, used for tests and for embedding without an engine.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import numpy as np

from .models import Vec3

logger = logging.getLogger(__name__)


def _cell_count(extent: float, cell_size: float) -> int:
    # Tolerate float error so 2.0 / 0.2 yields 10 cells, not 11
    return max(1, int(math.ceil(extent / cell_size - 1e-9)))


@dataclass(frozen=True)
class TerrainHit:
    """Where a downward terrain probe struck the surface."""

    point: Vec3

    @property
    def height(self) -> float:
        return self.point.y


class Sampler(Protocol):
    """Interface the grid uses to read the scene."""

    def sample_terrain(self, x: float, z: float, ray_start_height: float) -> Optional[TerrainHit]:
        """
        Probe straight down from (x, ray_start_height, z).

        The probe travels 2 * ray_start_height. Returns None when no terrain
        lies along it.
        """
        ...

    def is_occupied(self, point: Vec3, radius: float) -> bool:
        """Whether a sphere at point overlaps unwalkable geometry."""
        ...


@dataclass(frozen=True)
class Box:
    """Axis-aligned box of unwalkable geometry."""

    center: Vec3
    size: Vec3

    @property
    def min_corner(self) -> Vec3:
        return Vec3(
            self.center.x - self.size.x / 2,
            self.center.y - self.size.y / 2,
            self.center.z - self.size.z / 2,
        )

    @property
    def max_corner(self) -> Vec3:
        return Vec3(
            self.center.x + self.size.x / 2,
            self.center.y + self.size.y / 2,
            self.center.z + self.size.z / 2,
        )

    def intersects_sphere(self, point: Vec3, radius: float) -> bool:
        """Overlap test; a sphere merely touching a face does not count."""
        lo, hi = self.min_corner, self.max_corner
        closest = Vec3(
            min(max(point.x, lo.x), hi.x),
            min(max(point.y, lo.y), hi.y),
            min(max(point.z, lo.z), hi.z),
        )
        return point.distance_to(closest) < radius


class HeightfieldSampler:
    """
    Sampler over a regular heightfield with box obstacles.

    heights is indexed [ix, iz]; cell (ix, iz) covers
    [origin_x + ix * cell_size, origin_x + (ix + 1) * cell_size) along X and
    likewise along Z. NaN entries are holes with no terrain.
    """

    def __init__(
        self,
        heights: np.ndarray,
        cell_size: float = 1.0,
        origin_x: float = 0.0,
        origin_z: float = 0.0,
        obstacles: Optional[list[Box]] = None,
    ):
        heights = np.asarray(heights, dtype=np.float64)
        if heights.ndim != 2:
            raise ValueError(f"heights must be 2D, got shape {heights.shape}")
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")

        self.heights = heights.copy()
        self.cell_size = cell_size
        self.origin_x = origin_x
        self.origin_z = origin_z
        self.obstacles: list[Box] = list(obstacles or [])

    @classmethod
    def flat(
        cls,
        width: float,
        depth: float,
        height: float = 0.0,
        cell_size: float = 1.0,
        center_x: float = 0.0,
        center_z: float = 0.0,
    ) -> "HeightfieldSampler":
        """Level ground covering width x depth around a centre point."""
        shape = (_cell_count(width, cell_size), _cell_count(depth, cell_size))
        return cls(
            np.full(shape, height, dtype=np.float64),
            cell_size=cell_size,
            origin_x=center_x - width / 2,
            origin_z=center_z - depth / 2,
        )

    @classmethod
    def from_function(
        cls,
        height_fn: Callable[[np.ndarray, np.ndarray], np.ndarray],
        width: float,
        depth: float,
        cell_size: float = 1.0,
        center_x: float = 0.0,
        center_z: float = 0.0,
    ) -> "HeightfieldSampler":
        """
        Build a heightfield by evaluating height_fn at every cell centre.

        height_fn receives numpy arrays of X and Z coordinates (indexed
        [ix, iz]) and returns heights broadcastable to the same shape.
        """
        origin_x = center_x - width / 2
        origin_z = center_z - depth / 2
        nx = _cell_count(width, cell_size)
        nz = _cell_count(depth, cell_size)
        xs = origin_x + (np.arange(nx) + 0.5) * cell_size
        zs = origin_z + (np.arange(nz) + 0.5) * cell_size
        grid_x, grid_z = np.meshgrid(xs, zs, indexing="ij")
        heights = np.broadcast_to(height_fn(grid_x, grid_z), grid_x.shape)
        return cls(heights, cell_size=cell_size, origin_x=origin_x, origin_z=origin_z)

    def _cell_index(self, x: float, z: float) -> Optional[tuple[int, int]]:
        ix = math.floor((x - self.origin_x) / self.cell_size)
        iz = math.floor((z - self.origin_z) / self.cell_size)
        if 0 <= ix < self.heights.shape[0] and 0 <= iz < self.heights.shape[1]:
            return ix, iz
        return None

    def height_at(self, x: float, z: float) -> Optional[float]:
        """Terrain height under (x, z), or None outside the field or in a hole."""
        index = self._cell_index(x, z)
        if index is None:
            return None
        height = float(self.heights[index])
        if math.isnan(height):
            return None
        return height

    def set_height(self, x: float, z: float, height: float) -> None:
        """Overwrite the cell under (x, z). NaN punches a hole."""
        index = self._cell_index(x, z)
        if index is None:
            raise ValueError(f"({x}, {z}) is outside the heightfield")
        self.heights[index] = height

    def sample_terrain(self, x: float, z: float, ray_start_height: float) -> Optional[TerrainHit]:
        height = self.height_at(x, z)
        if height is None:
            return None
        # Probe runs from +ray_start_height down to -ray_start_height
        if height > ray_start_height or height < -ray_start_height:
            return None
        return TerrainHit(Vec3(x, height, z))

    def is_occupied(self, point: Vec3, radius: float) -> bool:
        return any(box.intersects_sphere(point, radius) for box in self.obstacles)

    def add_obstacle(self, box: Box) -> None:
        self.obstacles.append(box)
        logger.debug(f"Obstacle added at {box.center.as_tuple()} size {box.size.as_tuple()}")

    def remove_obstacle(self, box: Box) -> None:
        """Remove a previously added obstacle. Unknown boxes are ignored."""
        try:
            self.obstacles.remove(box)
        except ValueError:
            logger.debug(f"Obstacle at {box.center.as_tuple()} was not present")
            return
        logger.debug(f"Obstacle removed at {box.center.as_tuple()}")
