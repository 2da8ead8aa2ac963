"""
Data models for the navigation grid.

Positions are plain frozen dataclasses so they can key dictionaries and
sets during a search. Nodes are mutable and owned by their NavGrid.
"""

import math
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class Vec3:
    """A world-space point. Y is up; the grid lies in the XZ plane."""

    x: float
    y: float
    z: float

    def distance_to(self, other: "Vec3") -> float:
        """Straight-line 3D distance, including height."""
        dx = self.x - other.x
        dy = self.y - other.y
        dz = self.z - other.z
        return math.sqrt(dx * dx + dy * dy + dz * dz)

    def planar_distance_to(self, other: "Vec3") -> float:
        """Distance in the XZ plane, ignoring height."""
        return math.hypot(self.x - other.x, self.z - other.z)

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)


@dataclass(frozen=True, order=True)
class GridPosition:
    """Integer cell coordinates within a grid."""

    x: int
    y: int

    def distance_to(self, other: "GridPosition") -> int:
        """Chebyshev distance - number of moves with 8-directional movement."""
        return max(abs(self.x - other.x), abs(self.y - other.y))

    def adjacent(self) -> list["GridPosition"]:
        """Get all 8 adjacent positions (unclipped)."""
        return [
            GridPosition(self.x + dx, self.y + dy)
            for dx in [-1, 0, 1]
            for dy in [-1, 0, 1]
            if not (dx == 0 and dy == 0)
        ]


@dataclass(eq=False)
class Node:
    """
    One cell of the navigation grid.

    Identity is the grid position; two Node objects are only equal if they
    are the same object. Search costs are not stored here, see
    pathfinding.SearchScratch.
    """

    grid_position: GridPosition
    world_position: Vec3
    walkable: bool
    climbable: bool = True  # Re-evaluated once neighbour heights are known

    @property
    def height(self) -> float:
        return self.world_position.y

    def __repr__(self) -> str:
        flags = ("W" if self.walkable else "-") + ("C" if self.climbable else "-")
        return (
            f"Node(({self.grid_position.x}, {self.grid_position.y}), "
            f"h={self.height:.2f}, {flags})"
        )


@dataclass
class GridSnapshot:
    """
    Read-only copy of grid state for debug renderers.

    All arrays are indexed [x, y]. Cost arrays hold NaN for nodes the
    supplied search never reached (or everywhere when no search was given).
    """

    positions: np.ndarray  # (size_x, size_y, 3) float64
    walkable: np.ndarray  # (size_x, size_y) bool
    climbable: np.ndarray  # (size_x, size_y) bool
    g_cost: np.ndarray  # (size_x, size_y) float64
    h_cost: np.ndarray  # (size_x, size_y) float64

    @property
    def f_cost(self) -> np.ndarray:
        return self.g_cost + self.h_cost

    @property
    def shape(self) -> tuple[int, int]:
        return self.walkable.shape

    @property
    def heights(self) -> np.ndarray:
        return self.positions[:, :, 1]

    @property
    def traversable(self) -> np.ndarray:
        """Cells a search may step onto."""
        return self.walkable & self.climbable
