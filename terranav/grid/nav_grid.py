"""
Terrain-conforming navigation grid.

Builds a dense 2D array of nodes by probing terrain at every cell centre,
then marks nodes that sit next to a step both too tall to hop and too steep
to walk as unclimbable. After construction the array is never reallocated;
dynamic obstacles repair a bounded window in place via update_grid_area().
"""

import logging
from typing import Iterator, Optional, TYPE_CHECKING

import numpy as np

from ..config import GridConfig
from .models import GridPosition, GridSnapshot, Node, Vec3
from .sampler import Sampler

if TYPE_CHECKING:
    from .pathfinding import SearchScratch

logger = logging.getLogger(__name__)

# Neighbour pairs closer than this in XZ are treated as coincident
MIN_HORIZONTAL_DISTANCE = 0.01

# Occupancy probes at build time shrink the sphere by this much so geometry
# on the edge of an adjacent cell does not block this one
BUILD_RADIUS_SHRINK = 0.25
MIN_BUILD_RADIUS = 0.1


class NavGrid:
    """
    Dense grid of terrain-sampled nodes.

    Grid coordinates run x along world X and y along world Z, with (0, 0)
    at the bottom-left (minimum X, minimum Z) corner.
    """

    def __init__(self, sampler: Sampler, config: Optional[GridConfig] = None):
        self.sampler = sampler
        self.config = config or GridConfig()
        # Fields may have been edited since the config was built
        self.config.validate()

        self.node_radius = self.config.node_radius
        self.node_diameter = self.config.node_diameter
        self.size_x = round(self.config.world_width / self.node_diameter)
        self.size_y = round(self.config.world_depth / self.node_diameter)
        self.max_slope_tan = self.config.max_slope_tan

        self._grid: Optional[list[list[Node]]] = None

    # =========================================================================
    # Construction
    # =========================================================================

    @property
    def is_created(self) -> bool:
        return self._grid is not None

    @property
    def max_size(self) -> int:
        return self.size_x * self.size_y

    @property
    def bottom_left(self) -> tuple[float, float]:
        """World XZ of the grid's minimum corner."""
        return (
            self.config.center_x - self.config.world_width / 2,
            self.config.center_z - self.config.world_depth / 2,
        )

    def cell_center(self, x: int, y: int) -> tuple[float, float]:
        """World XZ at the centre of cell (x, y)."""
        left, bottom = self.bottom_left
        return (
            left + x * self.node_diameter + self.node_radius,
            bottom + y * self.node_diameter + self.node_radius,
        )

    def create_grid(self) -> None:
        """Sample terrain for every cell, then evaluate climbability."""
        build_radius = max(MIN_BUILD_RADIUS, self.node_radius - BUILD_RADIUS_SHRINK)
        grid: list[list[Node]] = []

        for x in range(self.size_x):
            column = []
            for y in range(self.size_y):
                cell_x, cell_z = self.cell_center(x, y)
                hit = self.sampler.sample_terrain(cell_x, cell_z, self.config.raycast_start_height)
                if hit is not None:
                    walkable = not self.sampler.is_occupied(hit.point, build_radius)
                    node = Node(GridPosition(x, y), hit.point, walkable)
                else:
                    # Off the terrain: leave a placeholder that can never be entered
                    node = Node(GridPosition(x, y), Vec3(cell_x, 0.0, cell_z), False)
                column.append(node)
            grid.append(column)

        self._grid = grid

        # Heights must all be known before any slope comparison
        for node in self.nodes():
            if node.walkable:
                node.climbable = self._evaluate_climbable(node)

        walkable = sum(1 for node in self.nodes() if node.walkable)
        unclimbable = sum(1 for node in self.nodes() if node.walkable and not node.climbable)
        logger.info(
            f"Created {self.size_x}x{self.size_y} grid: {walkable} walkable, "
            f"{unclimbable} unclimbable, {self.max_size - walkable} blocked"
        )

    def _evaluate_climbable(self, node: Node) -> bool:
        """
        A node is unclimbable if any walkable neighbour sits across a step
        that is both taller than max_climb_height and steeper than
        max_slope_angle.
        """
        for neighbour in self.get_neighbours(node):
            if not neighbour.walkable:
                continue

            height_diff = abs(neighbour.height - node.height)
            horizontal_dist = node.world_position.planar_distance_to(neighbour.world_position)
            if horizontal_dist < MIN_HORIZONTAL_DISTANCE:
                continue

            slope = height_diff / horizontal_dist
            if height_diff > self.config.max_climb_height and slope > self.max_slope_tan:
                return False

        return True

    # =========================================================================
    # Queries
    # =========================================================================

    def _require_grid(self) -> list[list[Node]]:
        if self._grid is None:
            raise RuntimeError("Grid not created. Call create_grid() first.")
        return self._grid

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.size_x and 0 <= y < self.size_y

    def node_at(self, x: int, y: int) -> Node:
        """Node at grid coordinates (x, y)."""
        grid = self._require_grid()
        if not self.in_bounds(x, y):
            raise IndexError(f"Grid position ({x}, {y}) outside {self.size_x}x{self.size_y}")
        return grid[x][y]

    def nodes(self) -> Iterator[Node]:
        """Iterate all nodes, x-major."""
        for column in self._require_grid():
            yield from column

    def grid_array(self) -> list[list[Node]]:
        """The live node array, indexed [x][y]. For renderers only; do not mutate."""
        return self._require_grid()

    def get_neighbours(self, node: Node) -> list[Node]:
        """
        Up to 8 surrounding nodes, clipped to the grid.

        Diagonals are included even when both orthogonal cells between them
        are blocked.
        """
        grid = self._require_grid()
        neighbours = []

        for dx in [-1, 0, 1]:
            for dy in [-1, 0, 1]:
                if dx == 0 and dy == 0:
                    continue

                check_x = node.grid_position.x + dx
                check_y = node.grid_position.y + dy
                if self.in_bounds(check_x, check_y):
                    neighbours.append(grid[check_x][check_y])

        return neighbours

    def node_from_world_point(self, world_position: Vec3) -> Node:
        """
        Nearest node to a world position.

        Positions outside the grid clamp to the edge rather than failing.
        """
        grid = self._require_grid()
        percent_x = (
            world_position.x - self.config.center_x + self.config.world_width / 2
        ) / self.config.world_width
        percent_y = (
            world_position.z - self.config.center_z + self.config.world_depth / 2
        ) / self.config.world_depth
        percent_x = min(max(percent_x, 0.0), 1.0)
        percent_y = min(max(percent_y, 0.0), 1.0)

        x = round((self.size_x - 1) * percent_x)
        y = round((self.size_y - 1) * percent_y)
        return grid[x][y]

    # =========================================================================
    # Incremental repair
    # =========================================================================

    def _window(self, center: Node, range_in_nodes: int) -> Iterator[Node]:
        grid = self._require_grid()
        for dx in range(-range_in_nodes, range_in_nodes + 1):
            for dy in range(-range_in_nodes, range_in_nodes + 1):
                check_x = center.grid_position.x + dx
                check_y = center.grid_position.y + dy
                if self.in_bounds(check_x, check_y):
                    yield grid[check_x][check_y]

    def update_grid_area(self, center_position: Vec3, update_range: float) -> int:
        """
        Re-sample the cells around a world position.

        Covers every cell within round(update_range / node_diameter) cells of
        the node nearest center_position, on both axes. Cells outside that
        window are left untouched, even if their climbability now depends on
        a changed neighbour.

        Occupancy here is probed with the full node radius, unlike
        create_grid() which shrinks it.

        Args:
            center_position: World position the change happened at
            update_range: World distance around it to refresh

        Returns:
            Number of nodes re-sampled
        """
        center = self.node_from_world_point(center_position)
        range_in_nodes = round(update_range / self.node_diameter)

        updated = 0
        for node in self._window(center, range_in_nodes):
            position = node.world_position
            hit = self.sampler.sample_terrain(position.x, position.z, self.config.raycast_start_height)
            if hit is not None:
                node.world_position = hit.point
                node.walkable = not self.sampler.is_occupied(hit.point, self.node_radius)
            else:
                node.walkable = False
            updated += 1

        for node in self._window(center, range_in_nodes):
            if not node.walkable:
                continue
            node.climbable = self._evaluate_climbable(node)

        logger.debug(
            f"Updated {updated} nodes around {center.grid_position} "
            f"(range={update_range}, {range_in_nodes} nodes)"
        )
        return updated

    # =========================================================================
    # Visualization
    # =========================================================================

    def snapshot(self, search: Optional["SearchScratch"] = None) -> GridSnapshot:
        """
        Copy the current grid state into numpy arrays.

        Args:
            search: Optional scratch from a PathResult whose costs should be
                included. Without it all cost arrays are NaN.
        """
        self._require_grid()
        shape = (self.size_x, self.size_y)
        positions = np.zeros(shape + (3,), dtype=np.float64)
        walkable = np.zeros(shape, dtype=bool)
        climbable = np.zeros(shape, dtype=bool)
        g_cost = np.full(shape, np.nan, dtype=np.float64)
        h_cost = np.full(shape, np.nan, dtype=np.float64)

        for node in self.nodes():
            x, y = node.grid_position.x, node.grid_position.y
            positions[x, y] = node.world_position.as_tuple()
            walkable[x, y] = node.walkable
            climbable[x, y] = node.climbable

        if search is not None:
            for position, record in search.records.items():
                g_cost[position.x, position.y] = record.g_cost
                h_cost[position.x, position.y] = record.h_cost

        for array in (positions, walkable, climbable, g_cost, h_cost):
            array.flags.writeable = False

        return GridSnapshot(
            positions=positions,
            walkable=walkable,
            climbable=climbable,
            g_cost=g_cost,
            h_cost=h_cost,
        )
