"""
A* pathfinding over a NavGrid.

Movement cost is octile distance in grid units plus a penalty for climbing
(descending is free). The heuristic is the straight 3D world distance to the
target, height included. With the uphill penalty this is not guaranteed
admissible, so paths are good rather than provably shortest.

When the target cannot be reached the search returns a partial path to the
explored node nearest the target instead of failing outright.

All per-search costs live in a SearchScratch created for each call; grid
nodes are only read.
"""

import heapq
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..config import PathfindingConfig
from .models import GridPosition, Node, Vec3
from .nav_grid import NavGrid

logger = logging.getLogger(__name__)


class PathStopReason(Enum):
    """Why a search stopped."""
    SUCCESS = "success"
    PARTIAL = "partial"
    ALREADY_AT_TARGET = "already_at_target"
    NO_PATH_EXISTS = "no_path_exists"


@dataclass
class SearchRecord:
    """Costs of one node within a single search."""
    g_cost: float = 0.0
    h_cost: float = 0.0
    parent: Optional[GridPosition] = None

    @property
    def f_cost(self) -> float:
        return self.g_cost + self.h_cost


@dataclass
class SearchScratch:
    """
    Working state of one A* run.

    records holds every node the search has costed; closed lists expanded
    nodes in the order they were expanded.
    """
    records: dict[GridPosition, SearchRecord] = field(default_factory=dict)
    closed: dict[GridPosition, Node] = field(default_factory=dict)

    def record(self, position: GridPosition) -> Optional[SearchRecord]:
        return self.records.get(position)


@dataclass
class PathResult:
    """Result of a pathfinding operation."""
    nodes: list[Node]
    reason: PathStopReason
    message: str = ""
    search: Optional[SearchScratch] = None

    @property
    def success(self) -> bool:
        """Whether the target itself was reached."""
        return self.reason in (PathStopReason.SUCCESS, PathStopReason.ALREADY_AT_TARGET)

    @property
    def partial(self) -> bool:
        """Whether this is a best-effort path toward an unreachable target."""
        return self.reason == PathStopReason.PARTIAL

    @property
    def reached(self) -> Optional[Node]:
        """Last node of the path, if any."""
        return self.nodes[-1] if self.nodes else None

    @property
    def cost(self) -> float:
        """Accumulated cost to the reached node (0 for an empty path)."""
        if self.search is None or not self.nodes:
            return 0.0
        return self.search.records[self.nodes[-1].grid_position].g_cost

    @property
    def waypoints(self) -> list[Vec3]:
        """World positions to walk through, in order."""
        return [node.world_position for node in self.nodes]

    def is_stale(self) -> bool:
        """
        Whether any waypoint has become impassable since the search.

        Movement controllers poll this and call find_path() again when it
        turns True.
        """
        return any(not node.walkable or not node.climbable for node in self.nodes)

    def __bool__(self) -> bool:
        """Allow `if result:` to check there is somewhere to go."""
        return len(self.nodes) > 0

    def __iter__(self):
        return iter(self.nodes)

    def __len__(self) -> int:
        return len(self.nodes)

    def __repr__(self) -> str:
        if self.nodes:
            return f"PathResult(path=[{len(self.nodes)} nodes], reason={self.reason.value})"
        return f"PathResult(path=[], reason={self.reason.value}, message='{self.message}')"


def octile_distance(a: GridPosition, b: GridPosition, diagonal_cost: float = 1.414) -> float:
    """Grid step cost with 8-directional movement: diagonals cost diagonal_cost."""
    dst_x = abs(a.x - b.x)
    dst_y = abs(a.y - b.y)
    if dst_x > dst_y:
        return diagonal_cost * dst_y + dst_x - dst_y
    return diagonal_cost * dst_x + dst_y - dst_x


class PathFinder:
    """A* search bound to a single NavGrid."""

    def __init__(self, grid: NavGrid, config: Optional[PathfindingConfig] = None):
        self.grid = grid
        self.config = config or PathfindingConfig()

    def movement_cost(self, current: Node, neighbour: Node) -> float:
        """Cost of stepping from current to neighbour, with uphill penalty."""
        distance = octile_distance(
            current.grid_position, neighbour.grid_position, self.config.diagonal_cost
        )
        height_cost = max(0.0, (neighbour.height - current.height) * self.config.uphill_cost_factor)
        return distance + height_cost

    @staticmethod
    def heuristic(node: Node, target: Node) -> float:
        """Straight-line world distance to the target, height included."""
        return node.world_position.distance_to(target.world_position)

    def find_path(self, start_position: Vec3, target_position: Vec3) -> PathResult:
        """
        Find a path between two world positions.

        Both positions snap to their nearest grid nodes. The start node is
        expanded even if it is itself blocked, so an agent caught on a
        newly blocked cell can still walk off it.

        Args:
            start_position: Where the agent is
            target_position: Where it wants to go

        Returns:
            PathResult whose nodes run from the first step after the start
            to the target (SUCCESS) or to the closest reachable node
            (PARTIAL). Empty for ALREADY_AT_TARGET and NO_PATH_EXISTS.
        """
        start_node = self.grid.node_from_world_point(start_position)
        target_node = self.grid.node_from_world_point(target_position)

        if start_node is target_node:
            return PathResult([], PathStopReason.ALREADY_AT_TARGET, "Already at target node")

        search = SearchScratch()
        search.records[start_node.grid_position] = SearchRecord()

        # Priority queue: (f_cost, counter, node). Counter keeps ties in
        # insertion order. Re-prioritised nodes are pushed again and their
        # stale entries skipped when popped.
        counter = 0
        open_heap: list[tuple[float, int, Node]] = [(0.0, counter, start_node)]
        open_set: set[GridPosition] = {start_node.grid_position}

        while open_heap:
            _, _, current = heapq.heappop(open_heap)
            if current.grid_position in search.closed:
                continue
            open_set.discard(current.grid_position)
            search.closed[current.grid_position] = current

            if current is target_node:
                path = self._retrace_path(search, start_node, target_node)
                logger.debug(
                    f"find_path: reached {target_node.grid_position} in {len(path)} steps, "
                    f"expanded {len(search.closed)} nodes"
                )
                return PathResult(path, PathStopReason.SUCCESS, search=search)

            current_g = search.records[current.grid_position].g_cost

            for neighbour in self.grid.get_neighbours(current):
                position = neighbour.grid_position
                if not neighbour.walkable or not neighbour.climbable or position in search.closed:
                    continue

                new_cost = current_g + self.movement_cost(current, neighbour)
                record = search.records.get(position)

                if position not in open_set or new_cost < record.g_cost:
                    if record is None:
                        record = search.records[position] = SearchRecord()
                    record.g_cost = new_cost
                    record.h_cost = self.heuristic(neighbour, target_node)
                    record.parent = current.grid_position

                    counter += 1
                    heapq.heappush(open_heap, (record.f_cost, counter, neighbour))
                    open_set.add(position)

        return self._fallback(search, start_node, target_node)

    def _fallback(self, search: SearchScratch, start_node: Node, target_node: Node) -> PathResult:
        """Path to the expanded node closest to an unreachable target."""
        closest = self._find_closest_node_to_target(search, target_node)

        if closest is None or closest is start_node:
            logger.debug(
                f"find_path: no progress possible from {start_node.grid_position} "
                f"toward {target_node.grid_position}"
            )
            return PathResult(
                [],
                PathStopReason.NO_PATH_EXISTS,
                f"No reachable node from {start_node.grid_position} is closer to "
                f"{target_node.grid_position}",
                search=search,
            )

        path = self._retrace_path(search, start_node, closest)
        logger.debug(
            f"find_path: target {target_node.grid_position} unreachable, "
            f"falling back to {closest.grid_position} ({len(path)} steps)"
        )
        return PathResult(
            path,
            PathStopReason.PARTIAL,
            f"Target {target_node.grid_position} unreachable; path ends at closest node "
            f"{closest.grid_position}",
            search=search,
        )

    def _find_closest_node_to_target(self, search: SearchScratch, target_node: Node) -> Optional[Node]:
        """Closed node nearest the target in 3D. Ties go to the earliest expanded."""
        closest = None
        min_distance = float("inf")

        for node in search.closed.values():
            distance = self.heuristic(node, target_node)
            if distance < min_distance:
                min_distance = distance
                closest = node

        return closest

    def _retrace_path(self, search: SearchScratch, start_node: Node, end_node: Node) -> list[Node]:
        """Follow parents from end_node back to (but excluding) start_node."""
        path = []
        current = end_node

        while current is not start_node:
            path.append(current)
            parent = search.records[current.grid_position].parent
            current = self.grid.node_at(parent.x, parent.y)

        path.reverse()
        return path
