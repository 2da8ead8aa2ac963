"""Tests for dynamic obstacle notifications."""

from unittest.mock import MagicMock

from terranav.config import GridConfig, ObstacleConfig, load_config
from terranav.grid.models import GridPosition, Vec3
from terranav.grid.nav_grid import NavGrid
from terranav.grid.obstacles import (
    DynamicObstacle,
    on_obstacle_activated,
    on_obstacle_deactivated,
)
from terranav.grid.pathfinding import PathFinder
from terranav.grid.sampler import Box, HeightfieldSampler


def cell_world(x, y):
    """World position of cell (x, y) on the default 10x10 unit grid."""
    return Vec3(-4.5 + x, 0.0, -4.5 + y)


# Wall across column 5, rows 3 to 7
WALL = Box(Vec3(0.5, 0.5, 0.5), Vec3(1.0, 1.0, 5.0))
WALL_CELLS = {GridPosition(5, y) for y in range(3, 8)}


def make_scene():
    """Flat 10x10 scene with a built grid."""
    scene = HeightfieldSampler.flat(10, 10)
    grid = NavGrid(scene, GridConfig())
    grid.create_grid()
    return scene, grid


def positions(result):
    return [node.grid_position for node in result.nodes]


class TestDynamicObstacle:
    """Tests for DynamicObstacle activation."""

    def test_activate_blocks_cells(self):
        scene, grid = make_scene()
        obstacle = DynamicObstacle(grid, WALL, update_range=3.0, scene=scene)

        obstacle.activate()

        assert obstacle.active
        assert WALL in scene.obstacles
        for cell in WALL_CELLS:
            assert not grid.node_at(cell.x, cell.y).walkable
        assert grid.node_at(5, 2).walkable
        assert grid.node_at(5, 8).walkable
        assert grid.node_at(4, 5).walkable
        assert grid.node_at(6, 5).walkable

    def test_deactivate_clears_cells(self):
        scene, grid = make_scene()
        obstacle = DynamicObstacle(grid, WALL, update_range=3.0, scene=scene)
        obstacle.activate()

        obstacle.deactivate()

        assert not obstacle.active
        assert WALL not in scene.obstacles
        assert all(node.walkable for node in grid.nodes())

    def test_path_detours_and_recovers(self):
        """Blocking a straight route forces a detour; removing the block restores it."""
        scene, grid = make_scene()
        finder = PathFinder(grid)
        start, target = cell_world(0, 5), cell_world(9, 5)
        straight = [GridPosition(x, 5) for x in range(1, 10)]

        assert positions(finder.find_path(start, target)) == straight

        obstacle = DynamicObstacle(grid, WALL, update_range=3.0, scene=scene)
        obstacle.activate()
        detour = finder.find_path(start, target)

        assert detour.success
        assert not WALL_CELLS & set(positions(detour))
        # Skirting the wall end takes as many steps but more of them diagonal
        assert detour.cost > 9.0

        obstacle.deactivate()
        assert positions(finder.find_path(start, target)) == straight

    def test_existing_path_goes_stale(self):
        scene, grid = make_scene()
        finder = PathFinder(grid)
        result = finder.find_path(cell_world(0, 5), cell_world(9, 5))

        DynamicObstacle(grid, WALL, update_range=3.0, scene=scene).activate()

        assert result.is_stale()

    def test_repeated_activate_is_noop(self):
        scene, grid = make_scene()
        grid.update_grid_area = MagicMock(return_value=0)
        obstacle = DynamicObstacle(grid, WALL, update_range=3.0, scene=scene)

        obstacle.activate()
        obstacle.activate()
        obstacle.deactivate()
        obstacle.deactivate()

        assert grid.update_grid_area.call_count == 2
        assert scene.obstacles == []

    def test_update_centred_on_obstacle(self):
        grid = MagicMock()
        grid.is_created = True
        obstacle = DynamicObstacle(grid, WALL, update_range=2.5)

        obstacle.activate()

        grid.update_grid_area.assert_called_once_with(WALL.center, 2.5)

    def test_update_range_from_config(self):
        """The configured range reaches update_grid_area."""
        grid = MagicMock()
        grid.is_created = True
        obstacle = DynamicObstacle(grid, WALL, config=ObstacleConfig(update_range=3.0))

        obstacle.activate()

        assert obstacle.update_range == 3.0
        grid.update_grid_area.assert_called_once_with(WALL.center, 3.0)

    def test_update_range_from_loaded_config(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("obstacles:\n  update_range: 2.0\n")
        config = load_config(str(path))

        obstacle = DynamicObstacle(MagicMock(), WALL, config=config.obstacles)

        assert obstacle.update_range == 2.0

    def test_explicit_range_beats_config(self):
        obstacle = DynamicObstacle(
            None, WALL, update_range=0.5, config=ObstacleConfig(update_range=3.0)
        )
        assert obstacle.update_range == 0.5

    def test_default_range(self):
        assert DynamicObstacle(None, WALL).update_range == ObstacleConfig().update_range

    def test_grid_not_created_skips_update(self):
        """Toggling before the grid exists only changes the scene."""
        scene = HeightfieldSampler.flat(10, 10)
        grid = NavGrid(scene, GridConfig())
        obstacle = DynamicObstacle(grid, WALL, update_range=3.0, scene=scene)

        obstacle.activate()
        assert WALL in scene.obstacles

        grid.create_grid()
        for cell in WALL_CELLS:
            assert not grid.node_at(cell.x, cell.y).walkable

    def test_without_grid(self):
        scene = HeightfieldSampler.flat(10, 10)
        obstacle = DynamicObstacle(None, WALL, scene=scene)
        obstacle.activate()
        assert obstacle.active
        assert obstacle.position == WALL.center


class TestNotificationFunctions:
    """Tests for the module-level notification hooks."""

    def test_activated_refreshes_window(self):
        scene, grid = make_scene()
        scene.add_obstacle(Box(Vec3(0.5, 0.5, 0.5), Vec3(1, 1, 1)))

        updated = on_obstacle_activated(grid, cell_world(5, 5), 1.0)

        assert updated == 9
        assert not grid.node_at(5, 5).walkable

    def test_deactivated_refreshes_window(self):
        scene, grid = make_scene()
        box = Box(Vec3(0.5, 0.5, 0.5), Vec3(1, 1, 1))
        scene.add_obstacle(box)
        on_obstacle_activated(grid, cell_world(5, 5), 1.0)

        scene.remove_obstacle(box)
        on_obstacle_deactivated(grid, cell_world(5, 5), 1.0)

        assert grid.node_at(5, 5).walkable
