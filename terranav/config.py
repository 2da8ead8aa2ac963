"""Configuration management for the navigation grid."""

import logging
import math
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)


@dataclass
class GridConfig:
    """Grid geometry and terrain thresholds."""

    # World extents covered by the grid (X and Z axes)
    world_width: float = 10.0
    world_depth: float = 10.0
    # World XZ of the grid centre
    center_x: float = 0.0
    center_z: float = 0.0

    node_radius: float = 0.5

    # Terrain probes start here and reach down twice this distance,
    # so it must sit above the highest terrain
    raycast_start_height: float = 50.0

    # Step height that can be hopped regardless of slope
    max_climb_height: float = 0.5
    # Steepest walkable slope, in degrees
    max_slope_angle: float = 45.0

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Raise ValueError if the settings cannot describe a usable grid."""
        if self.node_radius <= 0:
            raise ValueError(f"node_radius must be positive, got {self.node_radius}")
        if self.world_width <= 0 or self.world_depth <= 0:
            raise ValueError(
                f"World size must be positive, got {self.world_width}x{self.world_depth}"
            )
        # Same rounding NavGrid uses to size itself
        cells_x = round(self.world_width / self.node_diameter)
        cells_z = round(self.world_depth / self.node_diameter)
        if cells_x < 1 or cells_z < 1:
            raise ValueError(
                f"World {self.world_width}x{self.world_depth} holds no nodes of "
                f"diameter {self.node_diameter}"
            )
        if self.raycast_start_height <= 0:
            raise ValueError(
                f"raycast_start_height must be positive, got {self.raycast_start_height}"
            )
        if self.max_climb_height < 0:
            raise ValueError(f"max_climb_height must not be negative, got {self.max_climb_height}")
        if not 0 <= self.max_slope_angle < 90:
            raise ValueError(f"max_slope_angle must be in [0, 90), got {self.max_slope_angle}")

    @property
    def node_diameter(self) -> float:
        return self.node_radius * 2

    @property
    def max_slope_tan(self) -> float:
        """Tangent of max_slope_angle, compared against rise over run."""
        return math.tan(math.radians(self.max_slope_angle))


@dataclass
class PathfindingConfig:
    """A* cost settings."""

    # Cost of a diagonal step in grid units (orthogonal steps cost 1)
    diagonal_cost: float = 1.414
    # Uphill moves pay height gain times this; downhill moves are free
    uphill_cost_factor: float = 2.0


@dataclass
class ObstacleConfig:
    """Dynamic obstacle settings."""

    update_range: float = 1.0

    def __post_init__(self):
        if self.update_range < 0:
            raise ValueError(f"update_range must not be negative, got {self.update_range}")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


@dataclass
class Config:
    """Main configuration container."""

    grid: GridConfig = field(default_factory=GridConfig)
    pathfinding: PathfindingConfig = field(default_factory=PathfindingConfig)
    obstacles: ObstacleConfig = field(default_factory=ObstacleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Environment variable -> (config section, field, parser)
ENV_OVERRIDES = {
    "TERRANAV_NODE_RADIUS": ("grid", "node_radius", float),
    "TERRANAV_MAX_SLOPE_ANGLE": ("grid", "max_slope_angle", float),
    "TERRANAV_MAX_CLIMB_HEIGHT": ("grid", "max_climb_height", float),
    "TERRANAV_UPDATE_RANGE": ("obstacles", "update_range", float),
    "TERRANAV_LOG_LEVEL": ("logging", "level", str),
}

_SECTIONS = {
    "grid": GridConfig,
    "pathfinding": PathfindingConfig,
    "obstacles": ObstacleConfig,
    "logging": LoggingConfig,
}


def _find_config_file() -> Optional[Path]:
    candidates = [
        Path("config/default.yaml"),
        Path(__file__).parent.parent / "config" / "default.yaml",
    ]
    return next((c for c in candidates if c.exists()), None)


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Overrides are merged into the file values before each section is built,
    so every section is validated once against its final values.

    Args:
        config_path: Path to config file. Defaults to config/default.yaml

    Returns:
        Populated Config dataclass

    Raises:
        ValueError: If the merged grid or obstacle settings are unusable
        TypeError: If a section holds an unknown key
    """
    path = Path(config_path) if config_path else _find_config_file()

    data = {}
    if path is not None and path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        logger.debug(f"Loaded configuration from {path}")

    values = {name: dict(data.get(name) or {}) for name in _SECTIONS}
    for var, (section, key, parse) in ENV_OVERRIDES.items():
        raw = os.environ.get(var)
        if raw:
            values[section][key] = parse(raw)
            logger.debug(f"{var} overrides {section}.{key}")

    return Config(**{name: cls(**values[name]) for name, cls in _SECTIONS.items()})


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure logging based on configuration.

    The level applies to the root logger so embedding applications see
    terranav records alongside their own.

    Args:
        config: Logging configuration

    Raises:
        ValueError: If config.level is not a standard logging level name
    """
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level {config.level!r}")

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.file:
        log_path = Path(config.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.file))

    logging.basicConfig(
        level=level,
        format=config.format,
        handlers=handlers,
    )

    logger.info(f"Logging configured at level {config.level}")
