"""
Configuration

One dataclass per component, grouped in USVConfig. Values can be
overridden from a YAML file:

    grid:
      cell_size: 1.0
      operating_area:
        center: [0.0, 0.0]
        size: [30.0, 20.0]
    local_planner:
      safe_distance: 3.0

Sections that are absent keep their defaults. Unknown keys are logged
and ignored.
"""

import logging
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class OperatingArea:
    """Bounded water area the grid covers (world frame)."""
    center: Tuple[float, float] = (0.0, 0.0)
    size: Tuple[float, float] = (30.0, 20.0)    # meters (x, y)
    surface_height: float = 0.05                # reference height of the water plane


@dataclass
class GridConfig:
    """Occupancy grid configuration."""
    cell_size: float = 1.0                      # meters per cell
    detection_margin: float = 0.1               # added to half a cell when probing obstacles
    view_margin_cells: int = 5                  # expansion of a partial refresh window
    operating_area: Optional[OperatingArea] = None


@dataclass
class GlobalPlannerConfig:
    """A* planner configuration."""
    heuristic_inflation: float = 1.0001         # tie breaking only
    allow_corner_cutting: bool = True           # False: diagonal needs both side cells free
    start_search_radius: int = 2                # rings searched for a walkable start
    correct_goal: bool = False                  # also move a blocked goal to the nearest free cell
    goal_search_radius: int = 2


@dataclass
class LocalPlannerConfig:
    """Dynamic window + right-of-way configuration."""
    # Candidate velocities
    linear_options: Tuple[float, ...] = (0.0, 0.3, 0.8, 1.2, 1.5)                    # m/s
    angular_options: Tuple[float, ...] = (-45.0, -30.0, -15.0, 0.0, 15.0, 30.0, 45.0)  # deg/s, + = starboard
    max_linear: float = 1.5
    max_angular: float = 45.0

    # Prediction
    horizon: float = 0.8                        # seconds
    horizon_steps: int = 5

    # Distances
    safe_distance: float = 3.0                  # reactive avoidance radius
    colregs_safe_distance: float = 4.0          # right-of-way margin (> safe_distance)
    arrival_threshold: float = 1.0              # waypoint reached
    return_threshold: float = 2.0               # back on the global path

    # Scoring weights
    clearance_weight: float = 0.50
    progress_weight: float = 0.30
    right_of_way_weight: float = 0.15
    smoothness_weight: float = 0.05

    # Right-of-way rules (degrees / deg/s)
    head_on_bearing: float = 20.0
    crossing_bearing: float = 120.0
    head_on_min_speed: float = 0.0              # obstacle speed needed to call it head-on
    head_on_avoid_rate: float = -45.0           # port turn; +45 to alter course to starboard
    port_crossing_avoid_rate: float = 30.0
    stand_on_turn_limit: float = 30.0


@dataclass
class SensorConfig:
    """Range sensor configuration."""
    sample_count: int = 360
    max_range: float = 20.0                     # meters
    rays_per_scan: int = 30                     # rays cast per incremental scan() call
    noise_std: float = 0.0                      # gaussian range noise (m), simulation only


@dataclass
class NavigatorConfig:
    """Tick loop configuration."""
    build_budget: int = 200                     # grid cells initialised per tick
    replan_delay: float = 0.5                   # seconds between request and planning pass
    arrival_radius: float = 1.0                 # stop within this distance of the goal
    goal: Optional[Tuple[float, float]] = None


@dataclass
class USVConfig:
    """Complete configuration."""
    grid: GridConfig = field(default_factory=GridConfig)
    global_planner: GlobalPlannerConfig = field(default_factory=GlobalPlannerConfig)
    local_planner: LocalPlannerConfig = field(default_factory=LocalPlannerConfig)
    sensor: SensorConfig = field(default_factory=SensorConfig)
    navigator: NavigatorConfig = field(default_factory=NavigatorConfig)


_SECTIONS = {
    'grid': GridConfig,
    'global_planner': GlobalPlannerConfig,
    'local_planner': LocalPlannerConfig,
    'sensor': SensorConfig,
    'navigator': NavigatorConfig,
}


def _build_section(cls, name: str, values: Optional[Dict[str, Any]]):
    """Create a config dataclass from a YAML mapping."""
    if values is None:
        return cls()
    if not isinstance(values, dict):
        raise ConfigurationError(name, "section must be a mapping")

    known = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in values.items():
        if key not in known:
            logger.warning("[Config] Unknown key %s.%s ignored", name, key)
            continue
        if isinstance(value, list):
            value = tuple(value)
        kwargs[key] = value

    if cls is GridConfig and kwargs.get('operating_area') is not None:
        kwargs['operating_area'] = _build_operating_area(kwargs['operating_area'])

    return cls(**kwargs)


def _build_operating_area(values) -> OperatingArea:
    if isinstance(values, OperatingArea):
        return values
    if not isinstance(values, dict) or 'size' not in values:
        raise ConfigurationError("operating_area", "expected a mapping with 'size'")

    size = tuple(float(v) for v in values['size'])
    center = tuple(float(v) for v in values.get('center', (0.0, 0.0)))
    if len(size) != 2 or len(center) != 2:
        raise ConfigurationError("operating_area", "center and size need two values")
    if size[0] <= 0 or size[1] <= 0:
        raise ConfigurationError("operating_area", f"size must be positive, got {size}")

    return OperatingArea(
        center=center,
        size=size,
        surface_height=float(values.get('surface_height', 0.05))
    )


def config_from_dict(raw: Optional[Dict[str, Any]]) -> USVConfig:
    """Build a USVConfig from an already parsed mapping."""
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigurationError("config_file", "top level must be a mapping")

    for key in raw:
        if key not in _SECTIONS:
            logger.warning("[Config] Unknown section %s ignored", key)

    sections = {
        name: _build_section(cls, name, raw.get(name))
        for name, cls in _SECTIONS.items()
    }
    return USVConfig(**sections)


def load_config(config_path: str) -> USVConfig:
    """
    Load configuration from a YAML file.

    Args:
        config_path: Path to the YAML file

    Returns:
        USVConfig with file values applied over defaults

    Raises:
        FileNotFoundError: File does not exist
        ConfigurationError: YAML is malformed or a section is invalid
    """
    if not os.path.exists(config_path):
        raise FileNotFoundError(f"config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError("config_file", str(e)) from e

    config = config_from_dict(raw)
    logger.info("[Config] Loaded %s", config_path)
    return config
