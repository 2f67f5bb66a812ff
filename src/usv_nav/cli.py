"""
usv-nav - headless simulated mission
====================================

Builds the grid over a simulated water area, plans to the goal and
drives a simulated vessel with the local planner until it arrives or
the step budget runs out.

Usage:
    usv-nav --env harbor
    usv-nav --env random --seed 7 --steps 3000
    usv-nav --config config/usv.yaml --env crossing --log-level DEBUG
"""

import argparse
import dataclasses
import logging
import math
import sys
from typing import List, Optional

from .core import ConfigurationError, USVConfig, load_config, setup_logging
from .navigation import FollowerConfig, USVNavigator, WaypointFollower
from .simulation import (
    SimulatedRangeSensor, SimulatedVessel, VesselConfig,
    create_crossing_env, create_harbor_env, create_random_env
)

logger = logging.getLogger(__name__)

ENVIRONMENTS = ('harbor', 'crossing', 'random')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='usv-nav',
        description='USV path planning - simulated mission',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  usv-nav --env harbor
  usv-nav --env random --seed 42 --steps 3000
  usv-nav --config config/usv.yaml --env crossing --no-proposer
"""
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        help='YAML configuration file (default: built-in defaults)'
    )
    parser.add_argument(
        '--env', '-e',
        choices=ENVIRONMENTS,
        default='harbor',
        help='Simulated water area (default: harbor)'
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for --env random and sensor noise'
    )
    parser.add_argument(
        '--steps',
        type=int,
        default=2000,
        help='Maximum number of ticks (default: 2000)'
    )
    parser.add_argument(
        '--dt',
        type=float,
        default=0.1,
        help='Tick period in seconds (default: 0.1)'
    )
    parser.add_argument(
        '--no-proposer',
        action='store_true',
        help='Let the dynamic window drive in open water too'
    )
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO)'
    )
    return parser


def create_environment(name: str, seed: Optional[int]):
    if name == 'harbor':
        return create_harbor_env()
    if name == 'crossing':
        return create_crossing_env()
    return create_random_env(seed)


def run_mission(config: USVConfig, env_name: str, seed: Optional[int] = None,
                steps: int = 2000, dt: float = 0.1, use_proposer: bool = True) -> dict:
    """
    Run one simulated mission.

    Returns:
        Summary dict (grid size, path length, final distance, ...)
    """
    env = create_environment(env_name, seed)

    if config.grid.operating_area is None:
        config = dataclasses.replace(
            config, grid=dataclasses.replace(config.grid, operating_area=env.operating_area())
        )

    goal = config.navigator.goal or env.goal
    start = env.start or (0.0, 0.0)
    heading = math.atan2(goal[1] - start[1], goal[0] - start[0])

    lp = config.local_planner
    vessel = SimulatedVessel(start[0], start[1], heading,
                             VesselConfig(max_linear=lp.max_linear, max_angular=lp.max_angular))
    sensor = SimulatedRangeSensor(env, config.sensor, vessel=vessel, seed=seed)
    proposer = None
    if use_proposer:
        proposer = WaypointFollower(FollowerConfig(max_linear=lp.max_linear,
                                                   max_angular=lp.max_angular))

    navigator = USVNavigator.from_config(config, env, sensor, proposer)
    navigator.set_goal(goal, now=env.time)

    collisions = 0
    in_contact = False
    for _ in range(steps):
        command = navigator.tick(env.time, vessel.pose, vessel.speed)
        if navigator.arrived:
            break

        vessel.apply(command, dt)
        env.step(dt)

        contact = vessel.collides(env)
        if contact and not in_contact:
            collisions += 1
            navigator.notify_collision(env.time)
        in_contact = contact

    grid = navigator.grid
    return {
        'environment': env_name,
        'grid_size': (grid.width, grid.height),
        'walkable_cells': grid.walkable_count(),
        'path_waypoints': len(navigator.current_path),
        'path_cost': navigator.last_plan.cost if navigator.last_plan else float('inf'),
        'final_distance': math.hypot(goal[0] - vessel.x, goal[1] - vessel.y),
        'distance_travelled': vessel.distance_travelled,
        'ticks': navigator.ticks,
        'avoidance_ticks': navigator.avoidance_ticks,
        'collisions': collisions,
        'replans': navigator.scheduler.completed,
        'arrived': navigator.arrived,
    }


def print_summary(summary: dict):
    print("=" * 60)
    print("   USV-NAV - MISSION SUMMARY")
    print("=" * 60)
    print(f"  Environment      : {summary['environment']}")
    print(f"  Grid             : {summary['grid_size'][0]}x{summary['grid_size'][1]} "
          f"({summary['walkable_cells']} walkable)")
    print(f"  Path             : {summary['path_waypoints']} waypoints, "
          f"cost {summary['path_cost']:.2f}")
    print(f"  Ticks            : {summary['ticks']} "
          f"({summary['avoidance_ticks']} avoiding)")
    print(f"  Re-plans         : {summary['replans']}")
    print(f"  Collisions       : {summary['collisions']}")
    print(f"  Travelled        : {summary['distance_travelled']:.2f} m")
    print(f"  Final distance   : {summary['final_distance']:.2f} m")
    print(f"  Arrived          : {'yes' if summary['arrived'] else 'no'}")
    print("=" * 60)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        config = load_config(args.config) if args.config else USVConfig()
        summary = run_mission(config, args.env, seed=args.seed, steps=args.steps,
                              dt=args.dt, use_proposer=not args.no_proposer)
    except (ConfigurationError, FileNotFoundError) as e:
        logger.error("%s", e)
        return 1

    print_summary(summary)
    return 0 if summary['arrived'] else 2


if __name__ == '__main__':
    sys.exit(main())
