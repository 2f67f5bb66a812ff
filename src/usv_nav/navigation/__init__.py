"""
Navigation Module

- GlobalPlanner: A* path planning on the occupancy grid
- LocalPlanner: dynamic window with right-of-way rules
- Proposers: baseline command sources for open water
- USVNavigator: tick loop tying them together
"""

from .priority_queue import IndexedPriorityQueue
from .global_planner import GlobalPlanner, PathResult, PathStatus, octile_distance
from .local_planner import LocalPlanner, LocalPlanResult, LocalPlanMode, EncounterType
from .proposers import WaypointFollower, DiscreteActionProposer, FollowerConfig
from .replanner import ReplanScheduler
from .navigator import USVNavigator, NavigationState

__all__ = [
    'IndexedPriorityQueue',
    'GlobalPlanner',
    'PathResult',
    'PathStatus',
    'octile_distance',
    'LocalPlanner',
    'LocalPlanResult',
    'LocalPlanMode',
    'EncounterType',
    'WaypointFollower',
    'DiscreteActionProposer',
    'FollowerConfig',
    'ReplanScheduler',
    'USVNavigator',
    'NavigationState',
]
