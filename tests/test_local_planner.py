#!/usr/bin/env python3
"""
Unit tests for the local planner
================================
- Motion prediction
- Candidate scoring and right-of-way rules
- Obstacle admission
- Waypoint tracking and avoidance mode
"""

import math
import sys
import unittest
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from usv_nav.core import ConfigurationError, LocalPlannerConfig, OperatingArea
from usv_nav.interface import IActionProposer, IRangeSensor, ObstacleObservation, VelocityCommand
from usv_nav.mapping import OccupancyGrid
from usv_nav.navigation import EncounterType, LocalPlanMode, LocalPlanner
from usv_nav.navigation.local_planner import normalize_degrees, relative_bearing


class FixedSensor(IRangeSensor):
    """Sensor returning a fixed set of returns, as seen from a pose."""

    def __init__(self, pose, points, velocities=None):
        self._points = np.array(points, dtype=float).reshape(-1, 2)
        self._distances = np.hypot(self._points[:, 0] - pose[0], self._points[:, 1] - pose[1])
        if velocities is None:
            self._velocities = np.zeros_like(self._points)
        else:
            self._velocities = np.array(velocities, dtype=float).reshape(-1, 2)
        self.complete_calls = 0

    @property
    def sample_count(self):
        return len(self._distances)

    def scan(self):
        return True

    def complete_scan(self):
        self.complete_calls += 1

    def distances(self):
        return self._distances

    def points(self):
        return self._points

    def velocities(self):
        return self._velocities


class FixedProposer(IActionProposer):
    def __init__(self, command):
        self.command = command
        self.calls = 0

    def propose(self, pose, velocity, waypoint):
        self.calls += 1
        return self.command


def open_grid():
    grid = OccupancyGrid(OperatingArea(center=(0.0, 0.0), size=(20.0, 20.0)))
    grid.build()
    return grid


class TestGeometry(unittest.TestCase):
    """Tests for bearing helpers and prediction."""

    def setUp(self):
        self.planner = LocalPlanner(open_grid())

    def test_normalize_degrees(self):
        self.assertAlmostEqual(normalize_degrees(190.0), -170.0)
        self.assertAlmostEqual(normalize_degrees(-190.0), 170.0)
        self.assertAlmostEqual(normalize_degrees(180.0), 180.0)
        self.assertAlmostEqual(normalize_degrees(720.0), 0.0)

    def test_relative_bearing_starboard_positive(self):
        """Test starboard is positive with a CCW heading."""
        pose = (0.0, 0.0, 0.0)
        self.assertAlmostEqual(relative_bearing(pose, (5.0, 0.0)), 0.0)
        self.assertAlmostEqual(relative_bearing(pose, (0.0, -5.0)), 90.0)
        self.assertAlmostEqual(relative_bearing(pose, (0.0, 5.0)), -90.0)

        north = (0.0, 0.0, math.pi / 2)
        self.assertAlmostEqual(relative_bearing(north, (5.0, 0.0)), 90.0)

    def test_predict_straight(self):
        x, y, theta = self.planner.predict_motion((0.0, 0.0, 0.0), 1.0, 0.0)
        self.assertAlmostEqual(x, 0.8)
        self.assertAlmostEqual(y, 0.0)
        self.assertAlmostEqual(theta, 0.0)

    def test_predict_turn_in_place(self):
        x, y, theta = self.planner.predict_motion((1.0, 2.0, 0.0), 0.0, 45.0)
        self.assertAlmostEqual(x, 1.0)
        self.assertAlmostEqual(y, 2.0)
        self.assertAlmostEqual(theta, -math.radians(36.0))

    def test_predict_starboard_turn(self):
        """Test a positive rate of turn bends the track to starboard."""
        x, y, _ = self.planner.predict_motion((0.0, 0.0, 0.0), 1.0, 30.0)
        self.assertGreater(x, 0.0)
        self.assertLess(y, 0.0)

    def test_predict_rotates_before_moving(self):
        """Test the first sub-step already uses the turned heading."""
        cfg = LocalPlannerConfig(horizon=1.0, horizon_steps=1)
        planner = LocalPlanner(open_grid(), cfg)
        x, y, _ = planner.predict_motion((0.0, 0.0, 0.0), 1.0, 90.0)
        self.assertAlmostEqual(x, 0.0)
        self.assertAlmostEqual(y, -1.0)


class TestScores(unittest.TestCase):
    """Tests for the individual scores."""

    def setUp(self):
        self.planner = LocalPlanner(open_grid())

    def obstacle(self, x, y, vx=0.0, vy=0.0):
        return ObstacleObservation(0, math.hypot(x, y), (x, y), (vx, vy))

    def test_clearance(self):
        pose = (0.0, 0.0, 0.0)
        self.assertEqual(self.planner.clearance_score(pose, []), 1.0)
        self.assertAlmostEqual(self.planner.clearance_score(pose, [self.obstacle(1.5, 0)]), 0.5)
        self.assertAlmostEqual(
            self.planner.clearance_score(pose, [self.obstacle(1.5, 0), self.obstacle(0, 6)]), 0.75)

    def test_progress(self):
        pose = (0.0, 0.0, 0.0)
        self.assertAlmostEqual(self.planner.progress_score(pose, (3.0, 0.0)), 0.5)
        self.assertEqual(self.planner.progress_score(pose, (10.0, 0.0)), 0.0)
        self.assertEqual(self.planner.progress_score(pose, None), 0.0)

    def test_smoothness(self):
        self.assertAlmostEqual(self.planner.smoothness_score(1.5, 0.0, 1.5), 1.0)
        self.assertAlmostEqual(self.planner.smoothness_score(0.0, 45.0, 1.5), 0.0)

    def test_classify_encounter(self):
        self.assertEqual(self.planner.classify_encounter(10.0, 1.0), EncounterType.HEAD_ON)
        self.assertEqual(self.planner.classify_encounter(-19.0, 0.0), EncounterType.HEAD_ON)
        self.assertEqual(self.planner.classify_encounter(60.0, 1.0), EncounterType.STAND_ON)
        self.assertEqual(self.planner.classify_encounter(-60.0, 1.0), EncounterType.GIVE_WAY)
        self.assertEqual(self.planner.classify_encounter(150.0, 1.0), EncounterType.NONE)

    def test_head_on_needs_speed(self):
        """Test a slow object ahead is treated as a crossing."""
        planner = LocalPlanner(open_grid(), LocalPlannerConfig(head_on_min_speed=0.5))
        self.assertEqual(planner.classify_encounter(10.0, 0.1), EncounterType.STAND_ON)
        self.assertEqual(planner.classify_encounter(10.0, 1.0), EncounterType.HEAD_ON)

    def test_head_on_prefers_port(self):
        """Test a port turn at head_on_avoid_rate scores best head-on."""
        pose = (0.0, 0.0, 0.0)
        ahead = [self.obstacle(10.0, 0.0, -1.0, 0.0)]
        self.assertEqual(self.planner.config.head_on_avoid_rate, -45.0)
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, -45.0, ahead), 1.0)
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 0.0, ahead), 0.5)
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 45.0, ahead), 0.3)

    def test_head_on_starboard_option(self):
        """Test head_on_avoid_rate=+45 rewards a starboard alteration instead."""
        planner = LocalPlanner(open_grid(), LocalPlannerConfig(head_on_avoid_rate=45.0))
        pose = (0.0, 0.0, 0.0)
        ahead = [self.obstacle(10.0, 0.0, -1.0, 0.0)]
        self.assertAlmostEqual(planner.right_of_way_score(pose, 45.0, ahead), 1.0)
        self.assertAlmostEqual(planner.right_of_way_score(pose, -45.0, ahead), 0.3)

    def test_stand_on_holds_course(self):
        pose = (0.0, 0.0, 0.0)
        to_starboard = [self.obstacle(5.0, -5.0)]
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 0.0, to_starboard), 1.0)
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 45.0, to_starboard), 0.4)

    def test_give_way_turns_starboard(self):
        pose = (0.0, 0.0, 0.0)
        to_port = [self.obstacle(5.0, 5.0)]
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 30.0, to_port), 1.0)
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 0.0, to_port), 0.5)

    def test_close_obstacle_scales_factor(self):
        pose = (0.0, 0.0, 0.0)
        close = [self.obstacle(1.0, 1.0)]    # port side, sqrt(2) m away
        score = self.planner.right_of_way_score(pose, 30.0, close)
        self.assertAlmostEqual(score, math.sqrt(2) / 4.0)

    def test_factors_multiply(self):
        pose = (0.0, 0.0, 0.0)
        both = [self.obstacle(5.0, 5.0), self.obstacle(6.0, 6.0)]
        self.assertAlmostEqual(self.planner.right_of_way_score(pose, 0.0, both), 0.25)


class TestCandidates(unittest.TestCase):
    """Tests for candidate set and selection."""

    def test_zero_zero_added(self):
        cfg = LocalPlannerConfig(linear_options=(0.5, 1.0), angular_options=(-15.0, 15.0))
        planner = LocalPlanner(open_grid(), cfg)
        self.assertIn((0.0, 0.0), planner.candidates)
        self.assertEqual(planner.candidates[-1], (0.0, 0.0))
        self.assertEqual(len(planner.candidates), 5)

    def test_default_candidates(self):
        planner = LocalPlanner(open_grid())
        self.assertEqual(len(planner.candidates), 35)
        self.assertEqual(planner.candidates[0], (0.0, -45.0))

    def test_first_candidate_wins_ties(self):
        """Test ties keep the first candidate (linear outer, angular inner)."""
        cfg = LocalPlannerConfig(clearance_weight=0.0, progress_weight=0.0,
                                 right_of_way_weight=0.0, smoothness_weight=0.0)
        planner = LocalPlanner(open_grid(), cfg)
        command, score = planner.dynamic_window((0.0, 0.0, 0.0), 1.0, (5.0, 0.0), [])
        self.assertEqual(command, VelocityCommand(0.0, -45.0))
        self.assertEqual(score, 0.0)

    def test_invalid_horizon(self):
        with self.assertRaises(ConfigurationError):
            LocalPlanner(open_grid(), LocalPlannerConfig(horizon_steps=0))

    def test_missing_grid(self):
        with self.assertRaises(ConfigurationError) as ctx:
            LocalPlanner(None)
        self.assertEqual(ctx.exception.dependency, "grid")


class TestScenarios(unittest.TestCase):
    """End-to-end local planning decisions."""

    def setUp(self):
        self.grid = open_grid()
        self.planner = LocalPlanner(self.grid)

    def test_static_obstacle_ahead(self):
        """Test an obstacle 2 m ahead triggers an avoidance turn."""
        pose = (0.0, 0.0, 0.0)
        sensor = FixedSensor(pose, [(2.0, 0.0)])
        result = self.planner.step(pose, 1.0, None, (4.0, 0.0), sensor)

        self.assertEqual(result.mode, LocalPlanMode.AVOIDING)
        self.assertEqual(len(result.obstacles), 1)
        self.assertNotEqual(result.command.angular, 0.0)
        self.assertEqual(result.command, VelocityCommand(0.0, 30.0))
        self.assertAlmostEqual(result.score, 0.525, places=6)
        self.assertTrue(self.planner.avoiding)

        # The turn leaves the obstacle on the port bow: give-way rule applies
        predicted = self.planner.predict_motion(pose, 0.0, 30.0)
        bearing = relative_bearing(predicted, (2.0, 0.0))
        self.assertEqual(self.planner.classify_encounter(bearing, 0.0), EncounterType.GIVE_WAY)

    def test_vessel_ahead_head_on(self):
        """Test a vessel closing dead ahead is turned away from, never held on."""
        obstacle = ObstacleObservation(180, 2.5, (2.5, 0.0), (-1.0, 0.0))
        command, score = self.planner.dynamic_window((0.0, 0.0, 0.0), 1.0, (6.0, 0.0), [obstacle])

        self.assertEqual(command, VelocityCommand(0.0, 30.0))
        self.assertAlmostEqual(score, 0.5 * 2.5 / 3.0 + 0.15 * 2.5 / 4.0 + 0.05 / 3.0, places=6)

        # Holding course scores the head-on rule at half
        held = self.planner.score_candidate((0.0, 0.0, 0.0), 0.0, 0.0, 1.0, (6.0, 0.0), [obstacle])
        self.assertLess(held, score)

    def test_open_water_full_speed(self):
        """Test straight ahead at full speed without hazards."""
        pose = (0.0, 0.0, 0.0)
        sensor = FixedSensor(pose, [(15.0, 0.0)])
        result = self.planner.step(pose, 1.5, None, (4.0, 0.0), sensor)

        self.assertEqual(result.mode, LocalPlanMode.DYNAMIC_WINDOW)
        self.assertEqual(result.command, VelocityCommand(1.5, 0.0))
        self.assertEqual(result.obstacles, [])

    def test_proposer_used_without_hazard(self):
        proposer = FixedProposer(VelocityCommand(0.8, -15.0))
        pose = (0.0, 0.0, 0.0)
        result = self.planner.step(pose, 1.5, None, (4.0, 0.0), FixedSensor(pose, []), proposer)

        self.assertEqual(result.mode, LocalPlanMode.PROPOSER)
        self.assertEqual(result.command, VelocityCommand(0.8, -15.0))
        self.assertIsNone(result.score)
        self.assertEqual(proposer.calls, 1)

    def test_proposer_ignored_when_avoiding(self):
        proposer = FixedProposer(VelocityCommand(1.5, 0.0))
        pose = (0.0, 0.0, 0.0)
        result = self.planner.step(pose, 1.0, None, (4.0, 0.0),
                                   FixedSensor(pose, [(2.0, 0.0)]), proposer)
        self.assertEqual(result.mode, LocalPlanMode.AVOIDING)
        self.assertEqual(proposer.calls, 0)

    def test_deterministic(self):
        pose = (1.0, -2.0, 0.3)
        points = [(2.5, -1.0), (0.0, -3.5)]
        velocities = [(-0.5, 0.0), (0.2, 0.4)]
        first = self.planner.step(pose, 0.8, None, (6.0, 2.0),
                                  FixedSensor(pose, points, velocities))
        for _ in range(3):
            planner = LocalPlanner(self.grid)
            again = planner.step(pose, 0.8, None, (6.0, 2.0),
                                 FixedSensor(pose, points, velocities))
            self.assertEqual(again.command, first.command)
            self.assertEqual(again.score, first.score)

    def test_no_sensor(self):
        """Test the planner never fails: no sensor means no obstacles."""
        result = self.planner.step((0.0, 0.0, 0.0), 0.0, None, None, None)
        self.assertEqual(result.mode, LocalPlanMode.DYNAMIC_WINDOW)
        self.assertIsNone(result.waypoint)


class TestObstacleAdmission(unittest.TestCase):
    """Tests for detect_obstacles()."""

    def setUp(self):
        self.grid = open_grid()
        self.planner = LocalPlanner(self.grid)

    def test_distance_filter(self):
        pose = (0.0, 0.0, 0.0)
        sensor = FixedSensor(pose, [(2.9, 0.0), (3.0, 0.0), (0.0, 5.0)])
        admitted = self.planner.detect_obstacles(sensor)
        self.assertEqual([obs.bearing_index for obs in admitted], [0])
        self.assertEqual(sensor.complete_calls, 1)

    def test_static_obstacles_skipped(self):
        """Test returns on blocked cells are left to the global plan."""
        pose = (0.0, 0.0, 0.0)
        self.grid.set_walkable(self.grid.world_to_grid((1.5, 0.0)), False)
        sensor = FixedSensor(pose, [(1.5, 0.0), (0.0, 1.5)])
        admitted = self.planner.detect_obstacles(sensor)
        self.assertEqual([obs.bearing_index for obs in admitted], [1])


class TestWaypointTracking(unittest.TestCase):
    """Tests for waypoint advance and path proximity."""

    def setUp(self):
        self.planner = LocalPlanner(open_grid())

    def test_goal_without_path(self):
        self.assertEqual(self.planner.track_waypoint((0, 0), [], (5.0, 5.0)), (5.0, 5.0))

    def test_advance_past_reached(self):
        path = [(0.0, 0.0), (0.5, 0.0), (5.0, 0.0), (9.0, 0.0)]
        self.assertEqual(self.planner.track_waypoint((0.0, 0.0), path, (9.0, 0.0)), (5.0, 0.0))
        self.assertEqual(self.planner.waypoint_index, 2)

    def test_last_waypoint_kept(self):
        path = [(0.0, 0.0), (1.5, 0.0)]
        self.assertEqual(self.planner.track_waypoint((0.2, 0.0), path, None), (1.5, 0.0))
        self.assertEqual(self.planner.waypoint_index, 1)

    def test_new_path_resets_index(self):
        path = [(0.0, 0.0), (5.0, 0.0)]
        self.planner.track_waypoint((0.0, 0.0), path, None)
        self.assertEqual(self.planner.waypoint_index, 1)

        new_path = [(2.0, 2.0), (6.0, 6.0)]
        self.assertEqual(self.planner.track_waypoint((0.0, 0.0), new_path, None), (2.0, 2.0))

    def test_index_does_not_go_back(self):
        path = [(0.0, 0.0), (5.0, 0.0), (10.0, 0.0)]
        self.planner.track_waypoint((0.0, 0.0), path, None)
        self.assertEqual(self.planner.waypoint_index, 1)
        self.planner.track_waypoint((4.5, 0.0), path, None)
        self.assertEqual(self.planner.waypoint_index, 2)
        self.planner.track_waypoint((0.0, 0.0), path, None)
        self.assertEqual(self.planner.waypoint_index, 2)

    def test_equal_path_copy_keeps_index(self):
        """Test a fresh copy of the same path each tick keeps advancing."""
        path = [(float(x), 0.0) for x in range(5)]
        tracked = [
            self.planner.track_waypoint((x, 0.0), list(path), None)
            for x in (0.0, 0.5, 1.5, 2.5)
        ]
        self.assertEqual(tracked, [(1.0, 0.0), (2.0, 0.0), (3.0, 0.0), (4.0, 0.0)])
        self.assertEqual(self.planner.waypoint_index, 4)

    def test_step_with_path_copies(self):
        """Test step() never tracks a waypoint behind the vessel."""
        path = [(float(x), 0.0) for x in range(5)]
        waypoints = []
        for x in (0.0, 0.5, 1.5, 2.5):
            pose = (x, 0.0, 0.0)
            result = self.planner.step(pose, 1.0, list(path), path[-1], FixedSensor(pose, []))
            waypoints.append(result.waypoint)
        self.assertEqual(waypoints, [(1.0, 0.0), (2.0, 0.0), (3.0, 0.0), (4.0, 0.0)])

    def test_is_close_to_path(self):
        path = [(0.0, 0.0), (10.0, 0.0)]
        self.assertTrue(self.planner.is_close_to_path((5.0, 1.5), path))
        self.assertFalse(self.planner.is_close_to_path((5.0, 2.5), path))
        self.assertFalse(self.planner.is_close_to_path((12.5, 0.0), path))
        self.assertTrue(self.planner.is_close_to_path((50.0, 50.0), [(0.0, 0.0)]))
        self.assertTrue(self.planner.is_close_to_path((50.0, 50.0), []))

    def test_leave_avoidance_near_path(self):
        path = [(-5.0, 0.0), (5.0, 0.0)]
        pose = (0.0, 0.0, 0.0)
        self.planner.step(pose, 1.0, path, (5.0, 0.0), FixedSensor(pose, [(1.5, 0.5)]))
        self.assertTrue(self.planner.avoiding)

        result = self.planner.step(pose, 1.0, path, (5.0, 0.0), FixedSensor(pose, []))
        self.assertFalse(self.planner.avoiding)
        self.assertEqual(result.mode, LocalPlanMode.DYNAMIC_WINDOW)

    def test_keep_returning_off_path(self):
        path = [(-5.0, 0.0), (5.0, 0.0)]
        pose = (0.0, 4.0, 0.0)
        self.planner.step(pose, 1.0, path, (5.0, 0.0), FixedSensor(pose, [(1.5, 4.5)]))

        result = self.planner.step(pose, 1.0, path, (5.0, 0.0), FixedSensor(pose, []))
        self.assertTrue(self.planner.avoiding)
        self.assertEqual(result.mode, LocalPlanMode.RETURNING)


if __name__ == '__main__':
    unittest.main()
