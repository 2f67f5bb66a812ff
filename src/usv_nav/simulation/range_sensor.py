"""
Capteur de distance simule (LiDAR / radar 360 deg).

Lance sample_count rayons sur le plan d'eau simule. Le rayon i vise le
gisement i/n*360 - 180 degres par rapport au cap (positif vers tribord),
l'indice n/2 vise donc droit devant.

La vitesse de chaque obstacle est estimee par difference finie du
barycentre de ses impacts entre deux balayages complets (nulle a la
premiere detection).
"""

import math
import random
from typing import Dict, Optional, Tuple

import numpy as np

from ..core.config import SensorConfig
from ..interface.sensor_interface import IRangeSensor, Pose
from .environment import Environment


class SimulatedRangeSensor(IRangeSensor):
    """
    Capteur de distance sur environnement virtuel.

    Usage:
        env = create_crossing_env()
        vessel = SimulatedVessel(*env.start)
        sensor = SimulatedRangeSensor(env, vessel=vessel)

        sensor.complete_scan()
        for obs in sensor.observations():
            print(obs.distance, obs.velocity)
    """

    def __init__(self, environment: Environment,
                 config: Optional[SensorConfig] = None,
                 vessel=None, seed: Optional[int] = None):
        """
        Args:
            environment: Plan d'eau simule
            config: Configuration du capteur
            vessel: Objet portant la pose (attribut pose), sinon set_pose()
            seed: Graine du bruit de mesure
        """
        self.env = environment
        self.config = config or SensorConfig()
        self.vessel = vessel
        self._rng = random.Random(seed)

        n = self.config.sample_count
        self._distances = np.full(n, self.config.max_range, dtype=np.float64)
        self._points = np.zeros((n, 2), dtype=np.float64)
        self._velocities = np.zeros((n, 2), dtype=np.float64)
        self._hit_ids = np.full(n, -1, dtype=np.int64)

        self._pose: Pose = (0.0, 0.0, 0.0)
        self._cursor = 0
        self._sweep_time: Optional[float] = None
        self._sweep_pose: Optional[Pose] = None

        # Barycentres du balayage precedent: id -> ((x, y), temps)
        self._previous: Dict[int, Tuple[np.ndarray, float]] = {}
        self._estimates: Dict[int, np.ndarray] = {}
        self.sweeps = 0

    @property
    def sample_count(self) -> int:
        return self.config.sample_count

    @property
    def pose(self) -> Pose:
        if self.vessel is not None:
            return self.vessel.pose
        return self._pose

    def set_pose(self, pose: Pose):
        """Pose du capteur quand aucun navire n'est associe."""
        self._pose = (float(pose[0]), float(pose[1]), float(pose[2]))

    def bearing(self, index: int) -> float:
        """Gisement du rayon index en degres (positif vers tribord)."""
        return index / self.config.sample_count * 360.0 - 180.0

    # ------------------------------------------------------------------
    # Balayage
    # ------------------------------------------------------------------

    def _cast(self, index: int):
        x, y, theta = self.pose
        angle = theta - math.radians(self.bearing(index))
        max_range = self.config.max_range

        distance, hit_id = self.env.cast_ray(x, y, angle, max_range)
        if hit_id is not None and self.config.noise_std > 0:
            distance += self._rng.gauss(0, self.config.noise_std)
            distance = min(max(distance, 0.0), max_range)

        self._distances[index] = distance
        self._points[index] = (x + distance * math.cos(angle), y + distance * math.sin(angle))
        self._hit_ids[index] = -1 if hit_id is None else hit_id

    def scan(self) -> bool:
        """Lance au plus rays_per_scan rayons. Vrai si le balayage est complet."""
        n = self.config.sample_count
        for _ in range(max(1, self.config.rays_per_scan)):
            self._cast(self._cursor)
            self._cursor += 1
            if self._cursor >= n:
                self._finish_sweep()
                return True
        return False

    def complete_scan(self):
        """Termine le balayage en cours, ou en refait un complet si perime."""
        if self._cursor == 0 and self._is_fresh():
            return
        while not self.scan():
            pass

    def _is_fresh(self) -> bool:
        return self._sweep_time == self.env.time and self._sweep_pose == self.pose

    def _finish_sweep(self):
        self._cursor = 0
        now = self.env.time

        centroids: Dict[int, np.ndarray] = {}
        for hit_id in np.unique(self._hit_ids):
            if hit_id < 0:
                continue
            mask = self._hit_ids == hit_id
            centroids[int(hit_id)] = self._points[mask].mean(axis=0)

        estimates: Dict[int, np.ndarray] = {}
        for hit_id, centroid in centroids.items():
            previous = self._previous.get(hit_id)
            if previous is None:
                estimates[hit_id] = np.zeros(2)
                continue
            prev_centroid, prev_time = previous
            dt = now - prev_time
            if dt > 0:
                estimates[hit_id] = (centroid - prev_centroid) / dt
            else:
                estimates[hit_id] = self._estimates.get(hit_id, np.zeros(2))

        self._velocities.fill(0.0)
        for hit_id, velocity in estimates.items():
            self._velocities[self._hit_ids == hit_id] = velocity

        # Meme instant: on garde la reference precedente pour la difference finie
        self._previous = {
            hit_id: (centroid, now) if hit_id not in self._previous or now > self._previous[hit_id][1]
            else self._previous[hit_id]
            for hit_id, centroid in centroids.items()
        }
        self._estimates = estimates
        self._sweep_time = now
        self._sweep_pose = self.pose
        self.sweeps += 1

    # ------------------------------------------------------------------
    # Lecture
    # ------------------------------------------------------------------

    def distances(self) -> np.ndarray:
        return self._distances.copy()

    def points(self) -> np.ndarray:
        return self._points.copy()

    def velocities(self) -> np.ndarray:
        return self._velocities.copy()

    def hit_ids(self) -> np.ndarray:
        """Identifiant de l'obstacle touche par rayon (-1: rien)."""
        return self._hit_ids.copy()
