"""
Plan d'eau virtuel pour la simulation.

Definit les obstacles fixes (quais, bouees, murs) et les navires en
mouvement. Sert a la fois de source pour le marquage de la grille
(occupied) et de cible pour le capteur de distance simule (cast_ray).
"""

import math
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..core.config import OperatingArea
from ..interface.sensor_interface import IObstacleField, Point


class ObstacleType(Enum):
    """Types d'obstacles."""
    WALL = "wall"           # Mur / digue (segment)
    BOX = "box"             # Quai, ponton (rectangle)
    CIRCLE = "circle"       # Bouee, pile, navire


@dataclass
class Obstacle:
    """
    Obstacle du plan d'eau.

    Pour WALL: (x, y) -> (x2, y2)
    Pour BOX: centre (x, y), largeur, hauteur, rotation
    Pour CIRCLE: centre (x, y), rayon
    vx, vy non nuls: obstacle mobile (navire)
    """
    obstacle_type: ObstacleType
    x: float
    y: float
    x2: Optional[float] = None
    y2: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    rotation: float = 0.0
    radius: Optional[float] = None
    vx: float = 0.0
    vy: float = 0.0
    obstacle_id: int = -1

    @property
    def dynamic(self) -> bool:
        return self.vx != 0.0 or self.vy != 0.0

    def move(self, dt: float):
        """Avance l'obstacle a vitesse constante."""
        self.x += self.vx * dt
        self.y += self.vy * dt
        if self.x2 is not None:
            self.x2 += self.vx * dt
            self.y2 += self.vy * dt

    # ------------------------------------------------------------------
    # Intersection rayon
    # ------------------------------------------------------------------

    def intersect_ray(self, origin_x: float, origin_y: float, angle: float) -> Optional[float]:
        """
        Calcule l'intersection d'un rayon avec cet obstacle.

        Args:
            origin_x, origin_y: Point d'origine du rayon
            angle: Angle du rayon en radians (monde, CCW depuis +x)

        Returns:
            Distance jusqu'a l'intersection, ou None si pas d'intersection
        """
        if self.obstacle_type == ObstacleType.WALL:
            return _intersect_segment(origin_x, origin_y, angle,
                                      (self.x, self.y), (self.x2, self.y2))
        elif self.obstacle_type == ObstacleType.CIRCLE:
            return self._intersect_circle(origin_x, origin_y, angle)
        elif self.obstacle_type == ObstacleType.BOX:
            return self._intersect_box(origin_x, origin_y, angle)
        return None

    def _intersect_circle(self, ox: float, oy: float, angle: float) -> Optional[float]:
        """Intersection rayon-cercle."""
        dx = math.cos(angle)
        dy = math.sin(angle)

        # Vecteur centre -> origine
        fx = ox - self.x
        fy = oy - self.y

        b = 2 * (fx * dx + fy * dy)
        c = fx * fx + fy * fy - self.radius * self.radius

        discriminant = b * b - 4 * c
        if discriminant < 0:
            return None

        sqrt_disc = math.sqrt(discriminant)
        t1 = (-b - sqrt_disc) / 2
        t2 = (-b + sqrt_disc) / 2

        if t1 > 0.001:
            return t1
        if t2 > 0.001:
            return t2
        return None

    def _intersect_box(self, ox: float, oy: float, angle: float) -> Optional[float]:
        """Intersection rayon-boite (4 cotes)."""
        corners = self.corners()
        min_dist = None
        for i in range(4):
            dist = _intersect_segment(ox, oy, angle, corners[i], corners[(i + 1) % 4])
            if dist is not None and (min_dist is None or dist < min_dist):
                min_dist = dist
        return min_dist

    def corners(self) -> List[Point]:
        """Coins d'une boite apres rotation et translation."""
        w, h = self.width / 2, self.height / 2
        cos_r = math.cos(self.rotation)
        sin_r = math.sin(self.rotation)
        return [
            (px * cos_r - py * sin_r + self.x, px * sin_r + py * cos_r + self.y)
            for px, py in ((-w, -h), (w, -h), (w, h), (-w, h))
        ]

    # ------------------------------------------------------------------
    # Distance point-obstacle
    # ------------------------------------------------------------------

    def distance_to(self, px: float, py: float) -> float:
        """Distance du point a la surface de l'obstacle (0 a l'interieur)."""
        if self.obstacle_type == ObstacleType.CIRCLE:
            return max(0.0, math.hypot(px - self.x, py - self.y) - self.radius)

        if self.obstacle_type == ObstacleType.WALL:
            return _point_segment_distance(px, py, (self.x, self.y), (self.x2, self.y2))

        # Boite: passage dans le repere local
        cos_r = math.cos(-self.rotation)
        sin_r = math.sin(-self.rotation)
        lx = (px - self.x) * cos_r - (py - self.y) * sin_r
        ly = (px - self.x) * sin_r + (py - self.y) * cos_r
        dx = max(abs(lx) - self.width / 2, 0.0)
        dy = max(abs(ly) - self.height / 2, 0.0)
        return math.hypot(dx, dy)


def _intersect_segment(ox: float, oy: float, angle: float,
                       a: Point, b: Point) -> Optional[float]:
    """Intersection rayon-segment."""
    dx = math.cos(angle)
    dy = math.sin(angle)

    sx = b[0] - a[0]
    sy = b[1] - a[1]

    denom = dx * sy - dy * sx
    if abs(denom) < 1e-10:
        return None  # Parallele

    t = ((a[0] - ox) * sy - (a[1] - oy) * sx) / denom
    u = ((a[0] - ox) * dy - (a[1] - oy) * dx) / denom

    if t > 0.001 and 0 <= u <= 1:
        return t
    return None


def _point_segment_distance(px: float, py: float, a: Point, b: Point) -> float:
    sx = b[0] - a[0]
    sy = b[1] - a[1]
    length_sq = sx * sx + sy * sy
    if length_sq == 0:
        return math.hypot(px - a[0], py - a[1])
    t = max(0.0, min(1.0, ((px - a[0]) * sx + (py - a[1]) * sy) / length_sq))
    return math.hypot(px - (a[0] + t * sx), py - (a[1] + t * sy))


@dataclass
class Environment(IObstacleField):
    """
    Plan d'eau de simulation avec obstacles fixes et mobiles.
    """
    obstacles: List[Obstacle] = field(default_factory=list)
    width: float = 30.0                         # Largeur en metres (x)
    height: float = 20.0                        # Hauteur en metres (y)
    center: Point = (0.0, 0.0)
    time: float = 0.0                           # Temps simule (s)
    start: Optional[Point] = None               # Depart suggere
    goal: Optional[Point] = None                # Arrivee suggeree

    def operating_area(self) -> OperatingArea:
        """Zone d'operation couverte par la grille."""
        return OperatingArea(center=self.center, size=(self.width, self.height))

    def add_obstacle(self, obstacle: Obstacle) -> Obstacle:
        """Ajoute un obstacle et lui attribue un identifiant."""
        obstacle.obstacle_id = len(self.obstacles)
        self.obstacles.append(obstacle)
        return obstacle

    def add_wall(self, x1: float, y1: float, x2: float, y2: float) -> Obstacle:
        return self.add_obstacle(Obstacle(ObstacleType.WALL, x1, y1, x2, y2))

    def add_box(self, x: float, y: float, width: float, height: float,
                rotation: float = 0.0) -> Obstacle:
        return self.add_obstacle(Obstacle(
            ObstacleType.BOX, x, y,
            width=width, height=height, rotation=rotation
        ))

    def add_circle(self, x: float, y: float, radius: float) -> Obstacle:
        """Ajoute une bouee / pile."""
        return self.add_obstacle(Obstacle(ObstacleType.CIRCLE, x, y, radius=radius))

    def add_vessel(self, x: float, y: float, vx: float, vy: float,
                   radius: float = 0.5) -> Obstacle:
        """Ajoute un navire a vitesse constante."""
        return self.add_obstacle(Obstacle(
            ObstacleType.CIRCLE, x, y, radius=radius, vx=vx, vy=vy
        ))

    def step(self, dt: float):
        """Fait avancer le temps et les obstacles mobiles."""
        for obstacle in self.obstacles:
            if obstacle.dynamic:
                obstacle.move(dt)
        self.time += dt

    def occupied(self, x: float, y: float, radius: float,
                 include_dynamic: bool = False) -> bool:
        """
        Vrai si un obstacle est a moins de radius du point.

        Les navires en mouvement ne sont pas inclus par defaut: la grille
        ne marque que les obstacles fixes.
        """
        for obstacle in self.obstacles:
            if obstacle.dynamic and not include_dynamic:
                continue
            if obstacle.distance_to(x, y) <= radius:
                return True
        return False

    def cast_ray(self, origin_x: float, origin_y: float, angle: float,
                 max_range: float = 20.0) -> Tuple[float, Optional[int]]:
        """
        Lance un rayon et retourne le premier obstacle touche.

        Args:
            origin_x, origin_y: Position du capteur
            angle: Angle du rayon (radians, monde)
            max_range: Portee maximale

        Returns:
            (distance, obstacle_id), (max_range, None) si rien
        """
        min_dist = max_range
        hit_id = None

        for obstacle in self.obstacles:
            dist = obstacle.intersect_ray(origin_x, origin_y, angle)
            if dist is not None and dist < min_dist:
                min_dist = dist
                hit_id = obstacle.obstacle_id

        return min_dist, hit_id


def create_harbor_env() -> Environment:
    """
    Port avec quais, digue et bouees. Un navire sort du chenal.
    """
    env = Environment(width=30.0, height=20.0, start=(-12.0, -7.0), goal=(12.0, 7.0))

    # Quais
    env.add_box(-6.0, -3.0, 2.0, 8.0)
    env.add_box(4.0, 4.0, 2.0, 8.0)

    # Digue
    env.add_wall(8.0, -9.0, 8.0, -2.0)

    # Bouees du chenal
    env.add_circle(-1.0, -6.0, 0.4)
    env.add_circle(-1.0, 2.0, 0.4)
    env.add_circle(10.0, 2.0, 0.4)

    # Navire sortant
    env.add_vessel(12.0, -5.0, -0.6, 0.0)

    return env


def create_crossing_env() -> Environment:
    """
    Eaux libres avec une rencontre de face et un croisement par tribord.
    """
    env = Environment(width=30.0, height=20.0, start=(-12.0, 0.0), goal=(12.0, 0.0))

    # De face
    env.add_vessel(8.0, 0.0, -0.8, 0.0)
    # Croisement venant de tribord
    env.add_vessel(0.0, -9.0, 0.0, 0.6)

    return env


def create_random_env(seed: Optional[int] = None, obstacle_count: int = 5,
                      width: float = 30.0, height: float = 20.0,
                      obstacle_size: float = 1.0, max_retries: int = 100) -> Environment:
    """
    Plan d'eau avec obstacles, depart et arrivee tires au hasard.

    Les obstacles sont espaces d'au moins 1 m et restent a 0.5 m des
    bords. Le depart et l'arrivee sont tires hors des obstacles.

    Args:
        seed: Graine du generateur (reproductible)
        obstacle_count: Nombre d'obstacles
        width, height: Dimensions du plan d'eau
        obstacle_size: Cote des obstacles carres
        max_retries: Tirages max par position
    """
    rng = random.Random(seed)
    env = Environment(width=width, height=height)

    x_lo, x_hi = -width / 2 + 0.5, width / 2 - 0.5
    y_lo, y_hi = -height / 2 + 0.5, height / 2 - 0.5

    def draw() -> Point:
        return rng.uniform(x_lo, x_hi), rng.uniform(y_lo, y_hi)

    placed: List[Point] = []
    for _ in range(obstacle_count):
        pos = draw()
        for _ in range(max_retries):
            if all(math.hypot(pos[0] - p[0], pos[1] - p[1]) >= 1.0 for p in placed):
                break
            pos = draw()
        placed.append(pos)
        env.add_box(pos[0], pos[1], obstacle_size, obstacle_size)

    clearance = obstacle_size / 2 + 1.0

    def free_position(far_from: Optional[Point] = None) -> Point:
        pos = draw()
        for _ in range(max_retries):
            far_enough = far_from is None or \
                math.hypot(pos[0] - far_from[0], pos[1] - far_from[1]) >= width / 3
            if far_enough and not env.occupied(pos[0], pos[1], clearance):
                break
            pos = draw()
        return pos

    env.start = free_position()
    env.goal = free_position(env.start)
    return env
