import math
import numpy as np
from core.math import Vec3, Ray
from core import kernels


class BoundingBox:
    """
    Axis aligned box. The constructor sorts each pair of coordinates,
    so min <= max holds on every axis for any box that exists.
    """

    __slots__ = ("xmin", "xmax", "ymin", "ymax", "zmin", "zmax")

    def __init__(self, x1=0.0, x2=0.0, y1=0.0, y2=0.0, z1=0.0, z2=0.0):
        self.xmin = float(min(x1, x2))
        self.xmax = float(max(x1, x2))
        self.ymin = float(min(y1, y2))
        self.ymax = float(max(y1, y2))
        self.zmin = float(min(z1, z2))
        self.zmax = float(max(z1, z2))

    @classmethod
    def from_points(cls, p1: Vec3, p2: Vec3) -> "BoundingBox":
        return cls(p1.x, p2.x, p1.y, p2.y, p1.z, p2.z)

    @classmethod
    def enclosing(cls, points) -> "BoundingBox":
        xs, ys, zs = zip(*((p.x, p.y, p.z) for p in points))
        return cls(min(xs), max(xs), min(ys), max(ys), min(zs), max(zs))

    def copy(self) -> "BoundingBox":
        return BoundingBox(self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax)

    @property
    def min(self) -> Vec3:
        return Vec3(self.xmin, self.ymin, self.zmin)

    @property
    def max(self) -> Vec3:
        return Vec3(self.xmax, self.ymax, self.zmax)

    def size(self) -> Vec3:
        return Vec3(self.xmax - self.xmin, self.ymax - self.ymin, self.zmax - self.zmin)

    def center(self) -> Vec3:
        return Vec3((self.xmax + self.xmin) / 2.0,
                    (self.ymax + self.ymin) / 2.0,
                    (self.zmax + self.zmin) / 2.0)

    def corners(self):
        return [Vec3(x, y, z)
                for x in (self.xmin, self.xmax)
                for y in (self.ymin, self.ymax)
                for z in (self.zmin, self.zmax)]

    def merge(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(min(self.xmin, other.xmin), max(self.xmax, other.xmax),
                           min(self.ymin, other.ymin), max(self.ymax, other.ymax),
                           min(self.zmin, other.zmin), max(self.zmax, other.zmax))

    def extend(self, other: "BoundingBox"):
        """Grow this box in place so it also encloses ``other``."""
        self.xmin = min(self.xmin, other.xmin)
        self.ymin = min(self.ymin, other.ymin)
        self.zmin = min(self.zmin, other.zmin)
        self.xmax = max(self.xmax, other.xmax)
        self.ymax = max(self.ymax, other.ymax)
        self.zmax = max(self.zmax, other.zmax)

    def contains(self, p: Vec3) -> bool:
        return (self.xmin <= p.x <= self.xmax and
                self.ymin <= p.y <= self.ymax and
                self.zmin <= p.z <= self.zmax)

    def intersects(self, other: "BoundingBox") -> bool:
        return not (self.xmin > other.xmax or self.xmax < other.xmin or
                    self.ymin > other.ymax or self.ymax < other.ymin or
                    self.zmin > other.zmax or self.zmax < other.zmin)

    def distance_to_point(self, p: Vec3) -> float:
        """Distance from ``p`` to the closest point of the box (0 inside)."""
        x = max(self.xmin - p.x, 0.0, p.x - self.xmax)
        y = max(self.ymin - p.y, 0.0, p.y - self.ymax)
        z = max(self.zmin - p.z, 0.0, p.z - self.zmax)
        return math.sqrt(x * x + y * y + z * z)

    def outset(self, dist: float) -> "BoundingBox":
        return BoundingBox(self.xmin - dist, self.xmax + dist,
                           self.ymin - dist, self.ymax + dist,
                           self.zmin - dist, self.zmax + dist)

    def translate(self, dx: float, dy: float, dz: float) -> "BoundingBox":
        return BoundingBox(self.xmin + dx, self.xmax + dx,
                           self.ymin + dy, self.ymax + dy,
                           self.zmin + dz, self.zmax + dz)

    def transform_and_outset(self, matrix: np.ndarray, dist: float = 0.0) -> "BoundingBox":
        """
        Map the 8 corners through a 4x4 affine matrix and return the box
        enclosing them, grown by ``dist`` on every side.
        """
        corners = np.array([[c.x, c.y, c.z, 1.0] for c in self.corners()])
        mapped = corners @ np.asarray(matrix, dtype=np.float64).T
        lo = mapped[:, :3].min(axis=0)
        hi = mapped[:, :3].max(axis=0)
        box = BoundingBox(lo[0], hi[0], lo[1], hi[1], lo[2], hi[2])
        return box.outset(dist) if dist else box

    def ray_interval(self, ray: Ray):
        """(t_enter, t_exit) of the ray through the box, or None on a miss."""
        o, d = ray.origin, ray.direction
        hit, t_enter, t_exit = kernels.slab_interval(
            o.x, o.y, o.z, d.x, d.y, d.z,
            self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax)
        if not hit:
            return None
        return t_enter, t_exit

    def segment_intersects(self, a: Vec3, b: Vec3) -> bool:
        return kernels.segment_hits_box(
            a.x, a.y, a.z, b.x, b.y, b.z,
            self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax)

    def __eq__(self, other):
        if not isinstance(other, BoundingBox):
            return NotImplemented
        return (self.xmin, self.xmax, self.ymin, self.ymax, self.zmin, self.zmax) == \
               (other.xmin, other.xmax, other.ymin, other.ymax, other.zmin, other.zmax)

    def __repr__(self):
        return (f"BoundingBox(xmin={self.xmin}, xmax={self.xmax}, ymin={self.ymin}, "
                f"ymax={self.ymax}, zmin={self.zmin}, zmax={self.zmax})")
