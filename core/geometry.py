import math
from abc import ABC, abstractmethod
from typing import List, Optional
from core.math import Vec3, Ray
from core.bounds import BoundingBox
from core.material import Material, Intersection
from core.transform import Transformation, apply_affine
from core import kernels

# rays closer than this to a triangle's plane direction count as parallel
PARALLEL_TOLERANCE = 1e-12
# maximum distance from the plane for a point to belong to a triangle,
# relative to the largest vertex coordinate (and never below this value)
PLANE_TOLERANCE = 1e-9


class SceneObject(ABC):
    """
    Common contract of everything that can be placed in a scene.
    Leaves return None from children(); composites return their parts.
    """

    def __init__(self, material: Material = None):
        self.material = material if material is not None else Material()

    @abstractmethod
    def intersect(self, ray: Ray) -> Optional[Intersection]:
        pass

    @abstractmethod
    def normal_at(self, point: Vec3) -> Optional[Vec3]:
        pass

    @abstractmethod
    def bounding_box(self) -> BoundingBox:
        pass

    @abstractmethod
    def transform(self, t: Transformation):
        pass

    def intersects_box(self, box: BoundingBox) -> bool:
        return box.intersects(self.bounding_box())

    def children(self) -> Optional[List["SceneObject"]]:
        return None


class Sphere(SceneObject):
    def __init__(self, center: Vec3 = None, radius: float = 1.0, material: Material = None):
        super().__init__(material)
        self.center = center if center is not None else Vec3(0, 0, 0)
        self.radius = float(radius)

    def normal_at(self, point: Vec3) -> Vec3:
        return (point - self.center).normalize()

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        o, d, c = ray.origin, ray.direction, self.center
        hit, t = kernels.sphere_root(o.x, o.y, o.z, d.x, d.y, d.z, c.x, c.y, c.z, self.radius)
        if not hit:
            return None
        point = ray.point_at_parameter(t)
        normal = self.normal_at(point)
        if normal.dot(d) > 0:
            normal = -normal
        return Intersection(point, normal, t)

    def transform(self, t: Transformation):
        # non-uniform scale is approximated with the smallest factor
        self.center = self.center + t.translation
        self.radius *= min(t.scale.x, t.scale.y, t.scale.z)

    def intersects_box(self, box: BoundingBox) -> bool:
        # only the surface is traced: cells strictly inside the ball do not count
        if box.distance_to_point(self.center) > self.radius:
            return False
        farthest = max(corner.distance_to(self.center) for corner in box.corners())
        return farthest >= self.radius

    def bounding_box(self) -> BoundingBox:
        r = Vec3(self.radius, self.radius, self.radius)
        return BoundingBox.from_points(self.center - r, self.center + r)

    def __repr__(self):
        return f"Sphere(center={self.center}, radius={self.radius})"


class Triangle(SceneObject):
    def __init__(self, v0: Vec3, v1: Vec3, v2: Vec3, material: Material = None):
        super().__init__(material)
        self.set_vertices(v0, v1, v2)

    def set_vertices(self, v0: Vec3, v1: Vec3, v2: Vec3):
        self.v0 = v0
        self.v1 = v1
        self.v2 = v2
        # cached for the point-in-triangle test
        self.e01 = v1 - v0
        self.e12 = v2 - v1
        self.e20 = v0 - v2
        self.normal = self.e01.cross(v2 - v0).normalize()
        scale = max(abs(c) for v in (v0, v1, v2) for c in v)
        self.plane_tolerance = PLANE_TOLERANCE * max(1.0, scale)

    def vertices(self):
        return self.v0, self.v1, self.v2

    def normal_at(self, point: Vec3) -> Vec3:
        return self.normal

    def transform(self, t: Transformation):
        m = t.matrix()
        self.set_vertices(apply_affine(m, self.v0),
                          apply_affine(m, self.v1),
                          apply_affine(m, self.v2))

    def contains_point(self, point: Vec3) -> bool:
        n = self.normal
        if abs((point - self.v0).dot(n)) > self.plane_tolerance:
            return False
        if self.e01.cross(point - self.v0).dot(n) < 0:
            return False
        if self.e12.cross(point - self.v1).dot(n) < 0:
            return False
        if self.e20.cross(point - self.v2).dot(n) < 0:
            return False
        return True

    def check_intersection(self, ray: Ray, max_distance: float) -> Optional[Intersection]:
        n = self.normal
        denom = n.dot(ray.direction)
        if abs(denom) < PARALLEL_TOLERANCE:
            return None

        t = (self.v0 - ray.origin).dot(n) / denom
        if not (0.0 <= t < max_distance):
            return None

        point = ray.point_at_parameter(t)
        if not self.contains_point(point):
            return None
        return Intersection(point, -n if denom > 0 else n, t)

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        return self.check_intersection(ray, math.inf)

    def intersects_box(self, box: BoundingBox) -> bool:
        if box.contains(self.v0) or box.contains(self.v1) or box.contains(self.v2):
            return True

        if (box.segment_intersects(self.v0, self.v1) or
                box.segment_intersects(self.v1, self.v2) or
                box.segment_intersects(self.v2, self.v0)):
            return True

        # The triangle can still cut through the box without any vertex or
        # edge inside it; then one of the four space diagonals crosses it.
        lo, hi = box.min, box.max
        diagonals = (
            (lo, hi),
            (Vec3(hi.x, lo.y, lo.z), Vec3(lo.x, hi.y, hi.z)),
            (Vec3(lo.x, hi.y, lo.z), Vec3(hi.x, lo.y, hi.z)),
            (Vec3(lo.x, lo.y, hi.z), Vec3(hi.x, hi.y, lo.z)),
        )
        for start, end in diagonals:
            length = (end - start).length()
            if length == 0.0:
                continue
            if self.check_intersection(Ray(start, end - start), length) is not None:
                return True
        return False

    def bounding_box(self) -> BoundingBox:
        return BoundingBox.enclosing(self.vertices())

    def __repr__(self):
        return f"Triangle(v0={self.v0}, v1={self.v1}, v2={self.v2}, normal={self.normal})"


class TriangleSet(SceneObject):
    """
    Mesh of triangles sharing one material. It has no geometry of its
    own: every query below is answered by its triangles.
    """

    def __init__(self, material: Material = None):
        self._triangles: List[Triangle] = []
        self._box = None
        super().__init__(material)

    @property
    def material(self) -> Material:
        return self._material

    @material.setter
    def material(self, material: Material):
        self._material = material
        for tri in self._triangles:
            tri.material = material

    def add_triangle(self, p1: Vec3, p2: Vec3, p3: Vec3) -> Triangle:
        tri = Triangle(p1, p2, p3, self._material)
        self._triangles.append(tri)
        self._box = None
        return tri

    def children(self) -> List[Triangle]:
        return self._triangles

    def __len__(self):
        return len(self._triangles)

    def normal_at(self, point: Vec3) -> Optional[Vec3]:
        for tri in self._triangles:
            if tri.contains_point(point):
                return tri.normal_at(point)
        return None

    def intersect(self, ray: Ray) -> Optional[Intersection]:
        nearest = None
        nearest_distance = math.inf
        for tri in self._triangles:
            hit = tri.intersect(ray)
            if hit is None:
                continue
            distance = hit.point.distance_to(ray.origin)
            if nearest is None or distance < nearest_distance:
                nearest = hit
                nearest_distance = distance
        return nearest

    def transform(self, t: Transformation):
        for tri in self._triangles:
            tri.transform(t)
        self._box = None

    def intersects_box(self, box: BoundingBox) -> bool:
        return any(tri.intersects_box(box) for tri in self._triangles)

    def bounding_box(self) -> BoundingBox:
        if self._box is None:
            if not self._triangles:
                self._box = BoundingBox(0, 0, 0, 0, 0, 0)
            else:
                box = self._triangles[0].bounding_box()
                for tri in self._triangles[1:]:
                    box.extend(tri.bounding_box())
                self._box = box
        return self._box

    def __repr__(self):
        return f"TriangleSet({len(self._triangles)} triangles)"
