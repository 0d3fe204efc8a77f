import math
import numpy as np
from core.math import Vec3, Ray
from core.transform import Transformation, axis_angle_matrix, matrix_to_axis_angle, apply_affine


class Camera:
    """
    Pinhole camera looking down its local -Z axis.

    The orientation is an axis plus a rotation angle (radians) about it;
    field_of_view is the full viewing angle across the smaller image side.
    The rotation matrix and the combined camera-to-world matrix are
    rebuilt whenever position or orientation is assigned.
    """

    def __init__(self,
                 position: Vec3 = None,
                 axis: Vec3 = None,
                 angle: float = 0.0,
                 field_of_view: float = math.pi / 4):
        self._position = position if position is not None else Vec3(0, 0, 10)
        self._axis = axis if axis is not None else Vec3(0, 0, -1)
        self._angle = float(angle)
        self.field_of_view = float(field_of_view)
        self._update_matrices()

    def _update_matrices(self):
        self.rotation_matrix = axis_angle_matrix(self._axis, self._angle)
        m = np.eye(4)
        m[:3, :3] = self.rotation_matrix
        m[:3, 3] = [self._position.x, self._position.y, self._position.z]
        self.transformation_matrix = m

    @property
    def position(self) -> Vec3:
        return self._position

    @position.setter
    def position(self, value: Vec3):
        self._position = value
        self._update_matrices()

    @property
    def orientation(self):
        return self._axis, self._angle

    @orientation.setter
    def orientation(self, value):
        self._axis, angle = value
        self._angle = float(angle)
        self._update_matrices()

    def image_plane_distance(self, width: int, height: int) -> float:
        return min(width, height) / (2 * math.tan(self.field_of_view / 2))

    def _world_ray(self, x: float, y: float, z: float) -> Ray:
        r = self.rotation_matrix
        direction = Vec3(r[0, 0] * x + r[0, 1] * y + r[0, 2] * z,
                         r[1, 0] * x + r[1, 1] * y + r[1, 2] * z,
                         r[2, 0] * x + r[2, 1] * y + r[2, 2] * z)
        return Ray(self._position, direction)

    def primary_ray(self, row: int, col: int, width: int, height: int) -> Ray:
        """Ray through the top-left corner of pixel (row, col)."""
        x = col - width / 2
        y = row - height / 2
        z = self.image_plane_distance(width, height)
        return self._world_ray(x, -y, -z)

    def jittered_ray(self, row: int, col: int, m: int, n: int, factor: int,
                     width: int, height: int, rng: np.random.Generator) -> Ray:
        """
        Ray through a random point of cell (m, n) of a factor x factor grid
        laid over pixel (row, col); m and n run from -factor//2 to factor//2.
        """
        x = factor * (col - width / 2) + rng.uniform(n, n + 1)
        y = factor * (row - height / 2) + rng.uniform(m, m + 1)
        z = factor * self.image_plane_distance(width, height)
        return self._world_ray(x, -y, -z)

    def transform(self, t: Transformation):
        self._position = apply_affine(t.matrix(), self._position)
        composed = t.rotation_matrix() @ axis_angle_matrix(self._axis, self._angle)
        self._axis, self._angle = matrix_to_axis_angle(composed)
        self._update_matrices()

    def __repr__(self):
        return (f"Camera(position={self._position}, axis={self._axis}, angle={self._angle:.3f}, "
                f"field_of_view={self.field_of_view:.3f})")
