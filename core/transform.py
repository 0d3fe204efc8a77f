import numpy as np
from scipy.spatial.transform import Rotation as Rot
from core.math import Vec3


def axis_angle_matrix(axis: Vec3, angle: float) -> np.ndarray:
    """3x3 rotation of ``angle`` radians about ``axis`` (identity for a null axis)."""
    unit = axis.normalize()
    if unit.length() == 0.0 or angle == 0.0:
        return np.eye(3)
    return Rot.from_rotvec(unit.to_np() * angle).as_matrix()


def matrix_to_axis_angle(matrix: np.ndarray):
    rotvec = Rot.from_matrix(matrix).as_rotvec()
    angle = float(np.linalg.norm(rotvec))
    if angle == 0.0:
        return Vec3(0, 0, 1), 0.0
    return Vec3.from_iterable(rotvec / angle), angle


def apply_affine(matrix: np.ndarray, p: Vec3) -> Vec3:
    m = matrix
    return Vec3(m[0, 0] * p.x + m[0, 1] * p.y + m[0, 2] * p.z + m[0, 3],
                m[1, 0] * p.x + m[1, 1] * p.y + m[1, 2] * p.z + m[1, 3],
                m[2, 0] * p.x + m[2, 1] * p.y + m[2, 2] * p.z + m[2, 3])


class Transformation:
    """
    Translation, axis-angle rotation and per-axis scale.
    The combined matrix scales first, then rotates, then translates.
    """

    def __init__(self,
                 translation: Vec3 = None,
                 rotation_axis: Vec3 = None,
                 rotation_angle: float = 0.0,
                 scale: Vec3 = None):
        self.translation = translation if translation is not None else Vec3(0, 0, 0)
        self.rotation_axis = rotation_axis if rotation_axis is not None else Vec3(0, 0, 1)
        self.rotation_angle = float(rotation_angle)
        self.scale = scale if scale is not None else Vec3(1, 1, 1)

    def rotation_matrix(self) -> np.ndarray:
        return axis_angle_matrix(self.rotation_axis, self.rotation_angle)

    def matrix(self) -> np.ndarray:
        m = np.eye(4)
        m[:3, :3] = self.rotation_matrix() @ np.diag([self.scale.x, self.scale.y, self.scale.z])
        m[:3, 3] = [self.translation.x, self.translation.y, self.translation.z]
        return m

    def apply_point(self, p: Vec3) -> Vec3:
        return apply_affine(self.matrix(), p)

    def __repr__(self):
        return (f"Transformation(translation={self.translation}, axis={self.rotation_axis}, "
                f"angle={self.rotation_angle:.3f}, scale={self.scale})")
