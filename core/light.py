import numpy as np
from core.math import Vec3
from core.transform import apply_affine


class PointLight:
    def __init__(self,
                 position: Vec3 = None,
                 color: Vec3 = None,
                 radius: float = 1.0,
                 attenuation=(1.0, 0.0, 0.0)):
        """
        position: world position of the light
        color: emitted color
        radius: size of the area the light is jittered over for soft shadows
        attenuation: (constant, linear, quadratic) distance falloff coefficients
        """
        self.position = position if position is not None else Vec3(0, 10, 0)
        self.color = color if color is not None else Vec3(1, 1, 1)
        self.radius = float(radius)
        self.attenuation = tuple(float(a) for a in attenuation)

    def attenuation_factor(self, point: Vec3) -> float:
        r = self.position.distance_to(point)
        a0, a1, a2 = self.attenuation
        return 1.0 / max(a0 + a1 * r + a2 * r * r, 1.0)

    def attenuated_color_at(self, point: Vec3) -> Vec3:
        return self.color * self.attenuation_factor(point)

    def color_at(self, point: Vec3) -> Vec3:
        # the falloff is not part of the shading model unless requested
        # explicitly, see attenuated_color_at
        return Vec3(self.color.x, self.color.y, self.color.z)

    def sample_position(self, rng: np.random.Generator) -> Vec3:
        """Uniform jitter of the position inside a cube of half-size ``radius``."""
        jitter = rng.uniform(-self.radius, self.radius, size=3)
        return self.position + Vec3(jitter[0], jitter[1], jitter[2])

    def transform(self, matrix: np.ndarray):
        self.position = apply_affine(matrix, self.position)

    def __repr__(self):
        return f"PointLight(position={self.position}, color={self.color}, radius={self.radius})"
