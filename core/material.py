from core.math import Vec3


class Material:
    def __init__(self,
                 diffuse_color: Vec3 = None,
                 specular_color: Vec3 = None,
                 diffuse_index=1.0,
                 specular_index=0.5,
                 ambient_intensity=0.2,
                 transparency=0.0,
                 refraction_index=0.0,
                 reflection_index=0.0,
                 shininess=0.2):
        """
        diffuse_color: color reflected when a ray hits the surface
        specular_color: color of the specular highlight
        diffuse_index: weight of the diffuse (Lambert) term
        specular_index: weight of the specular (Phong) term
        ambient_intensity: fraction of the diffuse color shown without any light
        transparency: weight of the refracted contribution (0 = opaque)
        refraction_index: index of refraction of the medium inside the object
        reflection_index: weight of the mirrored contribution
        shininess: Phong exponent divided by 128
        """
        self.diffuse_color = diffuse_color if diffuse_color is not None else Vec3(0.8, 0.8, 0.8)
        self.specular_color = specular_color if specular_color is not None else Vec3(1, 1, 1)
        self.diffuse_index = float(diffuse_index)
        self.specular_index = float(specular_index)
        self.ambient_intensity = float(ambient_intensity)
        self.transparency = float(transparency)
        self.refraction_index = float(refraction_index)
        self.reflection_index = float(reflection_index)
        self.shininess = float(shininess)

    def copy_from(self, other: "Material"):
        """Overwrite every attribute in place, keeping shared references valid."""
        self.diffuse_color = other.diffuse_color
        self.specular_color = other.specular_color
        self.diffuse_index = other.diffuse_index
        self.specular_index = other.specular_index
        self.ambient_intensity = other.ambient_intensity
        self.transparency = other.transparency
        self.refraction_index = other.refraction_index
        self.reflection_index = other.reflection_index
        self.shininess = other.shininess

    def __repr__(self):
        return (f"Material(diffuse_color={self.diffuse_color}, specular_color={self.specular_color}, "
                f"diffuse_index={self.diffuse_index}, specular_index={self.specular_index}, "
                f"ambient_intensity={self.ambient_intensity}, transparency={self.transparency}, "
                f"refraction_index={self.refraction_index}, reflection_index={self.reflection_index}, "
                f"shininess={self.shininess})")


class Intersection:
    """Where a ray meets a surface. The normal faces the side the ray came from."""

    __slots__ = ("point", "normal", "distance")

    def __init__(self, point: Vec3, normal: Vec3, distance: float):
        self.point = point
        self.normal = normal
        self.distance = distance

    def __repr__(self):
        return f"Intersection(point={self.point}, normal={self.normal}, distance={self.distance:.6f})"
