import math
from core.math import Vec3
from core.material import Material
from core.geometry import Sphere, TriangleSet
from core.light import PointLight
from core.camera import Camera
from core.scene import Scene
from core.transform import Transformation


class DemoSceneBuilder:
    """Built-in scene: a floor, three spheres and a small pyramid under two lights."""

    def __init__(self):
        self.floor_size = 8.0
        self.floor_height = -1.0
        self.sphere_radius = 1.0

    def build_scene(self) -> Scene:
        scene = Scene()
        materials = self._create_materials()

        self._create_floor(scene, materials)
        self._create_spheres(scene, materials)
        self._create_pyramid(scene, materials)
        self._create_lighting(scene)

        scene.camera = self.create_camera()
        return scene

    def create_camera(self) -> Camera:
        # slightly above the floor, tilted down towards the spheres
        return Camera(position=Vec3(0, 1.5, 9.0),
                      axis=Vec3(1, 0, 0),
                      angle=-0.12,
                      field_of_view=math.radians(50))

    def _create_materials(self) -> dict:
        return {
            'floor': Material(diffuse_color=Vec3(0.75, 0.75, 0.7),
                              specular_index=0.1,
                              reflection_index=0.2),
            'red': Material(diffuse_color=Vec3(0.85, 0.2, 0.15),
                            shininess=0.4),
            'mirror': Material(diffuse_color=Vec3(0.9, 0.9, 0.95),
                               specular_index=0.8,
                               reflection_index=0.8,
                               shininess=0.8),
            'glass': Material(diffuse_color=Vec3(0.85, 0.95, 0.9),
                              ambient_intensity=0.05,
                              transparency=0.8,
                              refraction_index=1.5,
                              shininess=0.9),
            'pyramid': Material(diffuse_color=Vec3(0.2, 0.4, 0.85)),
        }

    def _create_floor(self, scene: Scene, materials: dict):
        half = self.floor_size / 2
        y = self.floor_height
        floor = TriangleSet(materials['floor'])
        floor.add_triangle(Vec3(-half, y, -half), Vec3(-half, y, half), Vec3(half, y, half))
        floor.add_triangle(Vec3(-half, y, -half), Vec3(half, y, half), Vec3(half, y, -half))
        scene.add_object(floor)

    def _create_spheres(self, scene: Scene, materials: dict):
        r = self.sphere_radius
        y = self.floor_height + r
        scene.add_object(Sphere(Vec3(-2.3, y, -0.5), r, materials['red']))
        scene.add_object(Sphere(Vec3(0.0, y, -2.0), r, materials['mirror']))
        scene.add_object(Sphere(Vec3(2.2, y, 0.5), r, materials['glass']))

    def _create_pyramid(self, scene: Scene, materials: dict):
        # built around the origin, then moved in front of the mirror sphere
        apex = Vec3(0, 1.0, 0)
        base = [Vec3(-0.6, 0, 0.5), Vec3(0.6, 0, 0.5), Vec3(0, 0, -0.6)]
        pyramid = TriangleSet(materials['pyramid'])
        pyramid.add_triangle(base[0], base[1], apex)
        pyramid.add_triangle(base[1], base[2], apex)
        pyramid.add_triangle(base[2], base[0], apex)
        pyramid.add_triangle(base[0], base[2], base[1])
        pyramid.transform(Transformation(translation=Vec3(0.2, self.floor_height, 1.6),
                                         rotation_axis=Vec3(0, 1, 0),
                                         rotation_angle=math.radians(30)))
        scene.add_object(pyramid)

    def _create_lighting(self, scene: Scene):
        scene.add_light(PointLight(position=Vec3(-4, 6, 6), color=Vec3(0.9, 0.9, 0.85), radius=0.5))
        scene.add_light(PointLight(position=Vec3(5, 4, 2), color=Vec3(0.35, 0.35, 0.45), radius=0.5))
