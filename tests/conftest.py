"""Pytest configuration and shared fixtures."""

import pytest
import sys
from pathlib import Path

import numpy as np

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from core.math import Vec3
from core.material import Material
from core.geometry import Sphere, Triangle, TriangleSet
from core.light import PointLight
from core.camera import Camera
from core.scene import Scene


def make_random_scene(seed: int, spheres: int = 25, triangles: int = 25) -> Scene:
    """Spheres and loose triangles scattered in a 10x10x10 cube around the origin."""
    rng = np.random.default_rng(seed)
    scene = Scene()
    for _ in range(spheres):
        center = Vec3.from_iterable(rng.uniform(-5, 5, size=3))
        scene.add_object(Sphere(center, rng.uniform(0.2, 1.0)))
    mesh = TriangleSet()
    for _ in range(triangles):
        base = Vec3.from_iterable(rng.uniform(-5, 5, size=3))
        mesh.add_triangle(base,
                          base + Vec3.from_iterable(rng.uniform(-1.5, 1.5, size=3)),
                          base + Vec3.from_iterable(rng.uniform(-1.5, 1.5, size=3)))
    scene.add_object(mesh)
    scene.add_light(PointLight(Vec3(0, 10, 0)))
    return scene


@pytest.fixture
def unit_sphere_scene():
    """One unit sphere at the origin, a light above it, camera on +Z looking down -Z."""
    scene = Scene(camera=Camera(Vec3(0, 0, 10)))
    scene.add_object(Sphere(Vec3(0, 0, 0), 1.0, Material()))
    scene.add_light(PointLight(Vec3(0, 10, 0)))
    return scene


@pytest.fixture
def unit_triangle():
    return Triangle(Vec3(0, 0, 0), Vec3(1, 0, 0), Vec3(0, 1, 0))


@pytest.fixture
def random_scene():
    return make_random_scene(7)


@pytest.fixture
def temp_output_dir(tmp_path):
    """Provide a temporary directory for test outputs."""
    out = tmp_path / "outputs"
    out.mkdir()
    return out
