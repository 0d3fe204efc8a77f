"""Tests for the octree and for octree vs linear scan agreement."""

import numpy as np
import pytest

from core.math import Vec3, Ray
from core.geometry import Sphere
from core.scene import Scene, OctreeScene
from core.octree import Octree, MAX_OCTREE_DEPTH
from core.errors import OctreeStructureError

from conftest import make_random_scene


def build_octree(scene):
    leaves = scene.all_leaf_objects()
    bounds = [obj.bounding_box() for obj in leaves]
    return Octree(leaves, bounds, scene.bounds().outset(1e-9))


class TestOctreeStructure:
    def test_small_scene_is_a_single_terminal_root(self, unit_sphere_scene):
        tree = build_octree(unit_sphere_scene)
        assert len(tree.nodes) == 1
        assert tree.root.is_terminal
        assert tree.node_objects(0) == unit_sphere_scene.all_leaf_objects()

    def test_large_scene_splits(self, random_scene):
        tree = build_octree(random_scene)
        assert not tree.root.is_terminal
        assert len(tree.nodes) > 1

    def test_nodes_are_terminal_xor_branching(self, random_scene):
        tree = build_octree(random_scene)
        for node in tree.nodes:
            assert (node.objects is None) != (node.children is None)
            assert node.depth <= MAX_OCTREE_DEPTH

    def test_children_point_back_to_parent(self, random_scene):
        tree = build_octree(random_scene)
        for index, node in enumerate(tree.nodes):
            if node.is_terminal:
                continue
            for child in node.children:
                if child is not None:
                    assert tree.nodes[child].parent == index
                    assert tree.nodes[child].depth == node.depth + 1

    def test_terminal_nodes_hold_every_touching_object(self, random_scene):
        tree = build_octree(random_scene)
        leaves = random_scene.all_leaf_objects()
        for index in tree.terminal_nodes():
            node = tree.nodes[index]
            held = set(id(obj) for obj in tree.node_objects(index))
            for obj in leaves:
                if obj.bounding_box().intersects(node.box) and obj.intersects_box(node.box):
                    assert id(obj) in held

    def test_node_objects_of_branching_node_raises(self, random_scene):
        tree = build_octree(random_scene)
        with pytest.raises(OctreeStructureError):
            tree.node_objects(0)


class TestFindNode:
    def test_points_inside_root_map_to_containing_terminal(self, random_scene):
        tree = build_octree(random_scene)
        root = tree.root.box
        rng = np.random.default_rng(5)
        for _ in range(500):
            pos = Vec3(rng.uniform(root.xmin, root.xmax),
                       rng.uniform(root.ymin, root.ymax),
                       rng.uniform(root.zmin, root.zmax))
            index = tree.find_node(pos)
            node = tree.nodes[index]
            assert node.is_terminal
            assert node.box.contains(pos)

    def test_root_corners_and_center(self, random_scene):
        tree = build_octree(random_scene)
        root = tree.root.box
        for pos in root.corners() + [root.center()]:
            assert tree.nodes[tree.find_node(pos)].box.contains(pos)

    def test_outside_root_is_none(self, random_scene):
        tree = build_octree(random_scene)
        assert tree.find_node(Vec3(1000, 0, 0)) is None

    def test_first_node_of_a_missing_ray_is_none(self, random_scene):
        tree = build_octree(random_scene)
        assert tree.find_first_node(Ray(Vec3(1000, 1000, 1000), Vec3(1, 0, 0))) is None


def random_rays(rng, count, spread):
    rays = []
    for _ in range(count):
        origin = Vec3.from_iterable(rng.uniform(-spread, spread, size=3))
        target = Vec3.from_iterable(rng.uniform(-5, 5, size=3))
        rays.append(Ray(origin, target - origin))
    return rays


class TestOctreeEquivalence:
    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_same_nearest_hit_as_linear_scan(self, seed):
        scene = make_random_scene(seed, spheres=40, triangles=40)
        indexed = OctreeScene(scene)
        rng = np.random.default_rng(100 + seed)
        # origins both outside and inside the root box
        for ray in random_rays(rng, 150, 15) + random_rays(rng, 150, 4):
            expected = scene.first_intersection(ray)
            actual = indexed.first_intersection(ray)
            if expected is None:
                assert actual is None
                continue
            assert actual is not None
            assert actual.obj is expected.obj
            assert actual.intersection.point.epsilon_equals(expected.intersection.point, 1e-9)

    def test_axis_aligned_rays(self, random_scene):
        indexed = OctreeScene(random_scene)
        for axis in (Vec3(1, 0, 0), Vec3(0, 1, 0), Vec3(0, 0, 1)):
            for sign in (1, -1):
                for offset in np.linspace(-4.5, 4.5, 7):
                    origin = axis * (-20 * sign) + Vec3(offset, offset * 0.7, -offset * 0.3)
                    ray = Ray(origin, axis * sign)
                    expected = random_scene.first_intersection(ray)
                    actual = indexed.first_intersection(ray)
                    assert (expected is None) == (actual is None)
                    if expected is not None:
                        assert actual.obj is expected.obj

    def test_empty_scene(self):
        indexed = OctreeScene(Scene())
        assert indexed.octree is None
        assert indexed.first_intersection(Ray(Vec3(0, 0, 0), Vec3(0, 0, -1))) is None


def assert_same_hits(scene, rays):
    indexed = OctreeScene(scene)
    for ray in rays:
        expected = scene.first_intersection(ray)
        actual = indexed.first_intersection(ray)
        if expected is None:
            assert actual is None
            continue
        assert actual is not None
        assert actual.obj is expected.obj
        assert actual.intersection.point.epsilon_equals(expected.intersection.point, 1e-9)


def nested_spheres_scene(count=9):
    scene = Scene()
    for i in range(count):
        scene.add_object(Sphere(Vec3(0, 0, 0), 1.0 + 0.1 * i))
    return scene


class TestCrowdedLayouts:
    def test_nested_spheres_build_a_small_tree(self):
        tree = build_octree(nested_spheres_scene())
        assert not tree.root.is_terminal
        assert len(tree.nodes) < 10000

    def test_cells_near_the_center_skip_outer_shells(self):
        scene = nested_spheres_scene()
        outer = scene.all_leaf_objects()[-1]
        tree = build_octree(scene)
        held = tree.node_objects(tree.find_node(Vec3(0.01, 0.01, 0.01)))
        assert len(held) < 9
        assert all(obj is not outer for obj in held)

    def test_nested_spheres_match_linear_scan(self):
        rng = np.random.default_rng(21)
        rays = random_rays(rng, 100, 6)
        # from the common center every shell is hit from inside
        rays += [Ray(Vec3(0, 0, 0), Vec3.from_iterable(rng.normal(size=3))) for _ in range(50)]
        assert_same_hits(nested_spheres_scene(), rays)

    def test_tight_cluster_splits_deeply(self):
        rng = np.random.default_rng(8)
        scene = Scene()
        for _ in range(20):
            scene.add_object(Sphere(Vec3.from_iterable(rng.uniform(-0.25, 0.25, size=3)), 0.2))
        tree = build_octree(scene)
        assert max(node.depth for node in tree.nodes) >= 2
        assert_same_hits(scene, random_rays(np.random.default_rng(9), 200, 3))


def corner_spheres_scene():
    scene = Scene()
    for x in (-5, 5):
        for y in (-5, 5):
            for z in (-5, 5):
                scene.add_object(Sphere(Vec3(x, y, z), 1.0))
    return scene


class TestBoundaryRays:
    def test_ray_just_below_a_split_plane_stays_below(self):
        # the ray creeps towards y = 0 (the root split) but only reaches it
        # far beyond the target, whose top sits just above the ray
        scene = corner_spheres_scene()
        target = Sphere(Vec3(2.5, -1, 0.5), 1 - 5e-11)
        scene.add_object(target)
        ray = Ray(Vec3(-20, -1e-10, 0.5), Vec3(1, 1e-13, 0))

        assert scene.first_intersection(ray).obj is target
        hit = OctreeScene(scene).first_intersection(ray)
        assert hit is not None
        assert hit.obj is target

    def test_step_crosses_only_the_exit_face(self):
        scene = corner_spheres_scene()
        scene.add_object(Sphere(Vec3(2.5, -1, 0.5), 1.0))
        tree = build_octree(scene)
        ray = Ray(Vec3(-20, -1e-10, 0.5), Vec3(1, 1e-13, 0))
        first = tree.find_first_node(ray)
        assert tree.nodes[first].box.ymax <= 0
        second = tree.find_next_node(first, ray)
        assert tree.nodes[second].box.xmin >= 0
        assert tree.nodes[second].box.ymax <= 0

    @pytest.mark.parametrize("axis", [0, 1, 2])
    def test_rays_grazing_split_planes(self, axis):
        scene = make_random_scene(4, spheres=40, triangles=0)
        tree = build_octree(scene)
        planes = sorted(set(node.mid[axis] for node in tree.nodes if not node.is_terminal))
        assert planes

        along = (axis + 1) % 3
        across = (axis + 2) % 3
        rays = []
        for plane in planes[:6]:
            for offset in (0.0, 1e-12, -1e-12, 1e-10, -1e-10, 1e-7, -1e-7):
                for drift in (0.0, 1e-13, -1e-13):
                    for lateral in (-2.5, 0.0, 2.5):
                        for sign in (1.0, -1.0):
                            start, direction = [0.0] * 3, [0.0] * 3
                            start[axis] = plane + offset
                            start[along] = -20.0 * sign
                            start[across] = lateral
                            direction[axis] = drift
                            direction[along] = sign
                            rays.append(Ray(Vec3(*start), Vec3(*direction)))
        assert_same_hits(scene, rays)

    def test_diagonal_rays_through_cell_corners(self):
        scene = make_random_scene(6, spheres=40, triangles=0)
        tree = build_octree(scene)
        corners = [node.mid for node in tree.nodes if not node.is_terminal]
        rays = []
        for corner in corners:
            for direction in (Vec3(1, 1, 1), Vec3(1, -1, 0), Vec3(0, 1, -1), Vec3(-1, -1, 1)):
                rays.append(Ray(corner - direction * 30, direction))
        assert_same_hits(scene, rays)
