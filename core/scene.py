import math
from typing import Iterable, List, NamedTuple, Optional
from dataclasses import dataclass
from core.math import Ray
from core.bounds import BoundingBox
from core.material import Intersection
from core.geometry import SceneObject
from core.light import PointLight
from core.camera import Camera
from core.octree import Octree, TOLERANCE


@dataclass
class RenderSettings:
    width: int = 400
    height: int = 300
    antialiasing: int = 1
    shadow_samples: int = 1
    workers: int = 1
    seed: int = 0
    use_octree: bool = True
    apply_attenuation: bool = False

    def __post_init__(self):
        for name in ("width", "height", "antialiasing", "shadow_samples", "workers"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        # the sub-pixel grid is centred on the pixel, so it needs an odd side
        if self.antialiasing % 2 == 0:
            self.antialiasing += 1


class SceneHit(NamedTuple):
    obj: SceneObject
    intersection: Intersection
    distance: float


class Scene:
    """
    Objects, lights and the camera. Populate it, then treat it as read-only
    while rendering.
    """

    def __init__(self,
                 objects: Optional[List[SceneObject]] = None,
                 lights: Optional[List[PointLight]] = None,
                 camera: Optional[Camera] = None):
        self.objects: List[SceneObject] = objects if objects is not None else []
        self.lights: List[PointLight] = lights if lights is not None else []
        self.camera = camera if camera is not None else Camera()
        self._leaves = None

    def add_object(self, obj: SceneObject):
        self.objects.append(obj)
        self._leaves = None

    def add_light(self, light: PointLight):
        self.lights.append(light)

    def all_leaf_objects(self) -> List[SceneObject]:
        """Objects with no children, found by flattening every composite."""
        if self._leaves is None:
            leaves, seen = [], set()
            for obj in self.objects:
                _gather_leaves(obj, leaves, seen)
            self._leaves = leaves
        return self._leaves

    def bounds(self) -> Optional[BoundingBox]:
        leaves = self.all_leaf_objects()
        if not leaves:
            return None
        box = leaves[0].bounding_box().copy()
        for obj in leaves[1:]:
            box.extend(obj.bounding_box())
        return box

    def first_intersection(self, ray: Ray,
                           objects: Optional[Iterable[SceneObject]] = None) -> Optional[SceneHit]:
        """
        Nearest object hit by the ray, by linear scan over ``objects``
        (the scene's leaf objects when omitted). Distance is measured from
        the ray origin to the hit point; the first of equally near hits wins.
        """
        if objects is None:
            objects = self.all_leaf_objects()
        nearest = None
        nearest_distance = math.inf
        for obj in objects:
            hit = obj.intersect(ray)
            if hit is None:
                continue
            distance = hit.point.distance_to(ray.origin)
            if nearest is None or distance < nearest_distance:
                nearest = SceneHit(obj, hit, distance)
                nearest_distance = distance
        return nearest

    def describe(self) -> str:
        lines = ["SCENE", "Objects:"]
        lines += [f"  {obj!r}" for obj in self.objects]
        lines.append("Lights:")
        lines += [f"  {light!r}" for light in self.lights]
        lines.append(repr(self.camera))
        return "\n".join(lines)


def _gather_leaves(obj: SceneObject, leaves: list, seen: set):
    children = obj.children()
    if children is None:
        if id(obj) not in seen:
            seen.add(id(obj))
            leaves.append(obj)
        return
    for child in children:
        _gather_leaves(child, leaves, seen)


class OctreeScene(Scene):
    """Scene whose nearest-hit queries walk an octree built over its leaves."""

    def __init__(self, scene: Scene):
        super().__init__(scene.objects, scene.lights, scene.camera)
        self.octree = None
        self._build_tree()

    def _build_tree(self):
        leaves = self.all_leaf_objects()
        if not leaves:
            return
        bounds = [obj.bounding_box() for obj in leaves]
        root_box = bounds[0].copy()
        for box in bounds[1:]:
            root_box.extend(box)
        self.octree = Octree(leaves, bounds, root_box.outset(TOLERANCE))

    def first_intersection(self, ray: Ray,
                           objects: Optional[Iterable[SceneObject]] = None) -> Optional[SceneHit]:
        if objects is not None:
            return super().first_intersection(ray, objects)
        if self.octree is None:
            return None

        best = None
        node = self.octree.find_first_node(ray)
        while node is not None:
            hit = super().first_intersection(ray, self.octree.node_objects(node))
            if hit is not None and (best is None or hit.distance < best.distance):
                best = hit
            # a hit beyond this cell may still lose to an object further on
            if best is not None and best.distance <= self.octree.exit_distance(node, ray) + TOLERANCE:
                return best
            node = self.octree.find_next_node(node, ray)
        return best
