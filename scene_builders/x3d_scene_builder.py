"""
    Loader for the subset of X3D needed by the ray tracer:
    Viewpoint, PointLight / SpotLight, (nested) Transform and Group,
    Shape with Material (+ metadata) and Sphere / TriangleSet /
    IndexedTriangleSet / IndexedTriangleFanSet / IndexedTriangleStripSet.
    Anything that cannot be read raises SceneLoadError.
"""
import re
import sys
import xml.etree.ElementTree as xet
from typing import List, Optional

from core.math import Vec3
from core.material import Material
from core.geometry import SceneObject, Sphere, TriangleSet
from core.light import PointLight
from core.camera import Camera
from core.scene import Scene
from core.transform import Transformation
from core.errors import SceneLoadError

_SPLITTER = re.compile(r"[\s,]+")

# metadata names carried by <MetadataFloat> inside a <Material>
_METADATA_FIELDS = {
    "reflection": "reflection_index",
    "refraction": "refraction_index",
    "diffuse": "diffuse_index",
    "specular": "specular_index",
}


def parse_floats(text: str) -> List[float]:
    text = text.strip()
    if not text:
        return []
    return [float(part) for part in _SPLITTER.split(text) if part]


def get_floats(elem: xet.Element, name: str, default: str, count: int = None) -> List[float]:
    values = parse_floats(elem.get(name, default))
    if count is not None and len(values) != count:
        raise ValueError(f"<{elem.tag}> field '{name}' needs {count} numbers, got {len(values)}")
    return values


def get_vec3(elem: xet.Element, name: str, default: str) -> Vec3:
    return Vec3.from_iterable(get_floats(elem, name, default, 3))


def get_bool(elem: xet.Element, name: str, default: str = "true") -> bool:
    return elem.get(name, default).strip().lower() == "true"


class X3DSceneBuilder:
    def __init__(self):
        self._defs = {}

    def load(self, path: str) -> Scene:
        try:
            root = xet.parse(path).getroot()
        except (OSError, xet.ParseError) as e:
            raise SceneLoadError(f"Cannot read X3D file '{path}': {e}") from e
        return self._build(root, path)

    def loads(self, text: str) -> Scene:
        try:
            root = xet.fromstring(text)
        except xet.ParseError as e:
            raise SceneLoadError(f"Malformed X3D document: {e}") from e
        return self._build(root, "<string>")

    def _build(self, root: xet.Element, source: str) -> Scene:
        scene_elem = root if root.tag == "Scene" else root.find("Scene")
        if scene_elem is None:
            raise SceneLoadError(f"{source}: no <Scene> element found")
        self._defs = {}
        scene = Scene()
        try:
            self._parse_children(scene_elem, scene)
        except (ValueError, IndexError, KeyError) as e:
            raise SceneLoadError(f"{source}: {e}") from e
        return scene

    def _resolve(self, elem: xet.Element) -> xet.Element:
        use = elem.get("USE")
        if use is not None:
            if use not in self._defs:
                raise KeyError(f"USE of undefined node '{use}'")
            return self._defs[use]
        name = elem.get("DEF")
        if name is not None:
            self._defs[name] = elem
        return elem

    def _parse_children(self, elem: xet.Element, scene: Scene) -> list:
        items = []
        for child in elem:
            items.extend(self._parse_node(child, scene))
        return items

    def _parse_node(self, elem: xet.Element, scene: Scene) -> list:
        """Parse one node; returns what it created so enclosing transforms can move it."""
        elem = self._resolve(elem)
        tag = elem.tag
        if tag == "Viewpoint":
            scene.camera = self._parse_viewpoint(elem)
            return [scene.camera]
        if tag in ("PointLight", "SpotLight"):
            light = self._parse_light(elem)
            if light is None:
                return []
            scene.add_light(light)
            return [light]
        if tag == "DirectionalLight":
            print("Warning: DirectionalLight is not supported, ignoring it", file=sys.stderr)
            return []
        if tag == "Shape":
            obj = self._parse_shape(elem)
            if obj is None:
                return []
            scene.add_object(obj)
            return [obj]
        if tag == "Transform":
            transform = self._parse_transform(elem)
            items = self._parse_children(elem, scene)
            for item in items:
                _apply_transform(item, transform)
            return items
        if tag == "Group":
            return self._parse_children(elem, scene)
        return []

    def _parse_viewpoint(self, elem: xet.Element) -> Camera:
        position = get_vec3(elem, "position", "0 0 10")
        ax, ay, az, angle = get_floats(elem, "orientation", "0 0 1 0", 4)
        fov = get_floats(elem, "fieldOfView", "0.785398", 1)[0]
        return Camera(position, Vec3(ax, ay, az), angle, fov)

    def _parse_light(self, elem: xet.Element) -> Optional[PointLight]:
        if not get_bool(elem, "on"):
            return None
        return PointLight(position=get_vec3(elem, "location", "0 0 0"),
                          color=get_vec3(elem, "color", "1 1 1"),
                          radius=get_floats(elem, "radio", "1", 1)[0],
                          attenuation=get_floats(elem, "attenuation", "1 0 0", 3))

    def _parse_transform(self, elem: xet.Element) -> Transformation:
        ax, ay, az, angle = get_floats(elem, "rotation", "0 0 1 0", 4)
        return Transformation(translation=get_vec3(elem, "translation", "0 0 0"),
                              rotation_axis=Vec3(ax, ay, az),
                              rotation_angle=angle,
                              scale=get_vec3(elem, "scale", "1 1 1"))

    def _parse_shape(self, elem: xet.Element) -> Optional[SceneObject]:
        shape = None
        for child in elem:
            child = self._resolve(child)
            if child.tag == "Appearance":
                continue
            if child.tag == "Sphere":
                shape = Sphere(radius=get_floats(child, "radius", "1", 1)[0])
            elif child.tag == "TriangleSet":
                shape = self._parse_triangle_set(child)
            elif child.tag == "IndexedTriangleSet":
                shape = self._parse_indexed(child, _triangles)
            elif child.tag == "IndexedTriangleFanSet":
                shape = self._parse_indexed(child, _fans)
            elif child.tag == "IndexedTriangleStripSet":
                shape = self._parse_indexed(child, _strips)
            else:
                print(f"Unsupported shape geometry: {child.tag}", file=sys.stderr)
        if shape is None:
            return None

        appearance = elem.find("Appearance")
        if appearance is not None:
            appearance = self._resolve(appearance)
            material = appearance.find("Material")
            if material is not None:
                shape.material.copy_from(self._parse_material(self._resolve(material)))
        return shape

    def _coordinates(self, elem: xet.Element) -> List[Vec3]:
        coord = elem.find("Coordinate")
        if coord is None:
            raise ValueError(f"<{elem.tag}> has no <Coordinate> child")
        coord = self._resolve(coord)
        values = get_floats(coord, "point", "")
        if len(values) % 3:
            raise ValueError("<Coordinate> point count is not a multiple of 3")
        return [Vec3(*values[i:i + 3]) for i in range(0, len(values), 3)]

    def _parse_triangle_set(self, elem: xet.Element) -> TriangleSet:
        points = self._coordinates(elem)
        mesh = TriangleSet()
        for i in range(0, len(points) - 2, 3):
            mesh.add_triangle(points[i], points[i + 1], points[i + 2])
        return mesh

    def _parse_indexed(self, elem: xet.Element, triangulate) -> TriangleSet:
        points = self._coordinates(elem)
        indexes = [int(v) for v in get_floats(elem, "index", "")]
        mesh = TriangleSet()
        for a, b, c in triangulate(indexes):
            for i in (a, b, c):
                if not 0 <= i < len(points):
                    raise IndexError(f"<{elem.tag}> index {i} out of range ({len(points)} points)")
            mesh.add_triangle(points[a], points[b], points[c])
        return mesh

    def _parse_material(self, elem: xet.Element) -> Material:
        material = Material(diffuse_color=get_vec3(elem, "diffuseColor", "0.8 0.8 0.8"),
                            specular_color=get_vec3(elem, "specularColor", "0 0 0"),
                            ambient_intensity=get_floats(elem, "ambientIntensity", "0.2", 1)[0],
                            transparency=get_floats(elem, "transparency", "0", 1)[0],
                            shininess=get_floats(elem, "shininess", "0.2", 1)[0])
        for meta in elem.iter("MetadataFloat"):
            field = _METADATA_FIELDS.get(meta.get("name", ""))
            if field is not None:
                setattr(material, field, get_floats(meta, "value", "0")[0])
        return material


def _apply_transform(item, transform: Transformation):
    if isinstance(item, (SceneObject, Camera)):
        item.transform(transform)
    elif isinstance(item, PointLight):
        item.transform(transform.matrix())


def _runs(indexes: List[int]):
    run = []
    for i in indexes:
        if i == -1:
            if run:
                yield run
            run = []
        else:
            run.append(i)
    if run:
        yield run


def _triangles(indexes: List[int]):
    for i in range(0, len(indexes) - 2, 3):
        yield indexes[i], indexes[i + 1], indexes[i + 2]


def _fans(indexes: List[int]):
    for run in _runs(indexes):
        for i in range(1, len(run) - 1):
            yield run[0], run[i], run[i + 1]


def _strips(indexes: List[int]):
    for run in _runs(indexes):
        for i in range(len(run) - 2):
            yield run[i], run[i + 1], run[i + 2]
