"""
Octree over the leaf objects of a scene.

Nodes live in a flat list (an arena) and refer to each other by index.
A node is either terminal (holds the objects touching its box) or
branching (holds up to 8 children); never both.
"""
from typing import List, Optional, Sequence
from core.math import Vec3, Ray
from core.bounds import BoundingBox
from core.geometry import SceneObject
from core.errors import OctreeStructureError
from core import kernels

MAX_OBJECTS_PER_NODE = 8
MAX_OCTREE_DEPTH = 16
# outset of the root box and nudge used to step from one cell into the next
TOLERANCE = 1e-9


class OctreeNode:
    __slots__ = ("box", "parent", "depth", "children", "objects", "mid")

    def __init__(self, box: BoundingBox, parent: Optional[int], depth: int):
        self.box = box
        self.parent = parent
        self.depth = depth
        # child slot = 4*high_x + 2*high_y + high_z, None where the axis is not split
        self.children: Optional[List[Optional[int]]] = None
        self.objects: Optional[List[SceneObject]] = None
        self.mid = box.center()

    @property
    def is_terminal(self) -> bool:
        return self.children is None

    def __repr__(self):
        kind = f"{len(self.objects)} objects" if self.is_terminal else "branching"
        return f"OctreeNode(depth={self.depth}, {kind}, box={self.box})"


class Octree:
    def __init__(self, objects: Sequence[SceneObject], bounds: Sequence[BoundingBox],
                 root_box: BoundingBox):
        self.nodes: List[OctreeNode] = []
        self._build(root_box, list(objects), list(bounds), None, 0)

    @property
    def root(self) -> OctreeNode:
        return self.nodes[0]

    def _build(self, box: BoundingBox, objects, bounds, parent, depth) -> int:
        index = len(self.nodes)
        node = OctreeNode(box, parent, depth)
        self.nodes.append(node)

        inside = [i for i, obj in enumerate(objects)
                  if bounds[i].intersects(box) and obj.intersects_box(box)]
        node.objects = [objects[i] for i in inside]
        obj_bounds = [bounds[i] for i in inside]

        if len(node.objects) <= MAX_OBJECTS_PER_NODE or depth >= MAX_OCTREE_DEPTH:
            return index

        mid = node.mid
        split = (box.xmin < mid.x < box.xmax,
                 box.ymin < mid.y < box.ymax,
                 box.zmin < mid.z < box.zmax)
        if not any(split):
            return index

        xs = ((box.xmin, mid.x), (mid.x, box.xmax)) if split[0] else ((box.xmin, box.xmax),)
        ys = ((box.ymin, mid.y), (mid.y, box.ymax)) if split[1] else ((box.ymin, box.ymax),)
        zs = ((box.zmin, mid.z), (mid.z, box.zmax)) if split[2] else ((box.zmin, box.zmax),)

        children: List[Optional[int]] = [None] * 8
        for hx, (x0, x1) in enumerate(xs):
            for hy, (y0, y1) in enumerate(ys):
                for hz, (z0, z1) in enumerate(zs):
                    child_box = BoundingBox(x0, x1, y0, y1, z0, z1)
                    children[4 * hx + 2 * hy + hz] = self._build(
                        child_box, node.objects, obj_bounds, index, depth + 1)

        node.children = children
        node.objects = None
        return index

    def node_objects(self, index: int) -> List[SceneObject]:
        node = self.nodes[index]
        if not node.is_terminal:
            raise OctreeStructureError(
                f"node_objects called on branching octree node {index}")
        return node.objects

    def terminal_nodes(self):
        for index, node in enumerate(self.nodes):
            if node.is_terminal:
                yield index

    def _descend(self, index: int, pos: Vec3) -> int:
        node = self.nodes[index]
        while not node.is_terminal:
            kids = node.children
            # an axis was split iff its high-side child exists
            slot = ((4 if pos.x > node.mid.x and kids[4] is not None else 0) +
                    (2 if pos.y > node.mid.y and kids[2] is not None else 0) +
                    (1 if pos.z > node.mid.z and kids[1] is not None else 0))
            index = kids[slot]
            node = self.nodes[index]
        return index

    def find_node(self, pos: Vec3) -> Optional[int]:
        """Terminal node containing ``pos``, or None outside the root box."""
        if not self.root.box.contains(pos):
            return None
        return self._descend(0, pos)

    def find_first_node(self, ray: Ray) -> Optional[int]:
        """Terminal node where the ray enters the root box (or starts inside it)."""
        box = self.root.box
        interval = box.ray_interval(ray)
        if interval is None:
            return None
        t_enter, t_exit = interval
        t = max(t_enter, 0.0)
        t += min(TOLERANCE, (t_exit - t) / 2.0)
        p = ray.point_at_parameter(t)
        # rounding may leave the entry point a hair outside the root box
        pos = Vec3(min(max(p.x, box.xmin), box.xmax),
                   min(max(p.y, box.ymin), box.ymax),
                   min(max(p.z, box.zmin), box.zmax))
        return self._descend(0, pos)

    def exit_distance(self, index: int, ray: Ray) -> float:
        b = self.nodes[index].box
        o, d = ray.origin, ray.direction
        return kernels.exit_distance(o.x, o.y, o.z, d.x, d.y, d.z,
                                     b.xmin, b.xmax, b.ymin, b.ymax, b.zmin, b.zmax)

    def find_next_node(self, index: int, ray: Ray) -> Optional[int]:
        """Next terminal node along the ray after leaving ``index``, or None."""
        node = self.nodes[index]
        if node.parent is None:
            return None

        next_pos = _step_out(node.box, ray, self.exit_distance(index, ray))

        current = node.parent
        while not self.nodes[current].box.contains(next_pos):
            current = self.nodes[current].parent
            if current is None:
                return None

        found = self._descend(current, next_pos)
        if found == index:
            return None
        return found


def _step_out(box: BoundingBox, ray: Ray, t_exit: float) -> Vec3:
    """
    Point just past the face(s) of ``box`` the ray leaves through at
    ``t_exit``. Only the axes whose far face is crossed at ``t_exit`` move;
    the others keep the exit point coordinate, so a ray running close to
    a cell boundary is not pushed across it.
    """
    p = ray.point_at_parameter(t_exit)
    o, d = ray.origin, ray.direction
    slack = TOLERANCE * max(1.0, abs(t_exit))
    coords = []
    for axis, (lo, hi) in enumerate(((box.xmin, box.xmax),
                                     (box.ymin, box.ymax),
                                     (box.zmin, box.zmax))):
        coord, direction = p[axis], d[axis]
        if direction != 0.0:
            face = hi if direction > 0.0 else lo
            if (face - o[axis]) / direction <= t_exit + slack:
                step = TOLERANCE * max(1.0, abs(face))
                coord = face + step if direction > 0.0 else face - step
        coords.append(coord)
    return Vec3(coords[0], coords[1], coords[2])

