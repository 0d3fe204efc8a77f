class RayTracerError(Exception):
    """Base class for errors raised by the ray tracer."""


class SceneLoadError(RayTracerError):
    """A scene description could not be read or understood."""


class OctreeStructureError(RayTracerError, RuntimeError):
    """An octree node was used against its kind (e.g. objects of a branching node)."""
