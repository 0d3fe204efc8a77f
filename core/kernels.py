"""
Scalar hot paths shared by bounding boxes, shapes and the octree.
Compiled with numba on first call; all arguments are plain floats.
"""
import math
import numpy as np
from numba import njit


@njit
def _slab(o, d, lo, hi, tmin, tmax):
    t1 = (lo - o) / d
    t2 = (hi - o) / d
    if t1 < t2:
        if t1 > tmin:
            tmin = t1
        if t2 < tmax:
            tmax = t2
    else:
        if t2 > tmin:
            tmin = t2
        if t1 < tmax:
            tmax = t1
    return tmin, tmax


@njit
def slab_interval(ox, oy, oz, dx, dy, dz,
                  xmin, xmax, ymin, ymax, zmin, zmax):
    """
    Ray / axis aligned box test.
    Returns (hit, t_enter, t_exit); misses when the interval is empty
    or lies entirely behind the origin.
    """
    tmin = -np.inf
    tmax = np.inf

    if dx == 0.0:
        if ox < xmin or ox > xmax:
            return False, 0.0, 0.0
    else:
        tmin, tmax = _slab(ox, dx, xmin, xmax, tmin, tmax)
        if tmin > tmax or tmax < 0.0:
            return False, 0.0, 0.0

    if dy == 0.0:
        if oy < ymin or oy > ymax:
            return False, 0.0, 0.0
    else:
        tmin, tmax = _slab(oy, dy, ymin, ymax, tmin, tmax)
        if tmin > tmax or tmax < 0.0:
            return False, 0.0, 0.0

    if dz == 0.0:
        if oz < zmin or oz > zmax:
            return False, 0.0, 0.0
    else:
        tmin, tmax = _slab(oz, dz, zmin, zmax, tmin, tmax)
        if tmin > tmax or tmax < 0.0:
            return False, 0.0, 0.0

    return True, tmin, tmax


@njit
def exit_distance(ox, oy, oz, dx, dy, dz,
                  xmin, xmax, ymin, ymax, zmin, zmax):
    """Nearest far-face crossing of the ray across the three axes."""
    tmax = np.inf
    if dx != 0.0:
        t = ((xmax if dx > 0.0 else xmin) - ox) / dx
        if t < tmax:
            tmax = t
    if dy != 0.0:
        t = ((ymax if dy > 0.0 else ymin) - oy) / dy
        if t < tmax:
            tmax = t
    if dz != 0.0:
        t = ((zmax if dz > 0.0 else zmin) - oz) / dz
        if t < tmax:
            tmax = t
    return tmax


@njit
def segment_hits_box(ax, ay, az, bx, by, bz,
                     xmin, xmax, ymin, ymax, zmin, zmax):
    """Slab test of the segment a-b (parametrized by length) against a box."""
    dx = bx - ax
    dy = by - ay
    dz = bz - az
    length = math.sqrt(dx * dx + dy * dy + dz * dz)
    tmin = -np.inf
    tmax = np.inf

    if dx == 0.0:
        if ax < xmin or ax > xmax:
            return False
    else:
        tmin, tmax = _slab(ax, dx / length, xmin, xmax, tmin, tmax)
        if tmin > tmax or tmin > length or tmax < 0.0:
            return False

    if dy == 0.0:
        if ay < ymin or ay > ymax:
            return False
    else:
        tmin, tmax = _slab(ay, dy / length, ymin, ymax, tmin, tmax)
        if tmin > tmax or tmin > length or tmax < 0.0:
            return False

    if dz == 0.0:
        if az < zmin or az > zmax:
            return False
    else:
        tmin, tmax = _slab(az, dz / length, zmin, zmax, tmin, tmax)
        if tmin > tmax or tmin > length or tmax < 0.0:
            return False

    return True


@njit
def sphere_root(ox, oy, oz, dx, dy, dz, cx, cy, cz, radius):
    """
    Ray parameter of the nearest sphere crossing in front of the origin
    for a unit direction. Returns (hit, t).
    """
    lx = ox - cx
    ly = oy - cy
    lz = oz - cz
    b = 2.0 * (dx * lx + dy * ly + dz * lz)
    c = (lx * lx + ly * ly + lz * lz) - radius * radius

    discriminant = b * b - 4.0 * c
    if discriminant < 0.0:
        return False, 0.0

    sqrt_d = math.sqrt(discriminant)
    t1 = (-b + sqrt_d) / 2.0
    t2 = (-b - sqrt_d) / 2.0

    if t1 < 0.0 and t2 < 0.0:
        return False, 0.0
    if t1 < 0.0:
        return True, t2
    if t2 < 0.0:
        return True, t1
    if abs(t1) < abs(t2):
        return True, t1
    return True, t2
