import math
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from typing import List, NamedTuple, Optional
import numpy as np

from core.math import Vec3, Ray
from core.material import Intersection
from core.geometry import SceneObject
from core.light import PointLight
from core.scene import Scene, OctreeScene, RenderSettings
from renderers.base_renderer import BaseRenderer, RendererFactory

MAX_LEVELS = 10
# how close the shadow-ray hit must be to the shaded point to count as lit
SHADOW_EPSILON = 1e-6
SPECULAR_CUTOFF = 0.001
REFLECTION_DELTA = 1e-5
REFRACTION_DELTA = 1e-5
ABSORPTION = 0.15
PROGRESS_TICKS = 80

BLACK = Vec3(0, 0, 0)


class ShadeHit(NamedTuple):
    color: Vec3
    obj: SceneObject
    distance: float


class WhittedShader:
    """Recursive local illumination with shadows, reflection and refraction."""

    def __init__(self, scene: Scene, settings: RenderSettings):
        self.scene = scene
        self.settings = settings

    def shade(self, ray: Ray, depth: int, viewer: Vec3, ior: float,
              rng: np.random.Generator) -> Optional[ShadeHit]:
        """
        Color seen along ``ray``. ``viewer`` is where the specular term is
        evaluated from and ``ior`` the refractive index of the medium the
        ray travels in. Returns None when nothing is hit or the recursion
        limit is passed; callers treat that as black.
        """
        if depth > MAX_LEVELS:
            return None
        hit = self.scene.first_intersection(ray)
        if hit is None:
            return None

        obj, inter = hit.obj, hit.intersection
        mat = obj.material
        point, normal = inter.point, inter.normal
        n_shiny = max(mat.shininess, 0.0) * 128.0

        specular = Vec3(0, 0, 0)
        diffuse = Vec3(0, 0, 0)
        for light in self.scene.lights:
            lit = self._light_visibility(light, obj, point, rng)
            if lit <= 0.0:
                continue

            if self.settings.apply_attenuation:
                light_color = light.attenuated_color_at(point)
            else:
                light_color = light.color_at(point)
            light_dir = (point - light.position).normalize()

            # Phong highlight
            to_viewer = (viewer - point).normalize()
            alignment = max(to_viewer.dot(light_dir.reflect(normal)), 0.0)
            specular_term = mat.specular_index * alignment ** n_shiny
            if specular_term < SPECULAR_CUTOFF:
                specular_term = 0.0
            specular = specular + light_color * specular_term

            # Lambert, scaled by the visible fraction of the light
            diffuse_term = max(-normal.dot(light_dir), 0.0) * mat.diffuse_index
            diffuse = diffuse + light_color * (diffuse_term * lit)

        ambient = mat.diffuse_color * mat.ambient_intensity
        color = (ambient + diffuse * mat.diffuse_color + specular * mat.specular_color).clamp()

        if mat.reflection_index > 0:
            color = color + self._reflection(ray, obj, inter, depth, ior, rng)
        if mat.transparency > 0:
            color = color + self._refraction(ray, obj, inter, depth, ior, rng)

        return ShadeHit(color.clamp(), obj, hit.distance)

    def _light_visibility(self, light: PointLight, obj: SceneObject, point: Vec3,
                          rng: np.random.Generator) -> float:
        """Fraction of shadow samples from the light that reach ``point`` on ``obj``."""
        samples = self.settings.shadow_samples
        lit = 0
        for _ in range(samples):
            origin = light.sample_position(rng) if samples > 1 else light.position
            hit = self.scene.first_intersection(Ray(origin, point - origin))
            if (hit is not None and hit.obj is obj and
                    hit.intersection.point.epsilon_equals(point, SHADOW_EPSILON)):
                lit += 1
        return lit / samples

    def _reflection(self, ray: Ray, obj: SceneObject, inter: Intersection, depth: int,
                    ior: float, rng: np.random.Generator) -> Vec3:
        direction = ray.direction.reflect(inter.normal)
        reflected = Ray(inter.point + direction.normalize() * REFLECTION_DELTA, direction)
        result = self.shade(reflected, depth + 1, reflected.origin, ior, rng)
        if result is None:
            return BLACK
        mat = obj.material
        return result.color * mat.diffuse_color * mat.reflection_index

    def _refraction(self, ray: Ray, obj: SceneObject, inter: Intersection, depth: int,
                    ior: float, rng: np.random.Generator) -> Vec3:
        mat = obj.material
        if mat.refraction_index <= 0:
            return BLACK
        # leaving the object's medium goes back to vacuum
        next_ior = 1.0 if ior == mat.refraction_index else mat.refraction_index
        refracted = refract_ray(ray, inter, ior / next_ior)
        if refracted is None:
            return BLACK

        result = self.shade(refracted, depth + 1, refracted.origin, next_ior, rng)
        if result is None:
            return BLACK
        # Beer-Lambert absorption along the refracted segment
        transmittance = (mat.diffuse_color * (-ABSORPTION * result.distance)).exp()
        return result.color * transmittance * mat.transparency

    def trace_row(self, row: int) -> np.ndarray:
        """Colors of one image row, shape (width, 3)."""
        settings = self.settings
        width, height, factor = settings.width, settings.height, settings.antialiasing
        camera = self.scene.camera
        rng = np.random.default_rng([settings.seed, row])
        out = np.zeros((width, 3))

        last_obj = None
        for col in range(width):
            result = self.shade(camera.primary_ray(row, col, width, height), 0,
                                camera.position, 1.0, rng)
            color = result.color if result is not None else BLACK
            obj = result.obj if result is not None else None

            # supersample only where the visible object changes
            if factor > 1 and obj is not last_obj:
                total = Vec3(0, 0, 0)
                half = factor // 2
                for m in range(-half, half + 1):
                    for n in range(-half, half + 1):
                        sample_ray = camera.jittered_ray(row, col, m, n, factor, width, height, rng)
                        sample = self.shade(sample_ray, 0, camera.position, 1.0, rng)
                        if sample is not None:
                            total = total + sample.color
                color = total / (factor * factor)
            last_obj = obj
            out[col] = (color.x, color.y, color.z)
        return out

    def trace_rows(self, start: int, stop: int) -> np.ndarray:
        return np.stack([self.trace_row(row) for row in range(start, stop)])


def refract_ray(ray: Ray, inter: Intersection, ratio: float) -> Optional[Ray]:
    """
    Snell refraction for ``ratio`` = n_incident / n_transmitted.
    None on total internal reflection.
    """
    normal = inter.normal
    if normal.dot(ray.direction) > 0:
        normal = -normal
    cos_i = -normal.dot(ray.direction)
    cos_t2 = 1.0 - ratio * ratio * (1.0 - cos_i * cos_i)
    if cos_t2 <= 0:
        return None
    direction = (ray.direction * ratio + normal * (ratio * cos_i - math.sqrt(cos_t2))).normalize()
    return Ray(inter.point + direction * REFRACTION_DELTA, direction)


_worker_shader: Optional[WhittedShader] = None


def _init_worker(scene: Scene, settings: RenderSettings):
    global _worker_shader
    _worker_shader = WhittedShader(scene, settings)


def _trace_chunk(start: int, stop: int):
    return start, _worker_shader.trace_rows(start, stop)


class WhittedRenderer(BaseRenderer):
    """CPU Whitted ray tracer, optionally spread over worker processes."""

    def __init__(self):
        super().__init__("cpu_raytracer")

    def get_capabilities(self) -> List[str]:
        return [
            "ray_tracing",
            "shadows",
            "soft_shadows",
            "reflection",
            "refraction",
            "anti_aliasing",
            "octree_acceleration",
            "multiprocessing",
        ]

    def render(self, scene: Scene, settings: RenderSettings, show_progress: bool = False) -> np.ndarray:
        start_time = time.time()
        width, height = settings.width, settings.height
        if show_progress:
            print(f"CPU render: {width}x{height}, antialiasing {settings.antialiasing}, "
                  f"shadow samples {settings.shadow_samples}, workers {settings.workers}")
            print("-" * PROGRESS_TICKS)

        traced = OctreeScene(scene) if settings.use_octree else scene
        raster = np.zeros((height, width, 3))
        chunk = max(1, math.ceil(height / (settings.workers * 4)))
        chunks = [(row, min(height, row + chunk)) for row in range(0, height, chunk)]
        progress = _Progress(height, show_progress)

        if settings.workers == 1:
            shader = WhittedShader(traced, settings)
            for row_start, row_stop in chunks:
                raster[row_start:row_stop] = shader.trace_rows(row_start, row_stop)
                progress.advance(row_stop - row_start)
        else:
            with ProcessPoolExecutor(max_workers=settings.workers,
                                     initializer=_init_worker,
                                     initargs=(traced, settings)) as executor:
                futures = [executor.submit(_trace_chunk, row_start, row_stop)
                           for row_start, row_stop in chunks]
                for future in as_completed(futures):
                    row_start, rows = future.result()
                    raster[row_start:row_start + len(rows)] = rows
                    progress.advance(len(rows))

        if show_progress:
            print()
            elapsed = time.time() - start_time
            minutes = int(elapsed // 60)
            seconds = elapsed % 60
            print(f"CPU render finished: {minutes}m {seconds:.2f}s")
        return np.clip(raster, 0.0, 1.0)


class _Progress:
    def __init__(self, total_rows: int, enabled: bool):
        self.total_rows = total_rows
        self.enabled = enabled
        self.rows_done = 0
        self.ticks = 0

    def advance(self, rows: int):
        self.rows_done += rows
        due = PROGRESS_TICKS * self.rows_done // self.total_rows
        if self.enabled and due > self.ticks:
            print("*" * (due - self.ticks), end="", flush=True)
        self.ticks = due


RendererFactory.register("cpu_raytracer", WhittedRenderer)
