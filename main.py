import os
import sys
import time
import argparse
from core.scene import RenderSettings
from core.errors import SceneLoadError
from scene_builders.x3d_scene_builder import X3DSceneBuilder
from scene_builders.demo_scene_builder import DemoSceneBuilder
from renderers.base_renderer import RendererFactory, raster_to_image

# renderer modules register themselves on import
import renderers.cpu_renderer


def parse_size(text: str):
    """'WxH' -> (width, height)"""
    try:
        width, height = (int(part) for part in text.lower().split("x"))
    except ValueError:
        raise argparse.ArgumentTypeError(f"size must look like WIDTHxHEIGHT, got '{text}'")
    if width < 1 or height < 1:
        raise argparse.ArgumentTypeError(f"size must be positive, got '{text}'")
    return width, height


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got '{text}'")
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Whitted ray tracer for X3D scenes')
    parser.add_argument('--input', '-i',
                        help='X3D scene to render (built-in demo scene when omitted)')
    parser.add_argument('--output', '-o',
                        help='output image (default: input name with .png, or output.png)')
    parser.add_argument('--size', '-s', type=parse_size, default=(400, 300),
                        help='image size as WIDTHxHEIGHT')
    parser.add_argument('--antialiasing', '-a', type=positive_int, default=1,
                        help='supersampling grid side (even values are rounded up)')
    parser.add_argument('--shadow', '-p', type=positive_int, default=1,
                        help='shadow rays per light (soft shadows when > 1)')
    parser.add_argument('--workers', '-j', type=positive_int, default=1,
                        help='worker processes')
    parser.add_argument('--seed', type=int, default=0,
                        help='seed for the sampling jitter')
    parser.add_argument('--no-octree', action='store_true',
                        help='test every object for every ray')
    parser.add_argument('--attenuate', action='store_true',
                        help='apply the distance attenuation of each light')
    parser.add_argument('--renderer', '-r',
                        choices=RendererFactory.list_available(),
                        default='cpu_raytracer',
                        help='renderer to use')
    parser.add_argument('--progress', action='store_true',
                        help='print render progress')
    parser.add_argument('--show', action='store_true',
                        help='open the image when done')
    return parser


def default_output(input_path) -> str:
    if not input_path:
        return 'output.png'
    return os.path.splitext(input_path)[0] + '.png'


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    width, height = args.size

    settings = RenderSettings(
        width=width,
        height=height,
        antialiasing=args.antialiasing,
        shadow_samples=args.shadow,
        workers=args.workers,
        seed=args.seed,
        use_octree=not args.no_octree,
        apply_attenuation=args.attenuate
    )

    if args.input:
        print(f"Loading scene: {args.input}")
        try:
            scene = X3DSceneBuilder().load(args.input)
        except SceneLoadError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    else:
        print("Building demo scene")
        scene = DemoSceneBuilder().build_scene()
    print(f"{len(scene.all_leaf_objects())} primitives, {len(scene.lights)} lights")

    renderer = RendererFactory.create(args.renderer)
    print(f"Renderer: {renderer.get_name()} ({', '.join(renderer.get_capabilities())})")

    start_time = time.time()
    raster = renderer.render(scene, settings, show_progress=args.progress)
    elapsed = time.time() - start_time

    output = args.output or default_output(args.input)
    image = raster_to_image(raster)
    image.save(output)
    print(f"Image saved: {output}")

    minutes = int(elapsed // 60)
    seconds = elapsed % 60
    print(f"Total render time: {minutes}m {seconds:.2f}s")

    if args.show:
        image.show()
    return 0


if __name__ == "__main__":
    sys.exit(main())
