#!/usr/bin/env python3
"""Render one of the preset sphere scenes to an image file.

Usage:
    python -m examples.render_random_world [options]

Options:
    --scene {random,three}  Scene to render (default: random)
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: 200)
    --samples SAMPLES       Number of samples per pixel (default: 100)
    --seed SEED             Seed for the scene layout and the render (default: 0)
    --output OUTPUT         Output file, .png or .ppm (default: render.png)
    --batch-size SIZE       Samples per progress update (default: 10)
    --tone-map METHOD       Tone map: none, reinhard or exposure (default: none)
    --exposure EXPOSURE     Exposure for the exposure tone map (default: 1.0)
    --cpu                   Force the CPU backend
    --quiet                 Suppress progress output

Example:
    python -m examples.render_random_world --width 200 --height 100 --samples 20
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import taichi as ti


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render a sphere scene with the path tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--scene",
        choices=("random", "three"),
        default="random",
        help="Scene to render (default: random)",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=400,
        help="Image width in pixels (default: 400)",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=200,
        help="Image height in pixels (default: 200)",
    )
    parser.add_argument(
        "--samples",
        type=int,
        default=100,
        help="Number of samples per pixel (default: 100)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Seed for the scene layout and the render (default: 0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="render.png",
        help="Output file path, .png or .ppm (default: render.png)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--tone-map",
        choices=("none", "reinhard", "exposure"),
        default="none",
        help="Tone mapping applied before gamma encoding (default: none)",
    )
    parser.add_argument(
        "--exposure",
        type=float,
        default=1.0,
        help="Exposure for the exposure tone map (default: 1.0)",
    )
    parser.add_argument(
        "--cpu",
        action="store_true",
        help="Force the CPU backend",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress output",
    )
    return parser.parse_args(argv)


def render_scene(
    scene_name: str = "random",
    width: int = 400,
    height: int = 200,
    num_samples: int = 100,
    seed: int = 0,
    output_path: str = "render.png",
    batch_size: int = 10,
    tone_map: str = "none",
    exposure: float = 1.0,
    quiet: bool = False,
) -> Path:
    """Build a preset scene, render it and save the image.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.spheretrace.camera.lens import setup_camera
    from src.spheretrace.core.progressive import ProgressiveRenderer
    from src.spheretrace.preview.export import save_render
    from src.spheretrace.scene.presets import (
        create_random_world,
        create_three_sphere_scene,
    )

    aspect_ratio = width / height

    if scene_name == "random":
        scene, camera = create_random_world(seed=seed, aspect_ratio=aspect_ratio)
    else:
        scene, camera = create_three_sphere_scene(aspect_ratio=aspect_ratio)

    if not quiet:
        print(
            f"Scene '{scene_name}': {scene.get_sphere_count()} spheres, "
            f"{scene.get_material_count()} materials ({width}x{height})"
        )

    setup_camera(camera)

    renderer = ProgressiveRenderer(width, height, seed=seed)

    if not quiet:
        print(f"Rendering {num_samples} samples per pixel...")

    start_time = time.time()

    def progress_callback(current: int, target: int) -> None:
        if not quiet:
            elapsed = time.time() - start_time
            progress_pct = (current / target) * 100 if target > 0 else 0
            samples_per_sec = current / elapsed if elapsed > 0 else 0
            print(
                f"\r  Progress: {current}/{target} samples "
                f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
                end="",
                flush=True,
            )

    renderer.render(
        num_samples=num_samples,
        batch_size=batch_size,
        callback=progress_callback,
    )

    if not quiet:
        print()

    output_file = Path(output_path)
    save_render(
        renderer,
        output_file,
        tone_map=tone_map,
        gamma=2.0,
        exposure=exposure,
    )

    if not quiet:
        print(f"Saved {width}x{height} output as {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")

    return output_file


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    if args.cpu:
        ti.init(arch=ti.cpu)
    else:
        # Use GPU if available, fall back to CPU
        try:
            ti.init(arch=ti.gpu)
            if not args.quiet:
                print("Using GPU backend")
        except Exception:
            ti.init(arch=ti.cpu)
            if not args.quiet:
                print("Using CPU backend")

    try:
        render_scene(
            scene_name=args.scene,
            width=args.width,
            height=args.height,
            num_samples=args.samples,
            seed=args.seed,
            output_path=args.output,
            batch_size=args.batch_size,
            tone_map=args.tone_map,
            exposure=args.exposure,
            quiet=args.quiet,
        )
        return 0
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
