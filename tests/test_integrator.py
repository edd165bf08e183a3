"""Tests for the path tracing integrator.

This module tests the core path tracing functionality including:
- Sky gradient background
- Material dispatch (Lambertian, Metal, Dielectric)
- Depth capping at MAX_DEPTH
- Render target setup and management
- Progressive accumulation and determinism

Note: Imports are done inside test methods to avoid Taichi initialization issues.
"""

import numpy as np
import pytest


def _mirror_corridor():
    """Two perfect mirrors facing each other across the origin."""
    from src.spheretrace.scene.manager import SceneManager

    scene = SceneManager()
    mirror = scene.add_metal_material((1.0, 1.0, 1.0), fuzz=0.0)
    scene.add_sphere((2.0, 0.0, 0.0), 1.0, mirror)
    scene.add_sphere((-2.0, 0.0, 0.0), 1.0, mirror)
    return scene


def _setup_three_sphere_render(width=8, height=4):
    from src.spheretrace.camera.lens import setup_camera
    from src.spheretrace.core.integrator import setup_render_target
    from src.spheretrace.scene.presets import create_three_sphere_scene

    scene, camera = create_three_sphere_scene(aspect_ratio=width / height)
    setup_camera(camera)
    setup_render_target(width, height)
    return scene


class TestBackground:
    """Tests for rays that escape the scene."""

    @pytest.mark.parametrize(
        "direction, expected",
        [
            ((0.0, 1.0, 0.0), (0.5, 0.7, 1.0)),
            ((0.0, -1.0, 0.0), (1.0, 1.0, 1.0)),
            ((1.0, 0.0, 0.0), (0.75, 0.85, 1.0)),
            ((0.0, 7.0, 0.0), (0.5, 0.7, 1.0)),
        ],
    )
    def test_sky_gradient(self, direction, expected):
        from src.spheretrace.core.integrator import trace_ray

        color, bounces = trace_ray((0.0, 0.0, 0.0), direction)
        assert color == pytest.approx(expected, abs=1e-5)
        assert bounces == 0

    def test_miss_at_depth_limit_still_sees_sky(self):
        from src.spheretrace.core.integrator import resolve_color

        color = resolve_color((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), depth=5, max_depth=5)
        assert color == pytest.approx((0.5, 0.7, 1.0), abs=1e-5)


class TestMaterialDispatch:
    """Tests for colours resolved through the materials."""

    def test_lambertian_bounded_by_albedo(self):
        from src.spheretrace.core.integrator import trace_ray
        from src.spheretrace.scene.presets import create_three_sphere_scene

        create_three_sphere_scene(albedo=(0.5, 0.5, 0.5))
        for seed in range(20):
            color, bounces = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), seed=seed)
            assert bounces >= 1
            assert max(color) <= 0.5 + 1e-5
            assert min(color) >= 0.0

    def test_same_seed_same_colour(self):
        from src.spheretrace.core.integrator import resolve_color
        from src.spheretrace.scene.presets import create_three_sphere_scene

        create_three_sphere_scene()
        first = resolve_color((0.0, 0.0, 0.0), (0.1, -0.2, -1.0), seed=11)
        second = resolve_color((0.0, 0.0, 0.0), (0.1, -0.2, -1.0), seed=11)
        assert first == second

    def test_tinted_metal_multiplies_sky(self):
        from src.spheretrace.core.integrator import trace_ray
        from src.spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_metal_sphere((0.0, 0.0, -2.0), 1.0, (0.5, 1.0, 1.0), fuzz=0.0)

        # Straight back along +z, which is horizontal sky
        color, bounces = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert bounces == 1
        assert color == pytest.approx((0.375, 0.85, 1.0), abs=1e-5)

    def test_glass_on_axis_keeps_horizon_colour(self):
        """Test a ray along the z axis stays on it whether it reflects or refracts."""
        from src.spheretrace.core.integrator import trace_ray
        from src.spheretrace.scene.manager import SceneManager

        scene = SceneManager()
        scene.add_dielectric_sphere((0.0, 0.0, -3.0), 1.0, 1.5)

        for seed in range(10):
            color, bounces = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), seed=seed)
            assert bounces >= 1
            assert color == pytest.approx((0.75, 0.85, 1.0), abs=1e-4)

    def test_unknown_material_absorbs(self):
        from src.spheretrace.core.integrator import trace_ray
        from src.spheretrace.scene.intersection import add_sphere
        import taichi.math as tm

        add_sphere(tm.vec3(0.0, 0.0, -2.0), 1.0, material_id=500)
        color, bounces = trace_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0))
        assert color == (0.0, 0.0, 0.0)
        assert bounces == 0


class TestDepthLimit:
    """Tests for the depth cap."""

    def test_mirror_corridor_stops_at_max_depth(self):
        from src.spheretrace.core.integrator import MAX_DEPTH, trace_ray

        _mirror_corridor()
        color, bounces = trace_ray((0.0, 0.0, 0.0), (1.0, 0.0, 0.0))

        assert MAX_DEPTH == 50
        assert bounces == MAX_DEPTH
        assert color == (0.0, 0.0, 0.0)

    @pytest.mark.parametrize("max_depth", [0, 1, 7])
    def test_max_depth_override(self, max_depth):
        from src.spheretrace.core.integrator import trace_ray

        _mirror_corridor()
        color, bounces = trace_ray((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), max_depth=max_depth)

        assert bounces == max_depth
        assert color == (0.0, 0.0, 0.0)

    def test_starting_depth_counts_against_limit(self):
        from src.spheretrace.core.integrator import trace_ray

        _mirror_corridor()
        _, bounces = trace_ray((0.0, 0.0, 0.0), (1.0, 0.0, 0.0), depth=48)
        assert bounces == 2


class TestRenderTarget:
    """Tests for render target setup and management."""

    def test_setup_sets_dimensions(self):
        from src.spheretrace.core.integrator import (
            get_image,
            get_image_dimensions,
            get_sample_count,
            setup_render_target,
        )

        setup_render_target(64, 48)

        assert get_image_dimensions() == (64, 48)
        assert get_image() is not None
        assert get_sample_count() is not None

    @pytest.mark.parametrize("size", [(0, 10), (10, -1), (4096, 10), (10, 4096)])
    def test_invalid_dimensions_raise(self, size):
        from src.spheretrace.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(*size)

    def test_setup_clears_previous_samples(self):
        from src.spheretrace.core.integrator import (
            get_total_samples,
            render_image,
            setup_render_target,
        )

        _setup_three_sphere_render()
        render_image(2)
        assert get_total_samples() == 2

        setup_render_target(8, 4)
        assert get_total_samples() == 0


class TestRendering:
    """Tests for full-image rendering."""

    def test_accumulates_samples(self):
        from src.spheretrace.core.integrator import (
            get_sample_count,
            get_total_samples,
            render_image,
        )

        _setup_three_sphere_render()
        render_image(3)

        assert get_total_samples() == 3
        counts = get_sample_count().to_numpy()[:8, :4]
        assert (counts == 3).all()

    def test_normalized_image(self):
        from src.spheretrace.core.integrator import get_normalized_image_numpy, render_image

        _setup_three_sphere_render()
        render_image(4)
        image = get_normalized_image_numpy()

        assert image.shape == (4, 8, 3)
        assert image.dtype == np.float32
        assert image.min() >= 0.0
        assert image.max() <= 1.0
        # Top-left corner only sees sky, which is always bluer than it is red
        assert image[0, 0, 2] > image[0, 0, 0]

    def test_batching_does_not_change_image(self):
        from src.spheretrace.core.integrator import (
            clear_render_target,
            get_normalized_image_numpy,
            render_image,
        )

        _setup_three_sphere_render()
        render_image(4, seed=9)
        single = get_normalized_image_numpy()

        clear_render_target()
        render_image(1, seed=9)
        render_image(3, seed=9)
        split = get_normalized_image_numpy()

        np.testing.assert_array_equal(single, split)

    def test_seed_changes_image(self):
        from src.spheretrace.core.integrator import (
            clear_render_target,
            get_normalized_image_numpy,
            render_image,
        )

        _setup_three_sphere_render()
        render_image(1, seed=1)
        first = get_normalized_image_numpy()

        clear_render_target()
        render_image(1, seed=2)
        second = get_normalized_image_numpy()

        assert not np.array_equal(first, second)

    def test_render_sample_leaves_buffers_alone(self):
        from src.spheretrace.core.integrator import get_total_samples, render_sample

        _setup_three_sphere_render()
        color = render_sample(0, 3, sample_index=0, seed=0)

        assert len(color) == 3
        assert color[2] > color[0]
        assert get_total_samples() == 0

    def test_save_image(self, tmp_path):
        from PIL import Image as PILImage

        from src.spheretrace.core.integrator import render_image, save_image

        _setup_three_sphere_render()
        render_image(1)
        path = tmp_path / "render.png"
        save_image(str(path))

        with PILImage.open(path) as img:
            assert img.size == (8, 4)
            assert img.mode == "RGB"
