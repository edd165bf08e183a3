"""Unit tests for the thin-lens camera.

Tests cover:
- Parameter validation
- Basis and image plane construction
- Pinhole ray generation (no lens sampling)
- Depth of field: origins on the lens, rays meeting on the focus plane
"""

import math

import numpy as np
import pytest
import taichi as ti


class TestCameraValidation:
    """Tests for validate_camera."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"aspect_ratio": 0.0},
            {"vfov": 0.0},
            {"vfov": 180.0},
            {"aperture": -0.1},
            {"focus_distance": 0.0},
            {"lookat": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 0.0)},
            {"vup": (0.0, 0.0, 1.0)},
        ],
    )
    def test_invalid_parameters_raise(self, kwargs):
        from src.spheretrace.camera.lens import Camera, setup_camera

        with pytest.raises(ValueError):
            setup_camera(Camera(**kwargs))

    def test_defaults_are_valid(self):
        from src.spheretrace.camera.lens import Camera, validate_camera

        validate_camera(Camera())

    def test_lens_radius_is_half_aperture(self):
        from src.spheretrace.camera.lens import Camera

        assert Camera(aperture=0.1).lens_radius == pytest.approx(0.05)


class TestCameraSetup:
    """Tests for setup_camera."""

    def test_default_image_plane(self):
        from src.spheretrace.camera.lens import Camera, get_camera_info, setup_camera

        setup_camera(Camera())
        info = get_camera_info()

        assert info["origin"] == pytest.approx((0.0, 0.0, 0.0))
        assert info["lower_left"] == pytest.approx((-2.0, -1.0, -1.0), abs=1e-5)
        assert info["horizontal"] == pytest.approx((4.0, 0.0, 0.0), abs=1e-5)
        assert info["vertical"] == pytest.approx((0.0, 2.0, 0.0), abs=1e-5)
        assert info["lens_radius"] == 0.0

    def test_basis_is_orthonormal(self):
        from src.spheretrace.camera.lens import Camera, get_camera_info, setup_camera

        setup_camera(Camera(lookfrom=(13.0, 2.0, 3.0), lookat=(0.0, 0.0, 0.0), vfov=20.0))
        info = get_camera_info()
        u, v, w = (np.array(info[k]) for k in ("u", "v", "w"))

        for axis in (u, v, w):
            assert np.linalg.norm(axis) == pytest.approx(1.0, abs=1e-5)
        assert np.dot(u, v) == pytest.approx(0.0, abs=1e-5)
        assert np.dot(u, w) == pytest.approx(0.0, abs=1e-5)
        assert np.dot(v, w) == pytest.approx(0.0, abs=1e-5)
        # w points from the target back to the camera
        expected_w = np.array([13.0, 2.0, 3.0]) / math.sqrt(13.0**2 + 2.0**2 + 3.0**2)
        assert w == pytest.approx(expected_w, abs=1e-5)

    def test_focus_distance_scales_image_plane(self):
        from src.spheretrace.camera.lens import Camera, get_camera_info, setup_camera

        setup_camera(Camera(focus_distance=3.0))
        info = get_camera_info()

        assert info["lower_left"] == pytest.approx((-6.0, -3.0, -3.0), abs=1e-5)
        assert info["horizontal"] == pytest.approx((12.0, 0.0, 0.0), abs=1e-5)


class TestRayGeneration:
    """Tests for generate_ray and get_ray."""

    def test_center_ray_points_at_lookat(self):
        from src.spheretrace.camera.lens import Camera, generate_ray, setup_camera

        setup_camera(Camera(lookfrom=(1.0, 2.0, 3.0), lookat=(1.0, 2.0, -7.0)))
        origin, direction = generate_ray(0.5, 0.5)

        assert origin == pytest.approx((1.0, 2.0, 3.0))
        d = np.array(direction) / np.linalg.norm(direction)
        assert d == pytest.approx([0.0, 0.0, -1.0], abs=1e-5)

    def test_corner_ray_is_unnormalized(self):
        from src.spheretrace.camera.lens import Camera, generate_ray, setup_camera

        setup_camera(Camera())
        _, direction = generate_ray(0.0, 0.0)
        assert direction == pytest.approx((-2.0, -1.0, -1.0), abs=1e-5)

        _, direction = generate_ray(1.0, 1.0)
        assert direction == pytest.approx((2.0, 1.0, -1.0), abs=1e-5)

    def test_pinhole_ignores_seed(self):
        from src.spheretrace.camera.lens import Camera, generate_ray, setup_camera

        setup_camera(Camera())
        assert generate_ray(0.3, 0.7, seed=1) == generate_ray(0.3, 0.7, seed=2)

    def test_lens_origins_lie_on_lens_disk(self):
        from src.spheretrace.camera.lens import Camera, generate_ray, setup_camera

        setup_camera(Camera(aperture=2.0, focus_distance=5.0))
        origins = np.array([generate_ray(0.5, 0.5, seed=s)[0] for s in range(32)])

        radii = np.linalg.norm(origins[:, :2], axis=1)
        assert radii.max() <= 1.0 + 1e-5
        assert np.abs(origins[:, 2]).max() < 1e-6
        assert len({tuple(o) for o in origins}) > 1

    def test_lens_rays_meet_on_focus_plane(self):
        """Test every lens sample aims at the same point of the focus plane."""
        from src.spheretrace.camera.lens import Camera, generate_ray, setup_camera

        setup_camera(Camera(aperture=2.0, focus_distance=5.0))
        for seed in range(16):
            origin, direction = generate_ray(0.25, 0.75, seed=seed)
            target = np.array(origin) + np.array(direction)
            assert target == pytest.approx([-5.0, 2.5, -5.0], abs=1e-4)

    def test_jittered_rays_stay_inside_pixel(self):
        from src.spheretrace.camera.lens import Camera, get_ray_jittered, setup_camera
        from src.spheretrace.core.rng import make_stream

        setup_camera(Camera())
        n = 64
        directions = ti.Vector.field(3, dtype=ti.f32, shape=n)

        @ti.kernel
        def test_kernel():
            for k in range(n):
                state = make_stream(ti.u32(5), ti.u32(0), ti.cast(k, ti.u32))
                ray, _ = get_ray_jittered(1, 0, 4, 2, state)
                directions[k] = ray.direction

        test_kernel()
        d = directions.to_numpy()
        # Pixel (1, 0) of a 4x2 image covers x in [-1, 0] and y in [-1, 0]
        assert d[:, 0].min() >= -1.0 - 1e-5
        assert d[:, 0].max() <= 0.0 + 1e-5
        assert d[:, 1].min() >= -1.0 - 1e-5
        assert d[:, 1].max() <= 0.0 + 1e-5
        assert np.allclose(d[:, 2], -1.0)
