"""Thin-lens camera model for ray generation with depth of field.

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The image plane sits at focus_distance in front of the camera, so every
point on it is in perfect focus. With a positive aperture the ray origin is
moved to a random point on the lens disk while still aiming at the same point
on the image plane; geometry away from the focus plane blurs.

A zero aperture gives a pinhole camera and consumes no random numbers.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.camera.lens import Camera, setup_camera, get_ray
    >>>
    >>> camera = Camera(
    ...     lookfrom=(13.0, 2.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vfov=20.0,
    ...     aspect_ratio=2.0,
    ...     aperture=0.1,
    ...     focus_distance=10.0,
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray, state = get_ray(0.5, 0.5, ti.u32(1))
"""

import math
from dataclasses import dataclass

import numpy as np
import taichi as ti

from src.spheretrace.core.ray import make_ray, random_in_unit_disk, vec3
from src.spheretrace.core.rng import make_stream, next_float

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class Camera:
    """Configuration for a thin-lens camera.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction used to orient the camera (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter. 0 disables depth of field.
        focus_distance: Distance from lookfrom to the plane in focus.
    """

    lookfrom: tuple[float, float, float] = (0.0, 0.0, 0.0)
    lookat: tuple[float, float, float] = (0.0, 0.0, -1.0)
    vup: tuple[float, float, float] = (0.0, 1.0, 0.0)
    vfov: float = 90.0
    aspect_ratio: float = 2.0
    aperture: float = 0.0
    focus_distance: float = 1.0

    @property
    def lens_radius(self) -> float:
        return self.aperture / 2.0


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward

# Image plane at the focus distance
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())

# Result slots for generate_ray()
_query_origin = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_direction = ti.Vector.field(3, dtype=ti.f32, shape=())


# =============================================================================
# Camera Setup
# =============================================================================


def validate_camera(camera: Camera) -> None:
    """Check camera parameters.

    Raises:
        ValueError: If any parameter would give a degenerate camera.
    """
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio must be positive, got {camera.aspect_ratio}")
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov must be in (0, 180) degrees, got {camera.vfov}")
    if camera.aperture < 0.0:
        raise ValueError(f"aperture must be non-negative, got {camera.aperture}")
    if camera.focus_distance <= 0.0:
        raise ValueError(
            f"focus_distance must be positive, got {camera.focus_distance}"
        )

    view = np.asarray(camera.lookfrom, dtype=np.float64) - np.asarray(
        camera.lookat, dtype=np.float64
    )
    view_length = np.linalg.norm(view)
    if view_length == 0.0:
        raise ValueError("lookfrom and lookat must be different points")

    vup = np.asarray(camera.vup, dtype=np.float64)
    vup_length = np.linalg.norm(vup)
    if vup_length == 0.0:
        raise ValueError("vup must be a non-zero vector")
    if np.linalg.norm(np.cross(vup, view)) <= 1e-8 * vup_length * view_length:
        raise ValueError("vup must not be parallel to the view direction")


def setup_camera(camera: Camera) -> None:
    """Compute the camera basis and image plane and store them in the fields.

    Must be called from Python before any kernel uses get_ray().

    Args:
        camera: Camera configuration.

    Raises:
        ValueError: If the configuration is invalid (see validate_camera).
    """
    validate_camera(camera)

    theta = math.radians(camera.vfov)
    half_height = math.tan(theta / 2.0)
    half_width = camera.aspect_ratio * half_height
    focus = camera.focus_distance

    lookfrom = np.array(camera.lookfrom, dtype=np.float32)
    lookat = np.array(camera.lookat, dtype=np.float32)
    vup = np.array(camera.vup, dtype=np.float32)

    w = lookfrom - lookat
    w = w / np.linalg.norm(w)

    u = np.cross(vup, w)
    u = u / np.linalg.norm(u)

    v = np.cross(w, u)

    lower_left = (
        lookfrom
        - half_width * focus * u
        - half_height * focus * v
        - focus * w
    )
    horizontal = 2.0 * half_width * focus * u
    vertical = 2.0 * half_height * focus * v

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.lens_radius


# =============================================================================
# Ray Generation
# =============================================================================


@ti.func
def get_ray(s: ti.f32, t: ti.f32, state: ti.u32):
    """Generate a camera ray through image coordinates (s, t).

    (0, 0) is the lower-left corner of the image and (1, 1) the upper-right.
    The direction is not normalized.

    Args:
        s: Horizontal coordinate in [0, 1] (left to right).
        t: Vertical coordinate in [0, 1] (bottom to top).
        state: The generator state, only advanced when the lens has a radius.

    Returns:
        A tuple of (ray, state).
    """
    rng = state
    offset = vec3(0.0, 0.0, 0.0)
    lens_radius = _lens_radius[None]
    if lens_radius > 0.0:
        disk, rng = random_in_unit_disk(rng)
        rd = lens_radius * disk
        offset = _camera_u[None] * rd.x + _camera_v[None] * rd.y

    origin = _camera_origin[None] + offset
    target = (
        _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    )
    return make_ray(origin, target - origin), rng


@ti.func
def get_ray_jittered(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    state: ti.u32,
):
    """Generate a ray through a random point inside pixel (pixel_i, pixel_j).

    Pixel (0, 0) is the bottom-left pixel.

    Returns:
        A tuple of (ray, state).
    """
    jitter_u, rng = next_float(state)
    jitter_v, rng = next_float(rng)

    s = (ti.cast(pixel_i, ti.f32) + jitter_u) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + jitter_v) / ti.cast(height, ti.f32)

    return get_ray(s, t, rng)


@ti.kernel
def _generate_ray_kernel(s: ti.f32, t: ti.f32, seed: ti.u32):
    state = make_stream(seed, ti.u32(0), ti.u32(0))
    ray, _ = get_ray(s, t, state)
    _query_origin[None] = ray.origin
    _query_direction[None] = ray.direction


def generate_ray(
    s: float, t: float, seed: int = 0
) -> tuple[tuple[float, float, float], tuple[float, float, float]]:
    """Generate one camera ray from Python.

    Args:
        s: Horizontal image coordinate in [0, 1].
        t: Vertical image coordinate in [0, 1].
        seed: Seed for the lens sample; ignored by a pinhole camera.

    Returns:
        A tuple of (origin, direction).
    """
    _generate_ray_kernel(s, t, seed)
    origin = _query_origin[None]
    direction = _query_direction[None]
    return (
        (float(origin[0]), float(origin[1]), float(origin[2])),
        (float(direction[0]), float(direction[1]), float(direction[2])),
    )


# =============================================================================
# Utility Functions
# =============================================================================


def _to_tuple(vector) -> tuple[float, float, float]:
    return (float(vector[0]), float(vector[1]), float(vector[2]))


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get the current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left and
        lens_radius.
    """
    return {
        "origin": _to_tuple(_camera_origin[None]),
        "u": _to_tuple(_camera_u[None]),
        "v": _to_tuple(_camera_v[None]),
        "w": _to_tuple(_camera_w[None]),
        "horizontal": _to_tuple(_viewport_horizontal[None]),
        "vertical": _to_tuple(_viewport_vertical[None]),
        "lower_left": _to_tuple(_lower_left_corner[None]),
        "lens_radius": float(_lens_radius[None]),
    }
