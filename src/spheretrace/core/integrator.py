"""Path tracing integrator for Monte Carlo light transport.

A ray's colour is found by following it through the scene: every surface
hit multiplies the path by the material's attenuation and sends the path on
along the scattered direction. A path that escapes picks up the sky
gradient; one that is absorbed, or that is still bouncing after MAX_DEPTH
scatters, contributes black.

The textbook formulation is recursive. Taichi functions cannot recurse, so
trace() walks the path in a loop carrying the accumulated attenuation and
gives the same result.

Key features:
    - Material dispatch (Lambertian, Metal, Dielectric)
    - Sky gradient background, the only light source
    - Depth capping (no Russian roulette)
    - Jittered antialiasing and progressive sample accumulation
    - Per-sample random streams, so a fixed seed gives a fixed image

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.core.integrator import (
    ...     render_image, setup_render_target, save_image
    ... )
    >>> from src.spheretrace.scene.presets import create_random_world
    >>> from src.spheretrace.camera.lens import setup_camera
    >>>
    >>> scene, camera = create_random_world(seed=1)
    >>> setup_camera(camera)
    >>> setup_render_target(200, 100)
    >>> render_image(num_samples=16, seed=1)
    >>> save_image("world.png")
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.spheretrace.camera.lens import get_ray_jittered
from src.spheretrace.core.rng import make_stream
from src.spheretrace.materials.dielectric import scatter_dielectric_by_id
from src.spheretrace.materials.lambertian import scatter_lambertian_by_id
from src.spheretrace.materials.metal import scatter_metal_by_id
from src.spheretrace.preview.export import save_image_array
from src.spheretrace.scene.intersection import T_MAX, T_MIN, intersect_scene
from src.spheretrace.scene.manager import (
    MaterialType,
    get_material_type,
    get_material_type_index,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Maximum number of scatters along one path
MAX_DEPTH = 50

# Sky gradient: white looking straight down, light blue straight up
SKY_BOTTOM_COLOR = vec3(1.0, 1.0, 1.0)
SKY_TOP_COLOR = vec3(0.5, 0.7, 1.0)

# Python-side query results
_query_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_bounces = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Running average of the samples of each pixel
_color_buffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))
_sample_count = ti.field(dtype=ti.i32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

# Number of full-image passes since the last clear; doubles as the sample
# index that selects each pass's random streams
_pass_count = ti.field(dtype=ti.i32, shape=())

_render_target_initialized = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Set the active image size and clear the buffers.

    Args:
        width: Image width in pixels, in [1, MAX_IMAGE_WIDTH].
        height: Image height in pixels, in [1, MAX_IMAGE_HEIGHT].

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions ({width}x{height}) must be positive")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1

    clear_render_target()


def clear_render_target() -> None:
    """Discard all accumulated samples."""
    _color_buffer.fill(0.0)
    _sample_count.fill(0)
    _pass_count[None] = 0


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


def get_image() -> "ti.MatrixField":
    """Get the colour buffer.

    This is the full preallocated buffer; get_image_dimensions() gives the
    active region.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _color_buffer


def get_sample_count() -> "ti.ScalarField":
    """Get the per-pixel sample count field.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()
    return _sample_count


# =============================================================================
# Background and Material Dispatch
# =============================================================================


@ti.func
def background_color(direction: vec3) -> vec3:
    """Sky colour seen along a direction that hits nothing.

    Blends linearly from white to light blue with the height of the
    normalized direction.
    """
    unit_direction = tm.normalize(direction)
    t = 0.5 * (unit_direction.y + 1.0)
    return (1.0 - t) * SKY_BOTTOM_COLOR + t * SKY_TOP_COLOR


@ti.func
def _scatter_material(
    material_id: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Dispatch to the scatter function of the material's kind.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
        An unknown material ID absorbs the ray.
    """
    mat_type = get_material_type(material_id)
    type_index = get_material_type_index(material_id)

    rng = state
    scattered_direction = vec3(0.0, 0.0, 0.0)
    attenuation = vec3(0.0, 0.0, 0.0)
    did_scatter = 0

    if mat_type == int(MaterialType.LAMBERTIAN):
        scattered_direction, attenuation, did_scatter, rng = scatter_lambertian_by_id(
            type_index, normal, rng
        )

    elif mat_type == int(MaterialType.METAL):
        scattered_direction, attenuation, did_scatter, rng = scatter_metal_by_id(
            type_index, incident_direction, normal, rng
        )

    elif mat_type == int(MaterialType.DIELECTRIC):
        scattered_direction, attenuation, did_scatter, rng = scatter_dielectric_by_id(
            type_index, incident_direction, normal, rng
        )

    return scattered_direction, attenuation, did_scatter, rng


# =============================================================================
# Path Tracing Core
# =============================================================================


@ti.func
def trace(
    origin: vec3,
    direction: vec3,
    depth: ti.i32,
    max_depth: ti.i32,
    state: ti.u32,
):
    """Resolve the colour carried back along a ray.

    Args:
        origin: The ray origin.
        direction: The ray direction (non-zero, need not be normalized).
        depth: Number of scatters already taken before this ray.
        max_depth: A hit at this depth or deeper contributes black.
        state: The generator state.

    Returns:
        A tuple of (color, bounces, state) where color is linear RGB and
        bounces is the number of scatters the path took.
    """
    rng = state
    ray_origin = origin
    ray_direction = direction
    current_depth = depth

    color = vec3(0.0, 0.0, 0.0)
    throughput = vec3(1.0, 1.0, 1.0)
    bounces = 0

    # Taichi doesn't support break in ti.func loops
    active = 1

    # Every iteration but the last one scatters, so this bound is never hit
    for _ in range(ti.max(max_depth - depth, 0) + 1):
        if active == 1:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)

            if rec.hit == 0:
                color = throughput * background_color(ray_direction)
                active = 0
            elif current_depth >= max_depth:
                active = 0
            else:
                scattered_direction, attenuation, did_scatter, rng = _scatter_material(
                    rec.material_id, ray_direction, rec.normal, rng
                )
                if did_scatter == 0:
                    active = 0
                else:
                    throughput *= attenuation
                    ray_origin = rec.point
                    ray_direction = scattered_direction
                    current_depth += 1
                    bounces += 1

    return color, bounces, rng


@ti.kernel
def _trace_ray_kernel(
    origin: vec3,
    direction: vec3,
    seed: ti.u32,
    depth: ti.i32,
    max_depth: ti.i32,
):
    state = make_stream(seed, ti.u32(0), ti.u32(0))
    color, bounces, _ = trace(origin, direction, depth, max_depth, state)
    _query_color[None] = color
    _query_bounces[None] = bounces


def trace_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    seed: int = 0,
    depth: int = 0,
    max_depth: int = MAX_DEPTH,
) -> tuple[tuple[float, float, float], int]:
    """Trace one ray from Python and report how many times it scattered.

    Args:
        origin: The ray origin as (x, y, z).
        direction: The ray direction as (x, y, z), non-zero.
        seed: Seed of the random stream used for scattering.
        depth: Scatters already taken before this ray.
        max_depth: Depth at which a hit contributes black.

    Returns:
        A tuple of (color, bounces).
    """
    _trace_ray_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        seed,
        depth,
        max_depth,
    )
    color = _query_color[None]
    return (float(color[0]), float(color[1]), float(color[2])), int(_query_bounces[None])


def resolve_color(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    seed: int = 0,
    depth: int = 0,
    max_depth: int = MAX_DEPTH,
) -> tuple[float, float, float]:
    """Resolve the linear RGB colour seen along a ray.

    Same seed, same scene, same ray: same colour.
    """
    color, _ = trace_ray(origin, direction, seed, depth, max_depth)
    return color


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.func
def render_sample_impl(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    sample_index: ti.u32,
) -> vec3:
    """Render one jittered sample of a pixel.

    Pixel (0, 0) is the bottom-left pixel.
    """
    pixel_index = ti.cast(pixel_j * width + pixel_i, ti.u32)
    state = make_stream(seed, pixel_index, sample_index)
    ray, rng = get_ray_jittered(pixel_i, pixel_j, width, height, state)
    color, _, _ = trace(ray.origin, ray.direction, 0, MAX_DEPTH, rng)
    return color


@ti.kernel
def _render_one_spp(width: ti.i32, height: ti.i32, seed: ti.u32, sample_index: ti.u32):
    """Render one sample per pixel and fold it into the running average."""
    for i, j in ti.ndrange(width, height):
        color = render_sample_impl(i, j, width, height, seed, sample_index)

        # Clamp negative values (numerical errors)
        color = tm.max(color, vec3(0.0, 0.0, 0.0))

        for c in ti.static(range(3)):
            if tm.isnan(color[c]) or tm.isinf(color[c]):
                color[c] = 0.0

        _sample_count[i, j] += 1
        n = _sample_count[i, j]

        # Running average: avg_n = avg_{n-1} + (x_n - avg_{n-1}) / n
        _color_buffer[i, j] += (color - _color_buffer[i, j]) / ti.cast(n, ti.f32)


@ti.kernel
def _render_single_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    seed: ti.u32,
    sample_index: ti.u32,
) -> vec3:
    return render_sample_impl(pixel_i, pixel_j, width, height, seed, sample_index)


# =============================================================================
# Public Rendering API
# =============================================================================


def render_sample(
    pixel_i: int,
    pixel_j: int,
    sample_index: int = 0,
    seed: int = 0,
) -> tuple[float, float, float]:
    """Render one sample of one pixel without touching the buffers.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Which sample of the pixel to draw.
        seed: The render seed.

    Returns:
        Tuple of (R, G, B) linear colour values.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()
    color = _render_single_pixel(pixel_i, pixel_j, width, height, seed, sample_index)

    return (float(color[0]), float(color[1]), float(color[2]))


def render_image(num_samples: int = 1, seed: int = 0) -> None:
    """Add num_samples samples to every pixel.

    Can be called repeatedly to refine the image. Each pass uses the next
    sample index, so splitting a render into several calls with the same seed
    gives the same image as a single call.

    Args:
        num_samples: Number of samples to render per pixel.
        seed: The render seed.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    for _ in range(num_samples):
        _render_one_spp(width, height, seed, _pass_count[None])
        _pass_count[None] += 1


def get_total_samples() -> int:
    """Get the number of samples per pixel rendered since the last clear.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    return int(_pass_count[None])


def get_normalized_image_numpy() -> np.ndarray:
    """Get the rendered image as a NumPy array.

    The array has shape (height, width, 3), dtype float32, values clamped to
    [0, 1], and the top image row first.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    _check_render_target_initialized()

    width, height = get_image_dimensions()

    image = _color_buffer.to_numpy()[:width, :height, :]

    # (width, height, 3) -> (height, width, 3)
    image = np.transpose(image, (1, 0, 2))

    # Row 0 of the buffer is the bottom of the image
    image = np.flipud(image)

    image = np.clip(image, 0.0, 1.0)

    return image.astype(np.float32)


def save_image(filepath: str, gamma: float = 2.0) -> None:
    """Save the rendered image.

    Applies gamma encoding and writes PNG, PPM or any other format Pillow
    infers from the extension.

    Args:
        filepath: Path to save the image (e.g. "render.png").
        gamma: Gamma encoding exponent. The default of 2 is a square root.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    save_image_array(get_normalized_image_numpy(), filepath, gamma=gamma)
