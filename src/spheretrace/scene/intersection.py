"""Scene-level sphere storage and closest-hit queries.

The scene stores spheres in Taichi fields (structure-of-arrays layout) and
answers "closest hit in (t_min, t_max)" with a linear scan. Each sphere
carries a material ID which indexes the scene-owned material tables; hit
records copy the ID, never the material itself.

Spheres are appended during setup and only read by kernels afterwards.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.scene.intersection import (
    ...     add_sphere, clear_scene, closest_hit
    ... )
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> hit = closest_hit((0, 0, 0), (0, 0, -1))
    >>> hit.t
    0.5
"""

from dataclasses import dataclass

import taichi as ti
import taichi.math as tm

from src.spheretrace.geometry.sphere import Sphere, hit_sphere

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Default hit interval. T_MIN keeps scattered rays from re-hitting the
# surface they start on.
T_MIN = 0.001
T_MAX = float("inf")


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any sphere (1 if hit, 0 if miss).
        t: The ray parameter of the closest intersection.
        point: The world-space hit location.
        normal: The unit outward surface normal at point.
        material_id: The material ID of the hit sphere, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    material_id: ti.i32


@dataclass
class ClosestHit:
    """Python-side copy of a scene hit, returned by closest_hit()."""

    t: float
    point: tuple[float, float, float]
    normal: tuple[float, float, float]
    material_id: int


# Maximum number of spheres supported in the scene
MAX_SPHERES = 1024

# Sphere storage: Structure of Arrays layout
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Result slots for Python-side queries
_query_hit = ti.field(dtype=ti.i32, shape=())
_query_t = ti.field(dtype=ti.f32, shape=())
_query_point = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_normal = ti.Vector.field(3, dtype=ti.f32, shape=())
_query_material_id = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Remove all spheres from the scene.

    Resets the sphere count to zero. The field data is overwritten when new
    spheres are added.
    """
    num_spheres[None] = 0


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (must be positive).
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        ValueError: If the radius is not positive.
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    if radius <= 0.0:
        raise ValueError(f"Sphere radius must be positive, got {radius}")

    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


@ti.func
def _make_miss_record() -> SceneHitRecord:
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        material_id=-1,
    )


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Find the closest sphere hit along a ray.

    Each sphere is tested against the interval (t_min, closest_so_far), where
    closest_so_far starts at t_max and shrinks to every accepted hit, so later
    spheres only need to beat the current best.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A SceneHitRecord for the closest intersection, or a miss record.
    """
    closest_so_far = t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        sphere = Sphere(center=sphere_centers[i], radius=sphere_radii[i])
        rec = hit_sphere(ray_origin, ray_direction, sphere, t_min, closest_so_far)
        if rec.hit == 1:
            closest_so_far = rec.t
            result = SceneHitRecord(
                hit=1,
                t=rec.t,
                point=rec.point,
                normal=rec.normal,
                material_id=sphere_material_ids[i],
            )

    return result


@ti.kernel
def _closest_hit_kernel(origin: vec3, direction: vec3, t_min: ti.f32, t_max: ti.f32):
    rec = intersect_scene(origin, direction, t_min, t_max)
    _query_hit[None] = rec.hit
    _query_t[None] = rec.t
    _query_point[None] = rec.point
    _query_normal[None] = rec.normal
    _query_material_id[None] = rec.material_id


def closest_hit(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    t_min: float = T_MIN,
    t_max: float = T_MAX,
) -> ClosestHit | None:
    """Query the closest hit from Python.

    This is meant for tools and tests; rendering kernels call
    intersect_scene() directly.

    Args:
        origin: The ray origin as (x, y, z).
        direction: The ray direction as (x, y, z), non-zero.
        t_min: Minimum t value to consider a valid hit.
        t_max: Maximum t value to consider a valid hit.

    Returns:
        A ClosestHit, or None if the ray hits nothing.
    """
    _closest_hit_kernel(
        vec3(origin[0], origin[1], origin[2]),
        vec3(direction[0], direction[1], direction[2]),
        t_min,
        t_max,
    )
    if _query_hit[None] == 0:
        return None

    point = _query_point[None]
    normal = _query_normal[None]
    return ClosestHit(
        t=float(_query_t[None]),
        point=(float(point[0]), float(point[1]), float(point[2])),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        material_id=int(_query_material_id[None]),
    )
