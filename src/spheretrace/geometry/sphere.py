"""Sphere primitive and ray-sphere intersection.

The ray-sphere intersection is found by solving:
    |ray_origin + t * ray_direction - center|^2 = radius^2

which expands to the quadratic a*t^2 + 2*b*t + c = 0 with
    a = dot(direction, direction)
    b = dot(oc, direction)      (half of the traditional linear term)
    c = dot(oc, oc) - radius^2
    oc = origin - center

The direction does not need to be normalized; the a coefficient accounts for
its length.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere (must be positive).
    """

    center: vec3
    radius: ti.f32


@ti.dataclass
class HitRecord:
    """Record of a ray-sphere intersection.

    Attributes:
        hit: Whether the ray intersected the sphere (1 if hit, 0 if miss).
        t: The ray parameter of the intersection. Only valid if hit == 1.
        point: The world-space hit location, equal to origin + t * direction.
            Only valid if hit == 1.
        normal: The unit outward surface normal at point. It always points
            away from the center, also when the ray starts inside the sphere.
            Only valid if hit == 1.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection inside the open interval (t_min, t_max).

    The nearer root is tried first since it is the visible surface of an
    opaque sphere. The farther root is used only when the nearer one is not
    inside the interval, e.g. when the ray starts inside the sphere.

    A zero discriminant (tangent ray) counts as a miss.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (non-zero, need not be
            normalized).
        sphere: The sphere to test intersection against.
        t_min: Hits at or below this parameter are rejected (avoids
            re-hitting the surface a scattered ray starts on).
        t_max: Hits at or above this parameter are rejected.

    Returns:
        A HitRecord. Check the hit field to determine if an intersection
        occurred.
    """
    oc = ray_origin - sphere.center

    a = tm.dot(ray_direction, ray_direction)
    b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = b * b - a * c

    # Initialize result fields (Taichi requires outer-scope declaration)
    did_hit = 0
    hit_t = 0.0
    hit_point = vec3(0.0, 0.0, 0.0)
    hit_normal = vec3(0.0, 0.0, 0.0)

    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)

        t = (-b - sqrt_d) / a
        valid = t_min < t < t_max

        if not valid:
            t = (-b + sqrt_d) / a
            valid = t_min < t < t_max

        if valid:
            did_hit = 1
            hit_t = t
            hit_point = ray_origin + t * ray_direction
            hit_normal = (hit_point - sphere.center) / sphere.radius

    return HitRecord(
        hit=did_hit,
        t=hit_t,
        point=hit_point,
        normal=hit_normal,
    )


@ti.func
def sphere_roots(ray_origin: vec3, ray_direction: vec3, sphere: Sphere):
    """Return both roots of the ray-sphere quadratic.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        sphere: The sphere.

    Returns:
        A tuple of (t_near, t_far, has_roots). The roots are zero when the
        discriminant is not positive.
    """
    oc = ray_origin - sphere.center
    a = tm.dot(ray_direction, ray_direction)
    b = tm.dot(oc, ray_direction)
    c = tm.dot(oc, oc) - sphere.radius * sphere.radius
    discriminant = b * b - a * c

    t_near = 0.0
    t_far = 0.0
    has_roots = 0
    if discriminant > 0.0:
        sqrt_d = ti.sqrt(discriminant)
        t_near = (-b - sqrt_d) / a
        t_far = (-b + sqrt_d) / a
        has_roots = 1
    return t_near, t_far, has_roots


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius inside a Taichi kernel."""
    return Sphere(center=center, radius=radius)
