"""Geometry module for shape primitives.

Components:
    sphere: Sphere primitive with ray-sphere intersection

Intersection routines are Taichi functions (@ti.func) so they can run inside
the parallel render kernels. Ray-object intersection follows the pattern:
    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .sphere import HitRecord, Sphere, hit_sphere, make_sphere, sphere_roots

__all__ = [
    "Sphere",
    "HitRecord",
    "hit_sphere",
    "make_sphere",
    "sphere_roots",
]
