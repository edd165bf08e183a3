"""Core rendering module.

Components:
    ray: Ray data structure, reflection/refraction helpers and samplers
    rng: Explicit PCG32 random number streams
    integrator: Colour resolution along rays and the pixel render kernels
    progressive: Batched sample accumulation with progress reporting

All per-ray work runs in Taichi functions called from parallel kernels.
"""

from .ray import (
    MAX_REJECTION_ATTEMPTS,
    Ray,
    length_squared,
    make_ray,
    near_zero,
    random_in_unit_disk,
    random_in_unit_sphere,
    ray_at,
    reflect,
    refract,
    schlick,
    vec3,
)
from .rng import make_stream, next_float, next_uint, pcg_hash

# Note: integrator and progressive are NOT imported here; the camera and the
# materials import core.ray, and the integrator imports both of them.
# Import directly from src.spheretrace.core.integrator or
# src.spheretrace.core.progressive when needed.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length_squared",
    "near_zero",
    "reflect",
    "refract",
    "schlick",
    "random_in_unit_sphere",
    "random_in_unit_disk",
    "MAX_REJECTION_ATTEMPTS",
    "make_stream",
    "next_float",
    "next_uint",
    "pcg_hash",
]
