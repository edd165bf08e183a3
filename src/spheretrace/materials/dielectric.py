"""Dielectric (glass/water) material implementation.

This module implements dielectric scattering for clear materials like glass
and water, which both reflect and refract light.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when no refracted direction exists

Hit normals always point out of the sphere, so the side of the surface the
ray arrives from is read from the sign of dot(incident, normal): positive
means the ray is leaving the material.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.materials.dielectric import scatter_dielectric
    >>> # Use within a Taichi kernel:
    >>> # direction, attenuation, did_scatter, state = scatter_dielectric(
    >>> #     ref_idx, incident_dir, normal, state
    >>> # )
"""

import taichi as ti
import taichi.math as tm

from src.spheretrace.core.ray import (
    reflect,
    refract,
    schlick,
)
from src.spheretrace.core.rng import next_float

# Type alias for 3D vectors
vec3 = tm.vec3


@ti.dataclass
class DielectricMaterial:
    """Dielectric (glass/water) material properties.

    Attributes:
        ref_idx: Index of refraction. Common values:
            - Air: 1.0
            - Water: 1.33
            - Glass: 1.5
            - Diamond: 2.4
    """

    ref_idx: ti.f32


@ti.func
def dielectric_interface(ref_idx: ti.f32, incident_direction: vec3, normal: vec3):
    """Work out which side of the surface the ray is on.

    Args:
        ref_idx: Index of refraction of the material.
        incident_direction: The incoming ray direction (any non-zero length).
        normal: The unit outward surface normal.

    Returns:
        A tuple of (outward_normal, ni_over_nt, cosine):
        - outward_normal: The normal flipped to face the incident ray.
        - ni_over_nt: Ratio of refractive indices across the interface.
        - cosine: Cosine term used for Schlick's approximation.
    """
    d = tm.dot(incident_direction, normal)
    length = tm.length(incident_direction)

    outward_normal = normal
    ni_over_nt = 1.0 / ref_idx
    cosine = -d / length
    if d > 0.0:
        # Leaving the material
        outward_normal = -normal
        ni_over_nt = ref_idx
        cosine = ref_idx * d / length

    return outward_normal, ni_over_nt, cosine


@ti.func
def scatter_dielectric(
    ref_idx: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Compute the scattered direction for a dielectric surface.

    One uniform draw picks between reflection and refraction. Reflection
    mirrors the incident direction as given, unnormalized; refraction uses the
    Snell direction computed from the normalized incident direction.

    Args:
        ref_idx: Index of refraction of the material.
        incident_direction: The incoming ray direction (any non-zero length).
        normal: The unit outward surface normal.
        state: The generator state.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state):
        - scattered_direction: The reflected or refracted direction.
        - attenuation: White; clear glass absorbs nothing.
        - did_scatter: Always 1.
        - state: The advanced generator state.
    """
    attenuation = vec3(1.0, 1.0, 1.0)

    outward_normal, ni_over_nt, cosine = dielectric_interface(
        ref_idx, incident_direction, normal
    )
    refracted, can_refract = refract(incident_direction, outward_normal, ni_over_nt)

    probability = 1.0
    if can_refract == 1:
        probability = schlick(cosine, ref_idx)

    sample, rng = next_float(state)

    scattered_direction = refracted
    if sample < probability:
        scattered_direction = reflect(incident_direction, normal)

    return scattered_direction, attenuation, 1, rng


# =============================================================================
# Material Field Storage (for scene-level material management)
# =============================================================================

# Maximum number of dielectric materials in the scene
MAX_DIELECTRIC_MATERIALS = 256

# Storage for dielectric material properties
dielectric_ref_indices = ti.field(dtype=ti.f32, shape=MAX_DIELECTRIC_MATERIALS)
num_dielectric_materials = ti.field(dtype=ti.i32, shape=())


def clear_dielectric_materials() -> None:
    """Clear all dielectric materials.

    Resets the material count to zero. Existing data in the field will be
    overwritten when new materials are added.
    """
    num_dielectric_materials[None] = 0


def add_dielectric_material(ref_idx: float = 1.5) -> int:
    """Add a dielectric material to the material registry.

    Args:
        ref_idx: Index of refraction. Default is 1.5 (typical glass).
            Must be positive.

    Returns:
        The index of the added material.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If the index of refraction is not positive.
    """
    if ref_idx <= 0.0:
        raise ValueError(
            f"Index of refraction = {ref_idx} must be positive."
        )

    idx = num_dielectric_materials[None]
    if idx >= MAX_DIELECTRIC_MATERIALS:
        raise RuntimeError(
            f"Maximum number of dielectric materials ({MAX_DIELECTRIC_MATERIALS}) exceeded"
        )

    dielectric_ref_indices[idx] = ref_idx
    num_dielectric_materials[None] = idx + 1
    return idx


def get_dielectric_material_count() -> int:
    """Get the number of dielectric materials in the registry."""
    return int(num_dielectric_materials[None])


@ti.func
def get_dielectric_ref_idx(material_idx: ti.i32) -> ti.f32:
    return dielectric_ref_indices[material_idx]


@ti.func
def scatter_dielectric_by_id(
    material_idx: ti.i32,
    incident_direction: vec3,
    normal: vec3,
    state: ti.u32,
):
    """Scatter off a registered dielectric material.

    Returns:
        A tuple of (scattered_direction, attenuation, did_scatter, state).
    """
    ref_idx = get_dielectric_ref_idx(material_idx)
    return scatter_dielectric(ref_idx, incident_direction, normal, state)
