"""Scene module for sphere storage, scene building and presets.

Components:
    intersection: Sphere fields and the closest-hit linear scan
    manager: SceneManager with a unified material ID space
    presets: Three-sphere scene and random world

Scene data is laid out for kernel access:
    - Structure-of-Arrays fields for sphere centers, radii and material IDs
    - Per-kind material tables addressed through material_type_indices
"""

from .intersection import (
    MAX_SPHERES,
    T_MAX,
    T_MIN,
    ClosestHit,
    SceneHitRecord,
    add_sphere,
    clear_scene,
    closest_hit,
    get_sphere_count,
    intersect_scene,
)
from .manager import (
    MAX_MATERIALS,
    MaterialInfo,
    MaterialType,
    SceneConfig,
    SceneManager,
    SphereInfo,
    clear_material_tracking,
    get_material_type,
    get_material_type_index,
)
from .presets import (
    RandomWorldParams,
    create_random_world,
    create_three_sphere_scene,
)

__all__ = [
    # Intersection
    "SceneHitRecord",
    "ClosestHit",
    "add_sphere",
    "clear_scene",
    "closest_hit",
    "get_sphere_count",
    "intersect_scene",
    "MAX_SPHERES",
    "T_MIN",
    "T_MAX",
    # Manager
    "SceneManager",
    "MaterialType",
    "MaterialInfo",
    "SphereInfo",
    "SceneConfig",
    "MAX_MATERIALS",
    "clear_material_tracking",
    "get_material_type",
    "get_material_type_index",
    # Presets
    "RandomWorldParams",
    "create_random_world",
    "create_three_sphere_scene",
]
