"""Scene builder that ties spheres to their materials.

Each material kind (Lambertian, Metal, Dielectric) keeps its own parameter
table. The SceneManager hands out a single material ID space on top of
those tables and records, for every ID, which kind it is and where its
parameters live. The integrator uses that mapping to dispatch scattering.

The SceneManager maintains:
- A unified material_id space across all material kinds
- Mapping from material_id to (material_type, type_local_index)
- Validation of sphere and material parameters before they reach the fields
- Round-tripping of the whole scene through plain dictionaries

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> ground = scene.add_lambertian_material(albedo=(0.5, 0.5, 0.5))
    >>> scene.add_sphere(center=(0, -100.5, -1), radius=100, material_id=ground)
    >>> scene.add_dielectric_sphere(center=(0, 0, -1), radius=0.5, ref_idx=1.5)
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import taichi as ti
import taichi.math as tm

from src.spheretrace.materials.dielectric import (
    MAX_DIELECTRIC_MATERIALS,
    add_dielectric_material,
    clear_dielectric_materials,
)
from src.spheretrace.materials.lambertian import (
    MAX_LAMBERTIAN_MATERIALS,
    add_lambertian_material,
    clear_lambertian_materials,
)
from src.spheretrace.materials.metal import (
    MAX_METAL_MATERIALS,
    add_metal_material,
    clamp_fuzz,
    clear_metal_materials,
)
from src.spheretrace.scene.intersection import (
    MAX_SPHERES,
    add_sphere,
    clear_scene,
    get_sphere_count,
)

# Type alias for 3D vectors
vec3 = tm.vec3


class MaterialType(IntEnum):
    """The closed set of material kinds the integrator can dispatch on."""

    LAMBERTIAN = 0
    METAL = 1
    DIELECTRIC = 2


# Maximum number of materials across all kinds
MAX_MATERIALS = MAX_LAMBERTIAN_MATERIALS + MAX_METAL_MATERIALS + MAX_DIELECTRIC_MATERIALS

# material_types[i] is the MaterialType of material_id i
material_types = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
# material_type_indices[i] is the row of material_id i in its kind's table
# (e.g. if material_id 5 is the 2nd metal, material_type_indices[5] = 1)
material_type_indices = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_material_tracking() -> None:
    """Forget every material ID."""
    num_materials[None] = 0


@ti.func
def get_material_type(material_id: ti.i32) -> ti.i32:
    """Get the material kind for a material ID inside a kernel.

    Returns:
        The MaterialType as an integer, or -1 for an unknown ID.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_types[material_id]
    return result


@ti.func
def get_material_type_index(material_id: ti.i32) -> ti.i32:
    """Get the row of a material ID in its kind's parameter table.

    Returns:
        The type-local index, or -1 for an unknown ID.
    """
    result = -1
    if 0 <= material_id < num_materials[None]:
        result = material_type_indices[material_id]
    return result


def _as_triple(values: Any, name: str) -> tuple[float, float, float]:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The unified material ID.
        material_type: The kind of material.
        type_index: The row within the kind's parameter table.
        params: The material parameters as stored (fuzz already clamped).
    """

    material_id: int
    material_type: MaterialType
    type_index: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene."""

    sphere_index: int
    center: tuple[float, float, float]
    radius: float
    material_id: int


@dataclass
class SceneConfig:
    """Plain-data description of a scene.

    Attributes:
        materials: One dict per material, in material ID order. Each has a
            "type" key ("lambertian", "metal" or "dielectric") plus the
            kind's parameters.
        spheres: One dict per sphere with "center", "radius" and
            "material_id" keys.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)


class SceneManager:
    """Builds a scene of spheres with materials.

    The manager owns the module-level Taichi tables: creating one clears
    whatever scene was there before. Only one scene is live at a time.

    Attributes:
        materials: MaterialInfo for every registered material, indexed by ID.
        spheres: SphereInfo for every sphere, in insertion order.

    Example:
        >>> scene = SceneManager()
        >>> brown = scene.add_lambertian_material(albedo=(0.4, 0.2, 0.1))
        >>> steel = scene.add_metal_material(albedo=(0.7, 0.6, 0.5), fuzz=0.0)
        >>> glass = scene.add_dielectric_material(ref_idx=1.5)
        >>> scene.add_sphere((-4, 1, 0), 1.0, brown)
        >>> scene.add_sphere((4, 1, 0), 1.0, steel)
        >>> scene.add_sphere((0, 1, 0), 1.0, glass)
    """

    def __init__(self) -> None:
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.clear()

    def clear(self) -> None:
        """Remove every sphere and material, including the Taichi tables."""
        clear_scene()
        clear_lambertian_materials()
        clear_metal_materials()
        clear_dielectric_materials()
        clear_material_tracking()
        self.materials.clear()
        self.spheres.clear()

    # =========================================================================
    # Material Management
    # =========================================================================

    def _register_material(
        self,
        material_type: MaterialType,
        type_index: int,
        params: dict[str, Any],
    ) -> int:
        material_id = num_materials[None]
        if material_id >= MAX_MATERIALS:
            raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

        material_types[material_id] = int(material_type)
        material_type_indices[material_id] = type_index
        num_materials[None] = material_id + 1

        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                material_type=material_type,
                type_index=type_index,
                params=params,
            )
        )
        return material_id

    def add_lambertian_material(self, albedo: tuple[float, float, float]) -> int:
        """Add a diffuse material.

        Args:
            albedo: The diffuse reflectance as (R, G, B), each in [0, 1].

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If a material table is full.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_triple(albedo, "Albedo")
        type_index = add_lambertian_material(albedo)
        return self._register_material(
            MaterialType.LAMBERTIAN, type_index, {"albedo": albedo}
        )

    def add_metal_material(
        self,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> int:
        """Add a metal material.

        Args:
            albedo: The reflective colour as (R, G, B), each in [0, 1].
            fuzz: Reflection blur. Clamped into [0, 1]; 0 is a perfect mirror.

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If a material table is full.
            ValueError: If any albedo component is outside [0, 1].
        """
        albedo = _as_triple(albedo, "Albedo")
        type_index = add_metal_material(albedo, fuzz)
        return self._register_material(
            MaterialType.METAL,
            type_index,
            {"albedo": albedo, "fuzz": clamp_fuzz(fuzz)},
        )

    def add_dielectric_material(self, ref_idx: float = 1.5) -> int:
        """Add a clear refractive material.

        Args:
            ref_idx: Index of refraction, must be positive. Default 1.5 (glass).

        Returns:
            The unified material ID.

        Raises:
            RuntimeError: If a material table is full.
            ValueError: If ref_idx is not positive.
        """
        type_index = add_dielectric_material(ref_idx)
        return self._register_material(
            MaterialType.DIELECTRIC, type_index, {"ref_idx": float(ref_idx)}
        )

    def get_material_count(self) -> int:
        return int(num_materials[None])

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Look up a material by ID, or None if there is no such material."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    def get_material_type_python(self, material_id: int) -> MaterialType | None:
        """Python-side counterpart of the get_material_type() Taichi function."""
        info = self.get_material_info(material_id)
        if info is None:
            return None
        return info.material_type

    # =========================================================================
    # Spheres
    # =========================================================================

    def add_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere that uses an existing material.

        Args:
            center: The center as (x, y, z).
            radius: The radius, must be positive.
            material_id: An ID returned by one of the add_*_material methods.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the maximum number of spheres is exceeded.
            ValueError: If the radius is not positive or material_id is invalid.
        """
        if material_id < 0 or material_id >= num_materials[None]:
            raise ValueError(f"Invalid material_id: {material_id}")

        center = _as_triple(center, "Center")
        sphere_index = add_sphere(vec3(*center), float(radius), material_id)

        self.spheres.append(
            SphereInfo(
                sphere_index=sphere_index,
                center=center,
                radius=float(radius),
                material_id=material_id,
            )
        )
        return sphere_index

    def add_lambertian_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
    ) -> tuple[int, int]:
        """Add a sphere with a new diffuse material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_lambertian_material(albedo)
        return self.add_sphere(center, radius, material_id), material_id

    def add_metal_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        albedo: tuple[float, float, float],
        fuzz: float = 0.0,
    ) -> tuple[int, int]:
        """Add a sphere with a new metal material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_metal_material(albedo, fuzz)
        return self.add_sphere(center, radius, material_id), material_id

    def add_dielectric_sphere(
        self,
        center: tuple[float, float, float],
        radius: float,
        ref_idx: float = 1.5,
    ) -> tuple[int, int]:
        """Add a sphere with a new dielectric material.

        Returns:
            Tuple of (sphere_index, material_id).
        """
        material_id = self.add_dielectric_material(ref_idx)
        return self.add_sphere(center, radius, material_id), material_id

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene as a SceneConfig."""
        config = SceneConfig()

        for mat in self.materials:
            entry: dict[str, Any] = {"type": mat.material_type.name.lower()}
            for key, value in mat.params.items():
                entry[key] = list(value) if isinstance(value, tuple) else value
            config.materials.append(entry)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Replace the current scene with the one described by config.

        Materials are loaded first so that sphere material IDs resolve.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for entry in config.materials:
            kind = str(entry.get("type", "")).lower()
            if kind == "lambertian":
                self.add_lambertian_material(entry.get("albedo", [0.5, 0.5, 0.5]))
            elif kind == "metal":
                self.add_metal_material(
                    entry.get("albedo", [0.8, 0.8, 0.8]),
                    entry.get("fuzz", 0.0),
                )
            elif kind == "dielectric":
                self.add_dielectric_material(entry.get("ref_idx", 1.5))
            else:
                raise ValueError(f"Unknown material type: {kind}")

        for entry in config.spheres:
            if "radius" not in entry or "material_id" not in entry:
                raise ValueError(f"Sphere entry needs radius and material_id: {entry}")
            self.add_sphere(
                entry.get("center", [0.0, 0.0, 0.0]),
                entry["radius"],
                int(entry["material_id"]),
            )

    def to_dict(self) -> dict[str, Any]:
        """Export the scene as a JSON-serialisable dictionary."""
        config = self.to_config()
        return {"materials": config.materials, "spheres": config.spheres}

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary with 'materials' and 'spheres' keys."""
        self.from_config(
            SceneConfig(
                materials=data.get("materials", []),
                spheres=data.get("spheres", []),
            )
        )

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS
