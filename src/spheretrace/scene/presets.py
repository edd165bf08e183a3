"""Ready-made scenes.

Two scenes are provided:

- The three-sphere scene: a small diffuse sphere resting on a huge diffuse
  "ground" sphere, viewed from the origin down -z. Handy for quick checks.
- The random world: a ground sphere, a scatter of small coloured diffuse
  spheres, and three large spheres (glass, brown diffuse, polished metal)
  lined up along the x axis.

Each factory returns the SceneManager together with a Camera framed for it.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.scene.presets import create_random_world
    >>> from src.spheretrace.camera.lens import setup_camera
    >>>
    >>> scene, camera = create_random_world(seed=7)
    >>> setup_camera(camera)
"""

from dataclasses import dataclass

import numpy as np

from src.spheretrace.camera.lens import Camera
from src.spheretrace.scene.manager import SceneManager

# =============================================================================
# Three-sphere scene
# =============================================================================

GROUND_ALBEDO = (0.5, 0.5, 0.5)


def create_three_sphere_scene(
    aspect_ratio: float = 2.0,
    albedo: tuple[float, float, float] = (0.5, 0.5, 0.5),
) -> tuple[SceneManager, Camera]:
    """Create a diffuse sphere sitting on a ground sphere.

    Args:
        aspect_ratio: Aspect ratio of the returned camera.
        albedo: Albedo of the small sphere.

    Returns:
        A tuple of (SceneManager, Camera). The camera sits at the origin and
        looks down -z with a 90 degree vertical field of view.
    """
    scene = SceneManager()
    scene.add_lambertian_sphere(center=(0.0, 0.0, -1.0), radius=0.5, albedo=albedo)
    scene.add_lambertian_sphere(
        center=(0.0, -100.5, -1.0), radius=100.0, albedo=GROUND_ALBEDO
    )

    camera = Camera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.0, 0.0, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=90.0,
        aspect_ratio=aspect_ratio,
        aperture=0.0,
        focus_distance=1.0,
    )
    return scene, camera


# =============================================================================
# Random world
# =============================================================================


@dataclass
class RandomWorldParams:
    """Parameters for the random world scene.

    Attributes:
        num_small_spheres: How many small diffuse spheres to scatter.
        small_radius: Radius of the small spheres.
        spread: Small sphere centers are uniform in [-spread/2, spread/2] on
            both x and z.
        glass_ref_idx: Index of refraction of the large glass sphere.
        diffuse_albedo: Albedo of the large diffuse sphere.
        metal_albedo: Albedo of the large metal sphere.
        metal_fuzz: Fuzz of the large metal sphere.
    """

    num_small_spheres: int = 100
    small_radius: float = 0.2
    spread: float = 25.0
    glass_ref_idx: float = 1.5
    diffuse_albedo: tuple[float, float, float] = (0.4, 0.2, 0.1)
    metal_albedo: tuple[float, float, float] = (0.7, 0.6, 0.5)
    metal_fuzz: float = 0.0


def create_random_world(
    params: RandomWorldParams | None = None,
    seed: int | None = None,
    aspect_ratio: float = 2.0,
) -> tuple[SceneManager, Camera]:
    """Create the random world scene.

    Sphere order: the ground, then the small spheres, then the glass, diffuse
    and metal spheres.

    Args:
        params: Scene parameters. Defaults to RandomWorldParams().
        seed: Seed for the sphere layout and colours. None draws fresh
            entropy, so the layout differs between calls.
        aspect_ratio: Aspect ratio of the returned camera.

    Returns:
        A tuple of (SceneManager, Camera).

    Raises:
        ValueError: If num_small_spheres is negative.
    """
    if params is None:
        params = RandomWorldParams()
    if params.num_small_spheres < 0:
        raise ValueError(
            f"num_small_spheres must be non-negative, got {params.num_small_spheres}"
        )

    rng = np.random.default_rng(seed)
    scene = SceneManager()

    scene.add_lambertian_sphere(
        center=(0.0, -1000.0, 0.0), radius=1000.0, albedo=GROUND_ALBEDO
    )

    for _ in range(params.num_small_spheres):
        x, z = params.spread * (rng.random(2) - 0.5)
        albedo = tuple(float(c) for c in rng.random(3))
        scene.add_lambertian_sphere(
            center=(float(x), params.small_radius, float(z)),
            radius=params.small_radius,
            albedo=albedo,
        )

    scene.add_dielectric_sphere(center=(0.0, 1.0, 0.0), radius=1.0, ref_idx=params.glass_ref_idx)
    scene.add_lambertian_sphere(
        center=(-4.0, 1.0, 0.0), radius=1.0, albedo=params.diffuse_albedo
    )
    scene.add_metal_sphere(
        center=(4.0, 1.0, 0.0),
        radius=1.0,
        albedo=params.metal_albedo,
        fuzz=params.metal_fuzz,
    )

    camera = Camera(
        lookfrom=(13.0, 2.0, 3.0),
        lookat=(0.0, 0.0, 0.0),
        vup=(0.0, 1.0, 0.0),
        vfov=20.0,
        aspect_ratio=aspect_ratio,
        aperture=0.1,
        focus_distance=10.0,
    )
    return scene, camera
