"""Taichi-based Monte Carlo path tracer for sphere scenes.

This package renders images by tracing rays through a scene of spheres with
Lambertian, metal and dielectric materials, lit only by a sky gradient.

Subpackages:
    core: Ray type, random number streams, the colour integrator and the
        progressive renderer
    geometry: Sphere primitive and its ray hit test
    materials: Scattering models (Lambertian, metal, dielectric)
    scene: Sphere storage, closest-hit queries, scene building and presets
    camera: Look-at camera with optional depth of field
    preview: Gamma encoding and image export
"""

__version__ = "0.1.0"
