"""Camera module for view and ray generation.

Components:
    lens: Look-at camera with a thin lens for depth of field

Ray generation uses normalized image coordinates:
    s in [0, 1]: left to right across image
    t in [0, 1]: bottom to top across image
"""

from .lens import (
    Camera,
    generate_ray,
    get_camera_info,
    get_ray,
    get_ray_jittered,
    setup_camera,
    validate_camera,
)

__all__ = [
    "Camera",
    "setup_camera",
    "validate_camera",
    "get_ray",
    "get_ray_jittered",
    "generate_ray",
    "get_camera_info",
]
