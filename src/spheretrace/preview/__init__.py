"""Preview module for image output.

Components:
    display: Tone mapping and gamma encoding
    export: 8-bit quantisation and PNG/PPM writing through Pillow

Example:
    >>> from src.spheretrace.preview import save_render
    >>> from src.spheretrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(200, 100)
    >>> renderer.render(100)
    >>> save_render(renderer, "output.png", gamma=2.0)
"""

from src.spheretrace.preview.display import (
    DEFAULT_GAMMA,
    ToneMapMethod,
    apply_gamma,
    process_image_for_display,
    tone_map_exposure,
    tone_map_reinhard,
)
from src.spheretrace.preview.export import (
    image_to_uint8,
    quantize,
    save_image_array,
    save_render,
)

__all__ = [
    # Tone mapping
    "tone_map_reinhard",
    "tone_map_exposure",
    "apply_gamma",
    "process_image_for_display",
    "ToneMapMethod",
    "DEFAULT_GAMMA",
    # Export functions
    "quantize",
    "image_to_uint8",
    "save_image_array",
    "save_render",
]
