"""Image export utilities for rendered images.

Float images in [0, 1] are quantised to 8 bits by scaling with 255.99 and
truncating, so only an exact 1.0 maps to 255 and every code gets an equal
share of the range.

Supported formats:
    - PNG (via Pillow)
    - PPM, binary P6 (via Pillow)

Any other extension Pillow recognises also works.

Example:
    >>> import numpy as np
    >>> from src.spheretrace.preview.export import save_image_array
    >>> image = np.zeros((100, 200, 3), dtype=np.float32)
    >>> save_image_array(image, "black.ppm")
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

from src.spheretrace.preview.display import (
    DEFAULT_GAMMA,
    ToneMapMethod,
    process_image_for_display,
)

if TYPE_CHECKING:
    from src.spheretrace.core.progressive import ProgressiveRenderer

QUANTIZE_SCALE = 255.99

# Pillow format names for the extensions written most often
IMAGE_FORMATS = {
    ".png": "PNG",
    ".ppm": "PPM",
}


def quantize(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Map [0, 1] floats to 8-bit codes: floor(clamp(c) * 255.99)."""
    clamped = np.clip(image, 0.0, 1.0)
    return (clamped * QUANTIZE_SCALE).astype(np.uint8)


def image_to_uint8(
    image: npt.NDArray[np.float32],
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = 1.0,
    exposure: float = 1.0,
) -> npt.NDArray[np.uint8]:
    """Convert a float image to uint8.

    The default gamma of 1.0 only quantises, for images that are already
    encoded.

    Args:
        image: Image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding exponent.
        exposure: Exposure for the "exposure" tone map.

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    processed = process_image_for_display(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
    return quantize(processed)


def save_image_array(
    image: npt.NDArray[np.float32],
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = DEFAULT_GAMMA,
    exposure: float = 1.0,
) -> None:
    """Encode a linear image and write it to disk.

    Args:
        image: Linear image array of shape (H, W, 3), top row first.
        filepath: Output path; the extension picks the format.
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding exponent (default 2, a square root).
        exposure: Exposure for the "exposure" tone map.

    Raises:
        ValueError: If the image is not (H, W, 3) or Pillow does not know
            the extension.
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an (H, W, 3) image, got shape {image.shape}")

    image_uint8 = image_to_uint8(
        image,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )

    path = Path(filepath)
    pil_image = PILImage.fromarray(image_uint8)
    pil_image.save(path, format=IMAGE_FORMATS.get(path.suffix.lower()))


def save_render(
    renderer: ProgressiveRenderer,
    filepath: str | Path,
    *,
    tone_map: ToneMapMethod = "none",
    gamma: float = DEFAULT_GAMMA,
    exposure: float = 1.0,
) -> None:
    """Save the current state of a progressive render.

    Example:
        >>> renderer = ProgressiveRenderer(200, 100)
        >>> renderer.render(100)
        >>> save_render(renderer, "render.png")
    """
    save_image_array(
        renderer.get_image_numpy(gamma=1.0),
        filepath,
        tone_map=tone_map,
        gamma=gamma,
        exposure=exposure,
    )
