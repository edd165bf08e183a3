"""Display transforms for rendered images.

The integrator produces linear RGB. Before an image is written or shown it
goes through an optional tone map, gamma encoding and a final clamp to
[0, 1]. Tone mapping is off by default and compresses highlights when
enabled; gamma 2 (a square root) is the classic encoding for this renderer.

Example:
    >>> import numpy as np
    >>> from src.spheretrace.preview.display import process_image_for_display
    >>> linear = np.full((2, 2, 3), 0.25, dtype=np.float32)
    >>> process_image_for_display(linear, gamma=2.0)[0, 0, 0]
    0.5
"""

from typing import Literal

import numpy as np
import numpy.typing as npt

# Type alias for tone mapping options
ToneMapMethod = Literal["none", "reinhard", "exposure"]

DEFAULT_GAMMA = 2.0


def tone_map_reinhard(
    image: npt.NDArray[np.float32],
) -> npt.NDArray[np.float32]:
    """Apply Reinhard tone mapping: c / (1 + c)."""
    image = np.maximum(image, 0.0)
    return (image / (1.0 + image)).astype(np.float32)


def tone_map_exposure(
    image: npt.NDArray[np.float32],
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Apply exposure tone mapping: 1 - exp(-c * exposure).

    Args:
        image: Linear image array of shape (H, W, 3).
        exposure: Higher values brighten the image.

    Returns:
        Tone mapped image in [0, 1].
    """
    image = np.maximum(image, 0.0)
    return (1.0 - np.exp(-image * exposure)).astype(np.float32)


def apply_gamma(
    image: npt.NDArray[np.float32],
    gamma: float = DEFAULT_GAMMA,
) -> npt.NDArray[np.float32]:
    """Gamma encode an image: out = in^(1/gamma).

    Values are clamped to [0, 1] first so negative noise cannot produce NaN.

    Raises:
        ValueError: If gamma is not positive.
    """
    if gamma <= 0.0:
        raise ValueError(f"gamma must be positive, got {gamma}")
    if gamma == 1.0:
        return image

    image = np.clip(image, 0.0, 1.0)
    return np.power(image, 1.0 / gamma).astype(np.float32)


def process_image_for_display(
    image: npt.NDArray[np.float32],
    tone_map: ToneMapMethod = "none",
    gamma: float = DEFAULT_GAMMA,
    exposure: float = 1.0,
) -> npt.NDArray[np.float32]:
    """Run the display pipeline: tone map, gamma encode, clamp.

    Args:
        image: Linear image array of shape (H, W, 3).
        tone_map: Tone mapping method ("none", "reinhard", or "exposure").
        gamma: Gamma encoding exponent.
        exposure: Exposure for the "exposure" tone map.

    Returns:
        Float32 image in [0, 1].

    Raises:
        ValueError: If tone_map is not a known method.
    """
    result = image.copy()

    if tone_map == "reinhard":
        result = tone_map_reinhard(result)
    elif tone_map == "exposure":
        result = tone_map_exposure(result, exposure)
    elif tone_map != "none":
        raise ValueError(f"Unknown tone mapping method: {tone_map}")

    result = apply_gamma(result, gamma)

    return np.clip(result, 0.0, 1.0).astype(np.float32)
