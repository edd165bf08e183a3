"""Progressive renderer for iterative sample accumulation.

ProgressiveRenderer wraps the integrator's render target so a render can be
refined in batches, with progress reported after each batch either through a
callback or by iterating a generator.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.spheretrace.core.progressive import ProgressiveRenderer
    >>> from src.spheretrace.scene.presets import create_three_sphere_scene
    >>> from src.spheretrace.camera.lens import setup_camera
    >>>
    >>> scene, camera = create_three_sphere_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = ProgressiveRenderer(200, 100, seed=3)
    >>> renderer.render(64, batch_size=16)
    >>> renderer.save_image("spheres.ppm")
"""

from collections.abc import Callable, Generator
from typing import Any

import numpy as np
import numpy.typing as npt

from src.spheretrace.core.integrator import (
    clear_render_target,
    get_image,
    get_normalized_image_numpy,
    get_total_samples,
    render_image,
    setup_render_target,
)
from src.spheretrace.preview.export import image_to_uint8, save_image_array

# Callback receives (current_samples, total_target_samples)
ProgressCallback = Callable[[int, int], None]


class ProgressiveRenderer:
    """Accumulates samples per pixel over repeated render calls.

    The renderer keeps the image size and seed; the pixel data itself lives
    in the integrator's module-level Taichi fields, so only one renderer is
    live at a time.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        seed: Render seed. With the same scene, camera and seed, the image
            after N samples does not depend on how they were batched.
    """

    def __init__(self, width: int, height: int, seed: int = 0) -> None:
        """Set up the render target.

        Raises:
            ValueError: If the dimensions are not positive or exceed the
                maximum supported size.
        """
        self._width = width
        self._height = height
        self.seed = seed
        setup_render_target(width, height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def sample_count(self) -> int:
        """Current number of accumulated samples per pixel."""
        return get_total_samples()

    def reset(self) -> None:
        """Discard the accumulated samples, keeping the size and seed."""
        clear_render_target()

    def resize(self, width: int, height: int) -> None:
        """Change the image size. This discards the accumulated samples.

        Raises:
            ValueError: If the dimensions are invalid.
        """
        self._width = width
        self._height = height
        setup_render_target(width, height)

    def _batches(self, num_samples: int, batch_size: int) -> Generator[tuple[int, int], None, None]:
        if batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {batch_size}")

        target_samples = self.sample_count + num_samples
        remaining = num_samples
        while remaining > 0:
            batch = min(batch_size, remaining)
            render_image(batch, seed=self.seed)
            remaining -= batch
            yield (self.sample_count, target_samples)

    def render(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
        callback: ProgressCallback | None = None,
    ) -> None:
        """Add num_samples samples per pixel.

        Args:
            num_samples: Total number of samples to add. Nothing happens if
                this is not positive.
            batch_size: Number of samples to render before each callback.
            callback: Called after each batch with
                (current_total_samples, target_total_samples).

        Raises:
            ValueError: If batch_size is not positive.
        """
        if num_samples <= 0:
            return

        for current, target in self._batches(num_samples, batch_size):
            if callback is not None:
                callback(current, target)

    def render_progressive(
        self,
        num_samples: int = 1,
        batch_size: int = 1,
    ) -> Generator[tuple[int, int], None, None]:
        """Generator form of render().

        Yields:
            Tuple of (current_total_samples, target_total_samples) after
            each batch.

        Example:
            >>> for current, target in renderer.render_progressive(100, batch_size=10):
            ...     print(f"Progress: {current}/{target} samples")
        """
        if num_samples <= 0:
            return

        yield from self._batches(num_samples, batch_size)

    def get_image(self) -> Any:
        """Get the raw Taichi colour buffer (full preallocated size)."""
        return get_image()

    def get_image_numpy(self, gamma: float = 1.0) -> npt.NDArray[np.float32]:
        """Get the image as a (height, width, 3) float32 array in [0, 1].

        Args:
            gamma: Gamma encoding exponent. 1.0 leaves the image linear.
        """
        image = get_normalized_image_numpy()

        if gamma != 1.0:
            image = np.power(image, 1.0 / gamma)

        return image

    def get_image_uint8(self, gamma: float = 2.0) -> npt.NDArray[np.uint8]:
        """Get the image gamma encoded and quantised to 8 bits."""
        return image_to_uint8(self.get_image_numpy(gamma=gamma))

    def save_image(self, filepath: str, gamma: float = 2.0) -> None:
        """Save the image; the format follows the file extension."""
        save_image_array(get_normalized_image_numpy(), filepath, gamma=gamma)

    def __repr__(self) -> str:
        return (
            f"ProgressiveRenderer(width={self.width}, height={self.height}, "
            f"samples={self.sample_count}, seed={self.seed})"
        )
