"""Tests for the preview module.

This module tests the preview/display and preview/export functionality including:
- Tone mapping functions (Reinhard, exposure)
- Gamma encoding
- 8-bit quantisation
- PNG and PPM export
"""

import numpy as np
import pytest
from PIL import Image as PILImage


class TestToneMapping:
    """Test tone mapping functions."""

    def test_reinhard(self):
        from src.spheretrace.preview.display import tone_map_reinhard

        image = np.array([[[0.0, 1.0, 3.0]]], dtype=np.float32)
        result = tone_map_reinhard(image)
        np.testing.assert_allclose(result[0, 0], [0.0, 0.5, 0.75], atol=1e-6)

    def test_reinhard_clamps_negative(self):
        from src.spheretrace.preview.display import tone_map_reinhard

        image = np.full((2, 2, 3), -1.0, dtype=np.float32)
        assert tone_map_reinhard(image).min() == 0.0

    def test_exposure(self):
        from src.spheretrace.preview.display import tone_map_exposure

        image = np.full((1, 1, 3), 1.0, dtype=np.float32)
        result = tone_map_exposure(image, exposure=2.0)
        np.testing.assert_allclose(result, 1.0 - np.exp(-2.0), atol=1e-6)

    def test_unknown_method_raises(self):
        from src.spheretrace.preview.display import process_image_for_display

        with pytest.raises(ValueError):
            process_image_for_display(np.zeros((1, 1, 3), dtype=np.float32), tone_map="aces")


class TestGamma:
    """Test gamma encoding."""

    def test_gamma_two_is_square_root(self):
        from src.spheretrace.preview.display import apply_gamma

        image = np.array([[[0.0, 0.25, 1.0]]], dtype=np.float32)
        np.testing.assert_allclose(apply_gamma(image, 2.0)[0, 0], [0.0, 0.5, 1.0], atol=1e-6)

    def test_gamma_one_is_identity(self):
        from src.spheretrace.preview.display import apply_gamma

        image = np.random.default_rng(0).random((3, 3, 3)).astype(np.float32)
        np.testing.assert_array_equal(apply_gamma(image, 1.0), image)

    @pytest.mark.parametrize("gamma", [0.0, -2.0])
    def test_non_positive_gamma_raises(self, gamma):
        from src.spheretrace.preview.display import apply_gamma

        with pytest.raises(ValueError):
            apply_gamma(np.zeros((1, 1, 3), dtype=np.float32), gamma)

    def test_pipeline_clamps(self):
        from src.spheretrace.preview.display import process_image_for_display

        image = np.array([[[-0.5, 0.5, 2.0]]], dtype=np.float32)
        result = process_image_for_display(image, gamma=1.0)
        np.testing.assert_allclose(result[0, 0], [0.0, 0.5, 1.0])


class TestQuantize:
    """Test 8-bit quantisation."""

    def test_scale(self):
        from src.spheretrace.preview.export import quantize

        image = np.array([[[0.0, 0.5, 1.0]]], dtype=np.float32)
        assert quantize(image)[0, 0].tolist() == [0, 127, 255]

    def test_out_of_range_is_clamped(self):
        from src.spheretrace.preview.export import quantize

        image = np.array([[[-1.0, 0.999, 5.0]]], dtype=np.float32)
        assert quantize(image)[0, 0].tolist() == [0, 255, 255]

    def test_image_to_uint8_with_gamma(self):
        from src.spheretrace.preview.export import image_to_uint8

        image = np.full((2, 2, 3), 0.25, dtype=np.float32)
        result = image_to_uint8(image, gamma=2.0)
        assert result.dtype == np.uint8
        assert (result == 127).all()


class TestExport:
    """Test image file export."""

    @pytest.mark.parametrize("suffix, fmt", [(".png", "PNG"), (".ppm", "PPM")])
    def test_save_formats(self, tmp_path, suffix, fmt):
        from src.spheretrace.preview.export import save_image_array

        image = np.zeros((4, 6, 3), dtype=np.float32)
        image[0, :, :] = 1.0
        path = tmp_path / f"image{suffix}"
        save_image_array(image, path)

        with PILImage.open(path) as img:
            assert img.format == fmt
            assert img.size == (6, 4)
            pixels = np.asarray(img)
        assert (pixels[0] == 255).all()
        assert (pixels[1:] == 0).all()

    def test_save_applies_gamma(self, tmp_path):
        from src.spheretrace.preview.export import save_image_array

        path = tmp_path / "gray.png"
        save_image_array(np.full((2, 2, 3), 0.25, dtype=np.float32), path)

        with PILImage.open(path) as img:
            assert (np.asarray(img) == 127).all()

    def test_wrong_shape_raises(self, tmp_path):
        from src.spheretrace.preview.export import save_image_array

        with pytest.raises(ValueError):
            save_image_array(np.zeros((4, 4), dtype=np.float32), tmp_path / "bad.png")
