"""
Unit tests for image decoding and downscaling.
"""

import base64
import io

import cv2
import numpy as np
import pytest
from PIL import Image

from pixelpalette.errors import InvalidParameterError, PaletteIOError
from pixelpalette.services.imaging import (
    decode_base64_image, downscale, load_image, normalize_downscale_factor, to_rgba_array
)


def png_bytes(mode="RGBA", size=(4, 3), color=(10, 20, 30, 40)):
    buffer = io.BytesIO()
    Image.new(mode, size, color).save(buffer, format="PNG")
    return buffer.getvalue()


class TestToRgbaArray:
    """Test normalization to H×W×4 uint8"""

    def test_gray(self):
        """Gray images are expanded and made opaque"""
        rgba = to_rgba_array(np.full((2, 3), 7, dtype=np.uint8))
        assert rgba.shape == (2, 3, 4)
        assert np.all(rgba == (7, 7, 7, 255))

    def test_rgb(self):
        """RGB images get an opaque alpha channel"""
        rgba = to_rgba_array(np.zeros((2, 2, 3), dtype=np.uint8))
        assert np.all(rgba[..., 3] == 255)

    def test_rgba_is_copied(self):
        """RGBA input is copied, not aliased"""
        source = np.zeros((2, 2, 4), dtype=np.uint8)
        rgba = to_rgba_array(source)
        rgba[0, 0] = 99
        assert source[0, 0, 0] == 0

    def test_integer_dtypes(self):
        """Wider integer arrays within 0..255 are accepted"""
        assert to_rgba_array(np.full((1, 1, 3), 200, dtype=np.int64)).dtype == np.uint8

    @pytest.mark.parametrize("bad", [
        np.zeros((2, 2, 2), dtype=np.uint8),
        np.zeros((2, 2, 3), dtype=np.float32),
        np.full((1, 1, 3), 300, dtype=np.int32),
        "not an image",
    ])
    def test_rejects_bad_input(self, bad):
        """Unsupported shapes, dtypes and types raise InvalidParameterError"""
        with pytest.raises(InvalidParameterError):
            to_rgba_array(bad)

    def test_pil_modes(self):
        """Palette and grayscale PIL images convert to RGBA"""
        assert to_rgba_array(Image.new("L", (3, 2), 50)).shape == (2, 3, 4)
        assert to_rgba_array(Image.new("P", (3, 2))).shape == (2, 3, 4)


class TestLoadImage:
    """Test decoding from paths and bytes"""

    def test_bytes(self):
        """PNG bytes decode to RGBA"""
        rgba = load_image(png_bytes())
        assert rgba.shape == (3, 4, 4)
        assert tuple(rgba[0, 0]) == (10, 20, 30, 40)

    def test_path(self, tmp_path):
        """Files decode to RGBA"""
        path = tmp_path / "img.png"
        path.write_bytes(png_bytes(mode="RGB", color=(1, 2, 3)))
        assert tuple(load_image(path)[0, 0]) == (1, 2, 3, 255)

    def test_missing_file(self, tmp_path):
        """Unreadable files raise PaletteIOError"""
        with pytest.raises(PaletteIOError):
            load_image(tmp_path / "nope.png")

    def test_garbage_bytes(self):
        """Undecodable bytes raise PaletteIOError"""
        with pytest.raises(PaletteIOError):
            load_image(b"definitely not an image")


class TestDecodeBase64Image:
    """Test base64 decoding"""

    def test_plain_and_data_url(self):
        """Raw base64 and data URLs both decode"""
        encoded = base64.b64encode(png_bytes()).decode("ascii")
        assert decode_base64_image(encoded).shape == (3, 4, 4)
        assert decode_base64_image("data:image/png;base64," + encoded).shape == (3, 4, 4)

    def test_opencv_encoded_png(self):
        """PNGs written by OpenCV decode in RGB order"""
        bgr = np.zeros((2, 2, 3), dtype=np.uint8)
        bgr[:, :] = (200, 150, 100)
        success, buffer = cv2.imencode('.png', bgr)
        assert success
        rgba = decode_base64_image(base64.b64encode(buffer.tobytes()).decode("ascii"))
        assert tuple(rgba[0, 0]) == (100, 150, 200, 255)

    def test_invalid_base64(self):
        """Invalid base64 raises InvalidParameterError"""
        with pytest.raises(InvalidParameterError):
            decode_base64_image("invalid_base64_data!")


class TestDownscale:
    """Test integer-factor downscaling"""

    @pytest.mark.parametrize("factor", [0, -2])
    def test_non_positive_factor_falls_back(self, factor):
        """Factors <= 0 become 1"""
        assert normalize_downscale_factor(factor) == 1

    def test_factor_one_is_identity(self, two_color_image):
        """Factor 1 returns the image unchanged"""
        assert downscale(two_color_image, 1) is two_color_image

    def test_area_interpolation(self, two_color_image):
        """Flat regions stay flat and size shrinks by the factor"""
        small = downscale(two_color_image, 2)
        assert small.shape == (10, 10, 4)
        assert tuple(small[0, 0]) == (255, 0, 0, 255)
        assert tuple(small[0, 9]) == (0, 0, 255, 255)

    def test_collapse_to_empty(self, two_color_image):
        """Factors larger than the image give an empty array"""
        assert downscale(two_color_image, 100).shape == (0, 0, 4)

    @pytest.mark.parametrize("factor", [2.5, 1.0, True])
    def test_non_integer_factor_rejected(self, factor):
        """Non-integer factors raise instead of being truncated"""
        with pytest.raises(InvalidParameterError):
            normalize_downscale_factor(factor)

    def test_transparent_pixels_do_not_darken(self):
        """Averaging with transparent pixels keeps the visible hue"""
        img = np.zeros((2, 2, 4), dtype=np.uint8)
        img[0, 0] = img[0, 1] = img[1, 0] = (255, 0, 0, 255)
        small = downscale(img, 2)
        assert small.shape == (1, 1, 4)
        assert tuple(small[0, 0]) == (255, 0, 0, 191)

    def test_fully_transparent_block_stays_black(self, transparent_image):
        """Blocks with no coverage come out fully transparent"""
        small = downscale(transparent_image, 4)
        assert small.shape == (4, 4, 4)
        assert not small.any()
