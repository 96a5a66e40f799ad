"""
Shared fixtures for the test suite.

Images are generated in memory with Pillow so tests never depend on files
on disk. Async tests run on AnyIO's asyncio backend.
"""

import io

import pytest
from PIL import Image, ImageCms


@pytest.fixture
def anyio_backend():
    return "asyncio"


def make_rgb_image(size: tuple[int, int] = (96, 64), noisy: bool = False) -> Image.Image:
    """An RGB image with some structure so encoders have work to do."""
    if noisy:
        channels = [Image.effect_noise(size, 80) for _ in range(3)]
    else:
        gradient = Image.linear_gradient("L").resize(size)
        channels = [gradient, gradient.transpose(Image.Transpose.FLIP_LEFT_RIGHT), gradient.rotate(180)]
    return Image.merge("RGB", channels)


def encode(image: Image.Image, fmt: str, **params) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **params)
    return buffer.getvalue()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode(make_rgb_image(), "JPEG", quality=95)


@pytest.fixture
def jpeg_with_exif_bytes() -> bytes:
    exif = Image.Exif()
    exif[0x010F] = "TestCam"  # Make
    exif[0x0131] = "unit-tests"  # Software
    return encode(make_rgb_image(), "JPEG", quality=95, exif=exif.tobytes())


@pytest.fixture
def png_bytes() -> bytes:
    return encode(make_rgb_image(), "PNG")


@pytest.fixture
def png_with_icc_bytes() -> bytes:
    profile = ImageCms.ImageCmsProfile(ImageCms.createProfile("sRGB")).tobytes()
    return encode(make_rgb_image(), "PNG", icc_profile=profile)


@pytest.fixture
def transparent_png_bytes() -> bytes:
    image = make_rgb_image()
    image.putalpha(Image.linear_gradient("L").resize(image.size))
    return encode(image, "PNG")


@pytest.fixture
def gif_bytes() -> bytes:
    return encode(make_rgb_image().convert("P"), "GIF")


@pytest.fixture
def cmyk_jpeg_bytes() -> bytes:
    return encode(make_rgb_image().convert("CMYK"), "JPEG", quality=95)
