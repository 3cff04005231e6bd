import math
import random

from PIL import Image

from deskpilot.capture import _encode, base64_size, compress_image
from deskpilot.config import Settings


def _noise(width=400, height=300, seed=0):
    data = random.Random(seed).randbytes(width * height * 3)
    return Image.frombytes("RGB", (width, height), data)


def test_base64_size():
    assert base64_size(0) == 0
    assert base64_size(1) == 4
    assert base64_size(3) == 4
    assert base64_size(4) == 8


def test_first_quality_level_used_when_it_fits():
    image = Image.new("RGB", (320, 200), (200, 30, 30))
    encoded = compress_image(image, Settings())
    assert encoded.media_type == "image/jpeg"
    assert encoded.quality == 85
    assert encoded.scale == 1.0
    assert (encoded.width, encoded.height) == (320, 200)
    assert encoded.data[:2] == b"\xff\xd8"


def test_downscale_used_when_no_quality_level_fits():
    image = _noise()
    scaled = image.resize(
        (math.floor(400 * 0.3), math.floor(300 * 0.3)), Image.Resampling.LANCZOS
    )
    ceiling = base64_size(len(_encode(scaled, "JPEG", quality=50)))
    settings = Settings(
        image_quality_levels=[40, 30], image_scale_factors=[0.3], max_image_bytes=ceiling
    )
    assert base64_size(len(_encode(image, "JPEG", quality=30))) > ceiling

    encoded = compress_image(image, settings)
    assert encoded.media_type == "image/jpeg"
    assert encoded.scale == 0.3
    assert encoded.quality == 50
    assert (encoded.width, encoded.height) == scaled.size
    assert encoded.encoded_size <= ceiling


def test_lossless_fallback_always_returns_payload():
    image = _noise(120, 80)
    encoded = compress_image(image, Settings(max_image_bytes=1))
    assert encoded.media_type == "image/png"
    assert encoded.data.startswith(b"\x89PNG")
    assert (encoded.width, encoded.height) == (120, 80)
    assert encoded.encoded_size > 1


def test_rgba_images_are_encoded():
    image = Image.new("RGBA", (64, 64), (0, 0, 0, 128))
    encoded = compress_image(image, Settings())
    assert encoded.media_type == "image/jpeg"
    assert encoded.base64().startswith("/9j/")
