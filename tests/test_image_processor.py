import io

import pytest
from PIL import Image

from errors import InvalidImageError
from image_processor import (
    FALLBACK_PRESETS, create_thumbnail, fallback_transform, image_dimensions, optimize_image, validate_image,
)
from models import DesignType, ALL_DESIGN_TYPES

from conftest import make_image_bytes


def test_validate_image_returns_dimensions_and_format():
    info = validate_image(make_image_bytes((1024, 768)))
    assert (info.width, info.height) == (1024, 768)
    assert info.format == 'JPEG'


@pytest.mark.parametrize('size', [(150, 600), (600, 199), (4001, 800)])
def test_validate_image_rejects_out_of_range_sizes(size):
    with pytest.raises(InvalidImageError):
        validate_image(make_image_bytes(size))


def test_validate_image_accepts_boundaries():
    assert validate_image(make_image_bytes((200, 200), fmt='PNG')).format == 'PNG'
    assert validate_image(make_image_bytes((4000, 200))).width == 4000


def test_validate_image_rejects_garbage():
    with pytest.raises(InvalidImageError) as excinfo:
        validate_image(b'definitely not an image')
    assert excinfo.value.status_code == 400
    assert excinfo.value.error == 'Invalid image'


def test_validate_image_rejects_decompression_bomb(monkeypatch):
    data = make_image_bytes((1024, 768), fmt='PNG')
    monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)
    with pytest.raises(InvalidImageError) as excinfo:
        validate_image(data)
    assert excinfo.value.status_code == 400
    assert image_dimensions(data) == (None, None)


def test_image_dimensions_unreadable():
    assert image_dimensions(b'nope') == (None, None)


def test_thumbnail_fits_bounding_box():
    thumb = create_thumbnail(make_image_bytes((1024, 768)))
    with Image.open(io.BytesIO(thumb)) as img:
        assert img.format == 'JPEG'
        assert img.size == (300, 225)


def test_every_design_type_has_a_preset():
    assert set(FALLBACK_PRESETS) == set(ALL_DESIGN_TYPES)
    assert FALLBACK_PRESETS[DesignType.FESTIVE].overlay == (180, 120, 20, 0.2)


def test_fallback_is_deterministic_jpeg_of_same_size():
    source = make_image_bytes((640, 480))
    first = fallback_transform(source, DesignType.ECO_SMART)
    second = fallback_transform(source, 'eco_smart')
    assert first == second
    assert first != source
    with Image.open(io.BytesIO(first)) as img:
        assert img.format == 'JPEG'
        assert img.size == (640, 480)


def test_fallback_styles_differ():
    source = make_image_bytes((400, 300))
    outputs = {fallback_transform(source, style) for style in ALL_DESIGN_TYPES}
    assert len(outputs) == len(ALL_DESIGN_TYPES)


def test_fallback_returns_original_bytes_on_error():
    broken = b'\xff\xd8\xff corrupted jpeg'
    assert fallback_transform(broken, DesignType.MODERN_PREMIUM) is broken


def test_legacy_design_type_aliases():
    assert DesignType.parse('modern') is DesignType.MODERN_PREMIUM
    assert DesignType.parse('classical') is DesignType.TRUST_HERITAGE
    assert DesignType.parse('industrial') is DesignType.ECO_SMART
    assert DesignType.parse('eco_friendly') is DesignType.FESTIVE
    assert DesignType.parse(' Festive ') is DesignType.FESTIVE
    with pytest.raises(ValueError):
        DesignType.parse('brutalist')


def test_optimize_image_fits_large_images_as_jpeg():
    data, mime_type = optimize_image(make_image_bytes((2400, 1000), fmt='PNG'))
    assert mime_type == 'image/jpeg'
    with Image.open(io.BytesIO(data)) as img:
        assert img.format == 'JPEG'
        assert img.size == (1200, 500)


def test_optimize_image_leaves_small_images_alone():
    source = make_image_bytes((1024, 768), fmt='PNG')
    assert optimize_image(source) == (source, None)


def test_optimize_image_returns_unreadable_bytes_unchanged():
    broken = b'not an image'
    data, mime_type = optimize_image(broken)
    assert data is broken
    assert mime_type is None
