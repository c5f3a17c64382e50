import logging
from collections import namedtuple
from io import BytesIO

from PIL import Image, ImageChops, ImageEnhance, ImageFilter, ImageOps, UnidentifiedImageError

from errors import InvalidImageError
from models import DesignType

logger = logging.getLogger(__name__)

MIN_DIMENSION = 200
MAX_DIMENSION = 4000
THUMBNAIL_SIZE = (300, 300)
FALLBACK_JPEG_QUALITY = 90
OPTIMIZED_MAX_SIZE = (1200, 1200)
OPTIMIZED_JPEG_QUALITY = 90

ImageInfo = namedtuple('ImageInfo', ['width', 'height', 'format'])
FallbackPreset = namedtuple('FallbackPreset', ['brightness', 'contrast', 'saturation', 'overlay'])

# overlay is (r, g, b, alpha)
FALLBACK_PRESETS = {
    DesignType.MODERN_PREMIUM: FallbackPreset(1.15, 1.3, 0.7, (20, 60, 120, 0.15)),
    DesignType.TRUST_HERITAGE: FallbackPreset(0.85, 1.15, 1.3, (120, 80, 40, 0.15)),
    DesignType.ECO_SMART: FallbackPreset(1.05, 1.1, 1.4, (30, 120, 60, 0.15)),
    DesignType.FESTIVE: FallbackPreset(1.25, 1.4, 1.5, (180, 120, 20, 0.2)),
}


def validate_image(image_data):
    """
    Check that the bytes decode to an image of a usable size.

    Args:
        image_data: Raw bytes of the uploaded file

    Returns:
        ImageInfo: (width, height, format)

    Raises:
        InvalidImageError: corrupt data or dimensions outside 200..4000 px
    """
    try:
        with Image.open(BytesIO(image_data)) as img:
            img.verify()
        # verify() leaves the image unusable, reopen for the header
        with Image.open(BytesIO(image_data)) as img:
            width, height = img.size
            image_format = img.format
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError, ValueError) as e:
        logger.warning(f"Image validation failed: {type(e).__name__}: {str(e)}")
        raise InvalidImageError('The uploaded file is not a valid image')

    if not width or not height:
        raise InvalidImageError('The uploaded file is not a valid image')
    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        raise InvalidImageError(f'Image must be at least {MIN_DIMENSION}x{MIN_DIMENSION} pixels')
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise InvalidImageError(f'Image must not exceed {MAX_DIMENSION}x{MAX_DIMENSION} pixels')

    return ImageInfo(width, height, image_format)


def image_dimensions(image_data):
    """Return (width, height), or (None, None) if the bytes can't be read."""
    try:
        with Image.open(BytesIO(image_data)) as img:
            return img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        logger.warning(f"Could not read image dimensions: {str(e)}")
        return None, None


def create_thumbnail(image_data):
    """Create a JPEG thumbnail bounded by 300x300, keeping the aspect ratio."""
    with Image.open(BytesIO(image_data)) as img:
        img = ImageOps.exif_transpose(img).convert('RGB')
        img.thumbnail(THUMBNAIL_SIZE)
        output = BytesIO()
        img.save(output, format='JPEG', quality=85)
        return output.getvalue()


def optimize_image(image_data):
    """
    Shrink a generated image for web delivery.

    Images larger than 1200px on either side are fitted inside 1200x1200 and
    re-encoded as JPEG. Smaller images, and bytes that can't be processed,
    come back untouched.

    Returns:
        tuple: (image bytes, 'image/jpeg' or None when unchanged)
    """
    try:
        with Image.open(BytesIO(image_data)) as source:
            if source.width <= OPTIMIZED_MAX_SIZE[0] and source.height <= OPTIMIZED_MAX_SIZE[1]:
                return image_data, None
            img = ImageOps.exif_transpose(source).convert('RGB')
        img.thumbnail(OPTIMIZED_MAX_SIZE)
        output = BytesIO()
        img.save(output, format='JPEG', quality=OPTIMIZED_JPEG_QUALITY)
        logger.info(f"Optimized generated image to {img.width}x{img.height}")
        return output.getvalue(), 'image/jpeg'
    except Exception as e:
        logger.error(f"Image optimization failed: {type(e).__name__}: {str(e)}")
        return image_data, None


def _preset_for(design_type):
    try:
        return FALLBACK_PRESETS[DesignType.parse(design_type)]
    except ValueError:
        logger.warning(f"Unknown design type {design_type!r}, using modern_premium preset")
        return FALLBACK_PRESETS[DesignType.MODERN_PREMIUM]


def _linear_contrast(img, factor):
    # Scale each channel around mid-grey
    lut = [min(255, max(0, int(round((v - 128) * factor + 128)))) for v in range(256)]
    return img.point(lut * len(img.getbands()))


def _overlay_color(img, overlay):
    r, g, b, alpha = overlay
    color_layer = Image.new('RGB', img.size, (r, g, b))
    blended = ImageChops.overlay(img, color_layer)
    return Image.blend(img, blended, alpha)


def fallback_transform(image_data, design_type):
    """
    Apply the local style filter used when AI generation is unavailable.

    Brightness and saturation modulation, linear contrast, a full-frame colour
    overlay in overlay blend mode, then a sharpening pass, re-encoded as JPEG.
    The same input always produces the same output. Never raises: on any
    processing error the original bytes are returned unchanged.

    Args:
        image_data: Bytes of the source image
        design_type: DesignType or its tag

    Returns:
        bytes: JPEG image data (or the original bytes on failure)
    """
    preset = _preset_for(design_type)
    try:
        logger.info(f"Applying fallback filter for {design_type}")
        with Image.open(BytesIO(image_data)) as source:
            img = ImageOps.exif_transpose(source).convert('RGB')

        img = ImageEnhance.Brightness(img).enhance(preset.brightness)
        img = ImageEnhance.Color(img).enhance(preset.saturation)
        img = _linear_contrast(img, preset.contrast)
        img = _overlay_color(img, preset.overlay)
        img = img.filter(ImageFilter.SHARPEN)

        output = BytesIO()
        img.save(output, format='JPEG', quality=FALLBACK_JPEG_QUALITY)
        processed = output.getvalue()
        logger.info(f"Fallback filter complete for {design_type}, size: {len(processed)} bytes")
        return processed
    except Exception as e:
        logger.error(f"Fallback filter failed for {design_type}: {type(e).__name__}: {str(e)}", exc_info=True)
        return image_data
