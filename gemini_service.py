import base64
import binascii
import logging
from collections import namedtuple
from textwrap import dedent

import requests

from image_processor import fallback_transform, image_dimensions
from models import DesignType

logger = logging.getLogger(__name__)

PROVENANCE_GEMINI = 'gemini'
PROVENANCE_FALLBACK = 'fallback'

GeminiSettings = namedtuple('GeminiSettings', ['api_key', 'api_url', 'timeout', 'brand_name'])
GeneratedImage = namedtuple('GeneratedImage', ['image_data', 'mime_type', 'prompt', 'provenance'])


class GenerationUnavailable(Exception):
    """Gemini did not produce usable image data."""

    def __init__(self, message, network=False):
        super().__init__(message)
        self.network = network


def settings_from_config(config):
    """Snapshot the Gemini settings so worker threads don't need an app context."""
    return GeminiSettings(
        api_key=config.get('GEMINI_API_KEY'),
        api_url=config.get('GEMINI_API_URL'),
        timeout=config.get('GEMINI_TIMEOUT', 60),
        brand_name=config.get('BRAND_NAME', 'JK Lakshmi Cement'),
    )


FACADE_PROMPTS = {
    DesignType.MODERN_PREMIUM: """
        Redesign the facade of this shop in a modern premium style. The {brand} logo must stay
        exactly as it appears in the photo: same position, colours and proportions, not redrawn.
        Design features:
        - Sleek contemporary lines and premium finishes
        - Glass, brushed steel and smooth exposed-concrete panels
        - Clean geometric patterns with subtle premium texturing
        - Palette of whites and cool greys with black accents
        - Bright, professional daylight
        Style: upscale, contemporary commercial facade with {brand} branding clearly visible.
    """,
    DesignType.TRUST_HERITAGE: """
        Redesign the facade of this shop in a trust and heritage style. The {brand} logo must stay
        exactly as it appears in the photo: same position, colours and proportions, not redrawn.
        Design features:
        - Classic architectural elements such as columns, arches and cornices
        - Exposed brick and dressed stone textures
        - Traditional decorative mouldings
        - Warm earth-tone palette of browns, creams and warm whites
        - Golden evening light
        Style: established, trustworthy heritage facade with {brand} branding clearly visible.
    """,
    DesignType.ECO_SMART: """
        Redesign the facade of this shop in an eco-smart style. The {brand} logo must stay
        exactly as it appears in the photo: same position, colours and proportions, not redrawn.
        Design features:
        - Living green walls and planters
        - Natural timber, recycled materials and rooftop solar panels
        - Large openings for natural ventilation and daylight
        - Natural palette of leaf greens, earth tones and soft whites
        - Soft natural daylight
        Style: sustainable, eco-conscious commercial facade with {brand} branding clearly visible.
    """,
    DesignType.FESTIVE: """
        Redesign the facade of this shop in a festive style. The {brand} logo must stay
        exactly as it appears in the photo: same position, colours and proportions, not redrawn.
        Design features:
        - Traditional Indian festive decorations, torans, diyas and rangoli patterns
        - String lights and warm night lighting with colourful accents
        - Marigold garlands and ornamental trims
        - Vibrant palette of saffron, gold, magenta and bright whites
        - Welcoming celebratory atmosphere
        Style: vibrant, celebratory festive facade with {brand} branding clearly visible.
    """,
}

INTERIOR_PROMPTS = {
    DesignType.MODERN_PREMIUM: """
        Redesign the interior of this shop in a modern premium style that continues the
        {storefront_style} storefront chosen for the same shop. Keep any {brand} logo or signage
        exactly as it appears, not redrawn.
        Design features:
        - Minimal display shelving in glass and matte metal
        - Polished concrete or large-format tile flooring
        - Recessed linear lighting and a premium product wall
        - Palette of whites and cool greys with black accents
        Style: upscale, uncluttered retail interior.
    """,
    DesignType.TRUST_HERITAGE: """
        Redesign the interior of this shop in a trust and heritage style that continues the
        {storefront_style} storefront chosen for the same shop. Keep any {brand} logo or signage
        exactly as it appears, not redrawn.
        Design features:
        - Solid wood counters and shelving with carved detailing
        - Stone or terracotta flooring
        - Warm pendant lighting
        - Earth-tone palette of browns, creams and warm whites
        Style: welcoming, established retail interior.
    """,
    DesignType.ECO_SMART: """
        Redesign the interior of this shop in an eco-smart style that continues the
        {storefront_style} storefront chosen for the same shop. Keep any {brand} logo or signage
        exactly as it appears, not redrawn.
        Design features:
        - Bamboo and reclaimed-wood shelving
        - Indoor plants and a small green wall
        - Daylight from skylights with energy-efficient LED fixtures
        - Natural palette of leaf greens, earth tones and soft whites
        Style: sustainable, airy retail interior.
    """,
    DesignType.FESTIVE: """
        Redesign the interior of this shop in a festive style that continues the
        {storefront_style} storefront chosen for the same shop. Keep any {brand} logo or signage
        exactly as it appears, not redrawn.
        Design features:
        - Festive garlands, lanterns and diyas along the shelving
        - Rangoli patterns at the entrance and counter
        - Warm ambient lighting with colourful accents
        - Vibrant palette of saffron, gold, magenta and bright whites
        Style: joyful, celebratory retail interior.
    """,
}

GENERATION_CONFIG = {
    'temperature': 0.7,
    'topK': 32,
    'topP': 1,
    'maxOutputTokens': 4096,
}

SAFETY_SETTINGS = [
    {'category': category, 'threshold': 'BLOCK_MEDIUM_AND_ABOVE'}
    for category in (
        'HARM_CATEGORY_HARASSMENT',
        'HARM_CATEGORY_HATE_SPEECH',
        'HARM_CATEGORY_SEXUALLY_EXPLICIT',
        'HARM_CATEGORY_DANGEROUS_CONTENT',
    )
]


def build_prompt(design_type, brand_name, storefront_style=None):
    """
    Build the prompt for a design type.

    Interior prompts are used when storefront_style is given, and name the
    storefront's style so both variants read as one theme.
    """
    design_type = DesignType.parse(design_type)
    if storefront_style is None:
        return dedent(FACADE_PROMPTS[design_type]).strip().format(brand=brand_name)
    storefront = DesignType.parse(storefront_style)
    return dedent(INTERIOR_PROMPTS[design_type]).strip().format(
        brand=brand_name, storefront_style=storefront.label
    )


def extract_image_data(payload):
    """
    Pull base64 image data out of a generateContent response.

    Returns:
        tuple: (base64_data, mime_type)

    Raises:
        GenerationUnavailable: error payload, text-only answer or no image at all
    """
    if not isinstance(payload, dict):
        raise GenerationUnavailable('Unexpected response shape from Gemini')

    if payload.get('error'):
        error = payload['error']
        message = error.get('message', 'Unknown API error') if isinstance(error, dict) else str(error)
        raise GenerationUnavailable(f'Gemini API error: {message}')

    candidates = payload.get('candidates') or []
    parts = []
    if candidates:
        parts = (candidates[0].get('content') or {}).get('parts') or []

    for part in parts:
        # REST responses use camelCase, some clients echo snake_case
        inline = part.get('inlineData') or part.get('inline_data')
        if inline and inline.get('data'):
            mime_type = inline.get('mimeType') or inline.get('mime_type') or 'image/png'
            return inline['data'], mime_type

    direct = payload.get('image') or payload.get('generated_image')
    if direct:
        return direct, 'image/png'

    text = ''.join(part.get('text', '') for part in parts if isinstance(part, dict))
    if text:
        logger.info(f"Gemini returned text instead of an image: {text[:200]}")
        raise GenerationUnavailable('Gemini returned text instead of image data')

    raise GenerationUnavailable('No image data found in Gemini response')


def request_gemini_image(image_data, mime_type, prompt, settings):
    """
    Send the source photo and prompt to Gemini image generation.

    Returns:
        tuple: (image_bytes, mime_type)

    Raises:
        GenerationUnavailable: for every failure, network or content
    """
    if not settings.api_key:
        raise GenerationUnavailable('Gemini API key not configured')

    image_base64 = base64.b64encode(image_data).decode('utf-8')
    payload = {
        'contents': [
            {
                'parts': [
                    {'text': prompt},
                    {'inline_data': {'mime_type': mime_type, 'data': image_base64}},
                ]
            }
        ],
        'generationConfig': GENERATION_CONFIG,
        'safetySettings': SAFETY_SETTINGS,
    }

    logger.info(f"Calling Gemini at {settings.api_url}, image size: {len(image_base64) // 1024} KB")
    try:
        response = requests.post(
            settings.api_url,
            json=payload,
            headers={'Content-Type': 'application/json', 'x-goog-api-key': settings.api_key},
            timeout=settings.timeout,
        )
    except requests.exceptions.Timeout:
        logger.error(f"Gemini request timed out after {settings.timeout}s")
        raise GenerationUnavailable('Gemini API request timeout', network=True)
    except requests.exceptions.ConnectionError as e:
        logger.error(f"Unable to connect to Gemini API: {str(e)}")
        raise GenerationUnavailable('Unable to connect to Gemini API', network=True)
    except requests.exceptions.RequestException as e:
        logger.error(f"Gemini request failed: {type(e).__name__}: {str(e)}")
        raise GenerationUnavailable(f'Gemini request failed: {str(e)}', network=True)

    logger.info(f"Gemini response status: {response.status_code}")
    try:
        body = response.json()
    except ValueError:
        raise GenerationUnavailable(f'Gemini returned a non-JSON response (HTTP {response.status_code})')

    if response.status_code >= 400 and not (isinstance(body, dict) and body.get('error')):
        raise GenerationUnavailable(f'Gemini API error: HTTP {response.status_code}')

    image_base64, output_mime = extract_image_data(body)
    try:
        generated = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError):
        raise GenerationUnavailable('Gemini image data is not valid base64')

    if image_dimensions(generated) == (None, None):
        raise GenerationUnavailable('Gemini image data could not be decoded as an image')

    logger.info(f"Gemini image generated: {len(generated) // 1024} KB ({output_mime})")
    return generated, output_mime


def generate_design(image_data, mime_type, design_type, settings, storefront_style=None):
    """
    Produce one style variant of a shop photo.

    Tries Gemini first; when it yields no usable image, applies the local
    fallback filter to the source photo instead.

    Args:
        image_data: Bytes of the source photo
        mime_type: MIME type of the source photo
        design_type: DesignType to generate
        settings: GeminiSettings
        storefront_style: DesignType of the linked storefront for interior photos

    Returns:
        GeneratedImage: image bytes, MIME type, the prompt used and the provenance
    """
    design_type = DesignType.parse(design_type)
    prompt = build_prompt(design_type, settings.brand_name, storefront_style)
    logger.info(f"Starting {design_type.value} generation ({'interior' if storefront_style else 'facade'})")

    try:
        generated, output_mime = request_gemini_image(image_data, mime_type, prompt, settings)
        logger.info(f"AI image generation successful for {design_type.value}")
        return GeneratedImage(generated, output_mime, prompt, PROVENANCE_GEMINI)
    except GenerationUnavailable as e:
        kind = 'network' if e.network else 'content'
        logger.warning(f"Gemini unavailable for {design_type.value} ({kind}): {str(e)}; using fallback filter")

    processed = fallback_transform(image_data, design_type)
    output_mime = mime_type if processed is image_data else 'image/jpeg'
    return GeneratedImage(processed, output_mime, prompt, PROVENANCE_FALLBACK)
