"""
Upload handling and design generation.

An upload is validated, stored and recorded; generation then fans the
source photo out to one task per design style. Network calls run on a
small thread pool, while asset writes and inserts stay on the request
thread. One style failing never stops the others; only a run with no
successful style fails as a whole.
"""
import logging
import os
from collections import namedtuple
from concurrent.futures import ThreadPoolExecutor, as_completed

from flask import current_app

import store
from asset_store import (
    KIND_GENERATED, KIND_THUMBNAIL, KIND_UPLOAD,
    extension_for, get_asset_store, make_filename, remove_assets,
)
from errors import BadRequestError, ForbiddenError, GenerationFailedError, NotFoundError, StorageError
from gemini_service import generate_design, settings_from_config
from image_processor import create_thumbnail, optimize_image, validate_image
from models import ALL_DESIGN_TYPES, DesignType, ProcessingStatus, UploadType, db

logger = logging.getLogger(__name__)

StyleOutcome = namedtuple('StyleOutcome', ['design_type', 'design', 'error', 'provenance'])
UploadOutcome = namedtuple('UploadOutcome', ['upload', 'user_id'])


class GenerationReport:
    """Per-style results of one generation run."""

    def __init__(self, upload, outcomes):
        self.upload = upload
        self.outcomes = outcomes

    @property
    def designs(self):
        return [o.design for o in self.outcomes if o.design is not None]

    @property
    def failures(self):
        return [o for o in self.outcomes if o.design is None]

    def __repr__(self):
        return f'<GenerationReport upload={self.upload.id} ok={len(self.designs)} failed={len(self.failures)}>'


def thumbnail_name(stored_filename):
    return f"thumb_{os.path.splitext(stored_filename)[0]}.jpg"


def read_image_file(file_storage):
    """Read an uploaded file after checking its presence, MIME type and size."""
    if file_storage is None or not file_storage.filename:
        raise BadRequestError('Please select an image file to upload', error='No file uploaded')

    allowed = current_app.config['ALLOWED_FILE_TYPES']
    mime_type = file_storage.mimetype
    if mime_type not in allowed:
        raise BadRequestError(
            f"File type {mime_type} not allowed. Allowed types: {', '.join(allowed)}",
            error='Invalid file type',
        )

    data = file_storage.read()
    max_size = current_app.config['MAX_FILE_SIZE']
    if len(data) > max_size:
        raise BadRequestError(
            f'File size must be less than {max_size // (1024 * 1024)}MB', error='File too large'
        )
    if not data:
        raise BadRequestError('The uploaded file is empty', error='Invalid image')
    return data, mime_type


def resolve_owner(form):
    """
    Work out the server-side user for a storefront upload.

    SAP code details win and are upserted. Otherwise a user id is used only
    if it names an existing user; anything else is an anonymous upload.
    """
    if form.user_info and form.user_info.sap_code:
        info = form.user_info
        user = store.upsert_user(info.sap_code, dealership_name=info.dealership_name,
                                 mobile_number=info.mobile_number)
        return user.id

    if form.user_id is not None:
        user = store.get_user(form.user_id)
        if user:
            return user.id
        logger.warning(f"Upload named unknown user {form.user_id}, treating as anonymous")
    return None


def _store_original(file_storage, data, mime_type, image_info, user_id, upload_type, storefront_design_id=None):
    asset_store = get_asset_store()
    filename = make_filename('', extension_for(mime_type, file_storage.filename))
    asset = asset_store.save(KIND_UPLOAD, filename, data, mime_type)
    stored = [(KIND_UPLOAD, filename)]

    thumbnail_path = None
    try:
        thumbnail = asset_store.save(KIND_THUMBNAIL, thumbnail_name(filename), create_thumbnail(data), 'image/jpeg')
        thumbnail_path = thumbnail.path
        stored.append((KIND_THUMBNAIL, thumbnail.filename))
    except Exception as e:
        logger.error(f"Thumbnail creation failed for {filename}: {type(e).__name__}: {str(e)}")

    try:
        upload = store.create_upload(
            user_id=user_id,
            original_name=file_storage.filename,
            stored_filename=filename,
            file_path=asset.path,
            thumbnail_path=thumbnail_path,
            file_size=asset.file_size,
            mime_type=mime_type,
            width=image_info.width,
            height=image_info.height,
            upload_type=upload_type.value,
            storefront_design_id=storefront_design_id,
        )
    except Exception:
        remove_assets(stored)
        raise

    logger.info(f"Upload {upload.id} saved ({upload_type.value}) for user {user_id}")
    return upload


def handle_storefront_upload(file_storage, form):
    """
    Validate and store a storefront photo.

    Returns:
        Upload: the new row; upload.user_id is the authoritative user id
    """
    data, mime_type = read_image_file(file_storage)
    image_info = validate_image(data)
    logger.info(f"Storefront image valid: {image_info.width}x{image_info.height} {image_info.format}")

    user_id = resolve_owner(form)
    return _store_original(file_storage, data, mime_type, image_info, user_id, UploadType.STOREFRONT)


def handle_interior_upload(file_storage, form):
    """Validate and store an interior photo linked to one of the user's storefront designs."""
    data, mime_type = read_image_file(file_storage)
    image_info = validate_image(data)
    logger.info(f"Interior image valid: {image_info.width}x{image_info.height} {image_info.format}")

    storefront = store.get_storefront_design(form.storefront_design_id, form.user_id)
    if storefront is None:
        raise ForbiddenError('Storefront design not found or does not belong to user',
                             error='Invalid storefront design')

    return _store_original(file_storage, data, mime_type, image_info, form.user_id,
                           UploadType.INTERIOR, storefront_design_id=storefront.id)


def handle_upload(file_storage, form, upload_type=UploadType.STOREFRONT):
    """Store a storefront or interior photo and report the server-side user id."""
    if upload_type == UploadType.INTERIOR:
        upload = handle_interior_upload(file_storage, form)
    else:
        upload = handle_storefront_upload(file_storage, form)
    return UploadOutcome(upload, upload.user_id)


def load_upload(upload_id, user_id, interior=False):
    """Fetch an upload the caller may generate from.

    Anonymous uploads are open to any caller; owned uploads only to their owner.
    """
    upload = store.get_upload(upload_id)
    if upload is None or (upload.user_id is not None and upload.user_id != user_id):
        raise NotFoundError('The specified upload was not found', error='Upload not found')
    if interior and not upload.is_interior:
        raise BadRequestError('The specified upload is not an interior upload', error='Invalid upload')
    if not interior and upload.is_interior:
        raise BadRequestError('Use the interior generation endpoint for interior uploads', error='Invalid upload')
    return upload


def _unique_styles(requested):
    styles = []
    for design_type in requested or ALL_DESIGN_TYPES:
        style = DesignType.parse(design_type)
        if style not in styles:
            styles.append(style)
    return styles


def _read_source(upload):
    try:
        return get_asset_store().read(KIND_UPLOAD, upload.stored_filename)
    except Exception as e:
        logger.error(f"Could not read original for upload {upload.id}: {type(e).__name__}: {str(e)}")
        raise StorageError('The original image could not be read')


def _persist_design(upload, style, image):
    asset_store = get_asset_store()
    image_data, optimized_mime = optimize_image(image.image_data)
    mime_type = optimized_mime or image.mime_type
    prefix = 'interior_' if upload.is_interior else ''
    filename = make_filename(f"{prefix}{style.value}_{upload.id}_", extension_for(mime_type))
    asset = asset_store.save(KIND_GENERATED, filename, image_data, mime_type)
    try:
        return store.create_generated_design(
            upload_id=upload.id,
            user_id=upload.user_id,
            design_type=style.value,
            filename=filename,
            file_path=asset.path,
            file_size=asset.file_size,
            width=asset.width,
            height=asset.height,
            ai_prompt=image.prompt,
            processing_status=ProcessingStatus.COMPLETED.value,
            is_interior=upload.is_interior,
            storefront_design_id=upload.storefront_design_id if upload.is_interior else None,
        )
    except Exception:
        remove_assets([(KIND_GENERATED, filename)])
        raise


def generate_designs(upload, styles=None):
    """
    Generate and persist one design per requested style.

    Args:
        upload: Upload to generate from
        styles: DesignTypes to generate, all four when empty

    Returns:
        GenerationReport: with at least one persisted design

    Raises:
        GenerationFailedError: no style produced a design
    """
    styles = _unique_styles(styles)
    source = _read_source(upload)
    settings = settings_from_config(current_app.config)

    storefront_style = None
    if upload.is_interior:
        storefront = upload.storefront_design
        if storefront is None:
            raise BadRequestError('Interior upload is not linked to a storefront design', error='Invalid upload')
        storefront_style = DesignType.parse(storefront.design_type)

    logger.info(f"Generating {[s.value for s in styles]} for upload {upload.id}")
    generated = {}
    outcomes = {}
    workers = max(1, min(current_app.config.get('GENERATION_WORKERS', 4), len(styles)))

    with ThreadPoolExecutor(max_workers=workers) as executor:
        future_to_style = {
            executor.submit(generate_design, source, upload.mime_type, style, settings, storefront_style): style
            for style in styles
        }
        for future in as_completed(future_to_style):
            style = future_to_style[future]
            try:
                generated[style] = future.result()
            except Exception as e:
                logger.error(f"Error generating {style.value} for upload {upload.id}: {type(e).__name__}: {str(e)}",
                             exc_info=True)
                outcomes[style] = StyleOutcome(style, None, str(e), None)

    for style in styles:
        if style in outcomes:
            continue
        image = generated[style]
        try:
            design = _persist_design(upload, style, image)
            outcomes[style] = StyleOutcome(style, design, None, image.provenance)
            logger.info(f"Saved {style.value} design {design.id} for upload {upload.id} ({image.provenance})")
        except Exception as e:
            db.session.rollback()
            logger.error(f"Error saving {style.value} design for upload {upload.id}: {type(e).__name__}: {str(e)}",
                         exc_info=True)
            outcomes[style] = StyleOutcome(style, None, str(e), image.provenance)

    report = GenerationReport(upload, [outcomes[style] for style in styles])
    logger.info(f"Generation finished: {report}")
    if not report.designs:
        raise GenerationFailedError('Failed to generate any facade designs. Please try again.')
    return report


def generate_single_design(upload, design_type):
    """Generate one style; returns (design, StyleOutcome)."""
    report = generate_designs(upload, [design_type])
    outcome = report.outcomes[0]
    return outcome.design, outcome


def _collect_upload_assets(upload, assets):
    assets.append((KIND_UPLOAD, upload.stored_filename))
    if upload.thumbnail_path:
        assets.append((KIND_THUMBNAIL, thumbnail_name(upload.stored_filename)))
    for design in upload.designs:
        _collect_design_assets(design, assets)


def _collect_design_assets(design, assets):
    assets.append((KIND_GENERATED, design.filename))
    for interior in design.interior_designs:
        _collect_design_assets(interior, assets)
    for interior_upload in design.interior_uploads:
        _collect_upload_assets(interior_upload, assets)


def remove_upload(upload):
    """Delete an upload, its dependent rows and their stored files."""
    upload_id = upload.id
    assets = []
    _collect_upload_assets(upload, assets)
    store.delete_upload(upload)
    remove_assets(assets)
    logger.info(f"Deleted upload {upload_id} and {len(assets)} stored files")


def remove_design(design):
    """Delete a design, its dependent rows and their stored files."""
    design_id = design.id
    assets = []
    _collect_design_assets(design, assets)
    store.delete_design(design)
    remove_assets(assets)
    logger.info(f"Deleted design {design_id} and {len(assets)} stored files")
