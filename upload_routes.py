import logging

from flask import Blueprint, request

import designer
import store
from errors import NotFoundError, success_response
from models import UploadType
from schemas import UploadForm, InteriorUploadForm, OwnerQuery

logger = logging.getLogger(__name__)

upload_bp = Blueprint('upload', __name__, url_prefix='/api/upload')


@upload_bp.route('', methods=['POST'])
def upload_storefront():
    """Upload a storefront photo; userInfo with a SAP code registers the dealer."""
    form = UploadForm.model_validate(request.form.to_dict())
    logger.info(f"Storefront upload: user_id={form.user_id}, has_user_info={form.user_info is not None}")

    outcome = designer.handle_upload(request.files.get('image'), form, UploadType.STOREFRONT)
    return success_response(outcome.upload.to_dict(), 'Image uploaded successfully')


@upload_bp.route('/interior', methods=['POST'])
def upload_interior():
    """Upload an interior photo for one of the user's storefront designs."""
    form = InteriorUploadForm.model_validate(request.form.to_dict())
    logger.info(f"Interior upload: user_id={form.user_id}, storefront_design_id={form.storefront_design_id}")

    outcome = designer.handle_upload(request.files.get('image'), form, UploadType.INTERIOR)
    return success_response(outcome.upload.to_dict(), 'Interior image uploaded successfully')


@upload_bp.route('/<int:user_id>', methods=['GET'])
def list_uploads(user_id):
    uploads = store.list_uploads_for_user(user_id)
    return success_response([upload.to_dict() for upload in uploads])


@upload_bp.route('/<int:upload_id>', methods=['DELETE'])
def delete_upload(upload_id):
    query = OwnerQuery.model_validate(request.args.to_dict())
    upload = store.get_upload_for_user(upload_id, query.user_id)
    if upload is None:
        raise NotFoundError('Upload not found or you do not have permission to delete it',
                            error='Upload not found')

    designer.remove_upload(upload)
    return success_response({'uploadId': upload_id}, 'Upload deleted successfully')
