import logging

from flask import Blueprint, request

import designer
import store
from errors import NotFoundError, success_response
from schemas import DesignListQuery, OwnerQuery

logger = logging.getLogger(__name__)

design_bp = Blueprint('designs', __name__, url_prefix='/api/designs')


def _owned_design(design_id, user_id, message):
    design = store.get_design_for_user(design_id, user_id)
    if design is None:
        raise NotFoundError(message, error='Design not found')
    return design


@design_bp.route('/<int:user_id>', methods=['GET'])
def list_designs(user_id):
    """Designs of a user grouped under their source upload, newest first."""
    query = DesignListQuery.model_validate(request.args.to_dict())
    designs = store.list_designs_for_user(
        user_id,
        upload_id=query.upload_id,
        design_type=query.design_type,
        is_interior=query.is_interior,
    )
    groups = store.group_designs_by_upload(designs)
    return success_response({
        'userId': user_id,
        'totalDesigns': len(designs),
        'uploads': groups,
    })


@design_bp.route('/detail/<int:design_id>', methods=['GET'])
def design_detail(design_id):
    query = OwnerQuery.model_validate(request.args.to_dict())
    design = _owned_design(design_id, query.user_id, 'The specified design was not found')

    data = design.to_dict()
    upload = design.upload
    data['originalImage'] = {
        'filename': upload.original_name if upload else None,
        'filePath': upload.file_path if upload else None,
        'thumbnailPath': upload.thumbnail_path if upload else None,
    }
    return success_response(data)


@design_bp.route('/<int:design_id>/select', methods=['PUT'])
def select_design(design_id):
    # Selection is the client's choice; nothing is stored
    body = OwnerQuery.model_validate(request.get_json(silent=True) or {})
    design = _owned_design(design_id, body.user_id,
                           'Design not found or you do not have permission to modify it')
    logger.info(f"User {body.user_id} selected design {design.id}")
    return success_response({
        'designId': design.id,
        'designType': design.design_type,
        'isSelected': True,
    }, 'Design selected successfully')


@design_bp.route('/<int:design_id>', methods=['DELETE'])
def delete_design(design_id):
    query = OwnerQuery.model_validate(request.args.to_dict())
    design = _owned_design(design_id, query.user_id,
                           'Design not found or you do not have permission to delete it')
    designer.remove_design(design)
    return success_response({'designId': design_id}, 'Design deleted successfully')


@design_bp.route('/stats/<int:user_id>', methods=['GET'])
def design_stats(user_id):
    return success_response(store.design_stats_for_user(user_id))
