import logging

from flask import Blueprint, request

import designer
import store
from errors import success_response
from models import ALL_DESIGN_TYPES
from schemas import GenerateRequest, InteriorGenerateRequest, SingleGenerateRequest, OwnerQuery

logger = logging.getLogger(__name__)

generate_bp = Blueprint('generate', __name__, url_prefix='/api/generate')


def _report_payload(report):
    upload = report.upload
    return {
        'uploadId': upload.id,
        'userId': upload.user_id,
        'originalImage': upload.file_path,
        'generatedDesigns': [design.to_dict() for design in report.designs],
        'results': [
            {
                'designType': outcome.design_type.value,
                'success': outcome.design is not None,
                'provenance': outcome.provenance,
                'error': outcome.error,
            }
            for outcome in report.outcomes
        ],
    }


@generate_bp.route('', methods=['POST'])
def generate():
    """Generate storefront designs for an upload, all four styles unless designTypes narrows it."""
    body = GenerateRequest.model_validate(request.get_json(silent=True) or {})
    logger.info("=" * 80)
    logger.info(f"GENERATE: upload {body.upload_id} for user {body.user_id}")
    logger.info("=" * 80)

    upload = designer.load_upload(body.upload_id, body.user_id)
    report = designer.generate_designs(upload, body.design_types)
    return success_response(_report_payload(report),
                            f'Successfully generated {len(report.designs)} facade designs')


@generate_bp.route('/interior', methods=['POST'])
def generate_interior():
    body = InteriorGenerateRequest.model_validate(request.get_json(silent=True) or {})
    logger.info("=" * 80)
    logger.info(f"GENERATE INTERIOR: upload {body.upload_id} for user {body.user_id}")
    logger.info("=" * 80)

    upload = designer.load_upload(body.upload_id, body.user_id, interior=True)
    report = designer.generate_designs(upload, body.design_types)
    return success_response(_report_payload(report),
                            f'Successfully generated {len(report.designs)} interior designs')


@generate_bp.route('/single', methods=['POST'])
def generate_single():
    body = SingleGenerateRequest.model_validate(request.get_json(silent=True) or {})
    upload = designer.load_upload(body.upload_id, body.user_id)
    design, outcome = designer.generate_single_design(upload, body.design_type)

    data = design.to_dict()
    data['provenance'] = outcome.provenance
    return success_response(data, 'Facade design generated successfully')


@generate_bp.route('/status/<int:upload_id>', methods=['GET'])
def generation_status(upload_id):
    query = OwnerQuery.model_validate(request.args.to_dict())
    designs = store.list_designs_for_upload(upload_id, query.user_id)

    total = len(ALL_DESIGN_TYPES)
    completed = len({design.design_type for design in designs})
    return success_response({
        'uploadId': upload_id,
        'userId': query.user_id,
        'isComplete': completed >= total,
        'totalDesigns': total,
        'completedDesigns': completed,
        'designs': [design.to_dict() for design in designs],
    })
