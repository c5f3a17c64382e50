import logging
import secrets
import time

import store
from errors import ForbiddenError

logger = logging.getLogger(__name__)


def new_submission_code():
    """Human-readable submission code: JK-<epoch millis>-<8 hex chars>."""
    return f"JK-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


def submit_entry(request):
    """
    Record the user's contest entry.

    Both designs must belong to the user, the first a storefront and the
    second an interior. A user holds a single live submission; a repeat
    submit overwrites it with the new pair and a fresh code.

    Args:
        request: ContestSubmitRequest

    Returns:
        ContestSubmission
    """
    pair = store.verify_design_pair(request.storefront_design_id, request.interior_design_id, request.user_id)
    if pair is None:
        logger.warning(
            f"Rejected contest submission for user {request.user_id}: "
            f"storefront={request.storefront_design_id} interior={request.interior_design_id}"
        )
        raise ForbiddenError('One or both designs not found or do not belong to user', error='Invalid designs')

    storefront, interior = pair
    code = new_submission_code()
    submission = store.upsert_contest_submission(
        request.user_id,
        code,
        storefront_design_id=storefront.id,
        interior_design_id=interior.id,
        dealership_name=request.dealership_name,
        sap_code=request.sap_code,
        mobile_number=request.mobile_number,
    )
    logger.info(f"Contest entry {code} recorded for user {request.user_id}")
    return submission


def check_existing_submission(user_id, storefront_design_id, interior_design_id):
    """The user's submission for exactly this pair, or None."""
    return store.find_submission_for_pair(user_id, storefront_design_id, interior_design_id)


def leaderboard_entry(submission):
    return {
        'submissionId': submission.submission_id,
        'dealershipName': submission.dealership_name or (submission.user.dealership_name if submission.user else None),
        'sapCode': submission.sap_code,
        'submittedAt': submission.submitted_at.isoformat() if submission.submitted_at else None,
        'status': submission.status,
        'designTypes': {
            'storefront': submission.storefront_design.design_type if submission.storefront_design else None,
            'interior': submission.interior_design.design_type if submission.interior_design else None,
        },
    }
