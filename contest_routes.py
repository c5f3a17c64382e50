import logging

from flask import Blueprint, request

import contest
import store
from errors import NotFoundError, success_response
from schemas import ContestSubmitRequest, CheckSubmissionQuery, LeaderboardQuery

logger = logging.getLogger(__name__)

contest_bp = Blueprint('contest', __name__, url_prefix='/api/contest')


@contest_bp.route('/submit', methods=['POST'])
def submit():
    body = ContestSubmitRequest.model_validate(request.get_json(silent=True) or {})
    logger.info(f"Contest submission: user {body.user_id}, storefront {body.storefront_design_id}, "
                f"interior {body.interior_design_id}")

    submission = contest.submit_entry(body)
    return success_response(submission.to_dict(), 'Contest entry submitted successfully')


@contest_bp.route('/check-submission', methods=['GET'])
def check_submission():
    query = CheckSubmissionQuery.model_validate(request.args.to_dict())
    submission = contest.check_existing_submission(
        query.user_id, query.storefront_design_id, query.interior_design_id
    )
    return success_response(submission.to_dict() if submission else None)


@contest_bp.route('/user-submissions/<int:user_id>', methods=['GET'])
def user_submissions(user_id):
    submissions = store.list_submissions_for_user(user_id)
    return success_response([submission.to_dict() for submission in submissions])


@contest_bp.route('/submission/<submission_code>', methods=['GET'])
def submission_detail(submission_code):
    submission = store.find_submission_by_code(submission_code)
    if submission is None:
        raise NotFoundError('The specified contest submission was not found', error='Submission not found')
    return success_response(submission.to_dict())


@contest_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    query = LeaderboardQuery.model_validate(request.args.to_dict())
    submissions = store.list_leaderboard(query.status, query.limit)
    return success_response({
        'totalSubmissions': len(submissions),
        'submissions': [contest.leaderboard_entry(submission) for submission in submissions],
    })
