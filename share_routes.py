import logging

from flask import Blueprint, request

import sharing
import store
from errors import success_response
from schemas import ShareRequest, ShareListQuery, LeaderboardQuery

logger = logging.getLogger(__name__)

share_bp = Blueprint('share', __name__, url_prefix='/api/share')


@share_bp.route('', methods=['POST'])
def log_share():
    """Record a social share of a design and return the links to post."""
    body = ShareRequest.model_validate(request.get_json(silent=True) or {})
    data = sharing.log_share(body.user_id, body.design_id, body.platform)
    return success_response(data, 'Share logged successfully')


@share_bp.route('/contest/<share_code>', methods=['GET'])
def contest_entry(share_code):
    return success_response(sharing.contest_entry(share_code))


@share_bp.route('/user/<int:user_id>', methods=['GET'])
def user_shares(user_id):
    query = ShareListQuery.model_validate(request.args.to_dict())
    shares = store.list_shares_for_user(user_id, platform=query.platform, contest_only=query.contest_only)
    return success_response([sharing.share_summary(share) for share in shares])


@share_bp.route('/leaderboard', methods=['GET'])
def leaderboard():
    query = LeaderboardQuery.model_validate(request.args.to_dict())
    rows = sharing.leaderboard_rows(store.share_leaderboard(query.limit))
    return success_response({'leaderboard': rows, 'totalParticipants': len(rows)})


@share_bp.route('/stats', methods=['GET'])
def stats():
    return success_response(store.share_stats())
