"""
Record store: every query the workflow needs, each shaped for its call site.

Reads that touch uploads, designs or shares take the requesting user id and
filter on it. Failures are not retried; the session is rolled back and the
error is reported straight away.
"""
import logging
from collections import OrderedDict
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import aliased

from errors import StorageError
from models import (
    db, User, Upload, GeneratedDesign, ContestSubmission, Share, SUBMISSION_STATUS_SUBMITTED,
)

logger = logging.getLogger(__name__)


def _commit():
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Database error: {type(e).__name__}: {str(e)}", exc_info=True)
        raise StorageError('Database operation failed')


def _add(instance):
    db.session.add(instance)
    _commit()
    return instance


# Users

def get_user(user_id):
    return db.session.get(User, user_id)


def find_user_by_sap_code(sap_code):
    return User.query.filter_by(sap_code=sap_code).first()


def _apply_user_fields(user, dealership_name, mobile_number):
    if dealership_name is not None:
        user.dealership_name = dealership_name
    if mobile_number is not None:
        user.mobile_number = mobile_number
    user.updated_at = datetime.utcnow()


def upsert_user(sap_code, dealership_name=None, mobile_number=None):
    """
    Insert a user keyed by SAP code, or update the existing one.

    Supplied fields overwrite stored ones; fields left as None are kept.

    Returns:
        User: the single row for this SAP code
    """
    user = find_user_by_sap_code(sap_code)
    if user:
        _apply_user_fields(user, dealership_name, mobile_number)
        _commit()
        logger.info(f"Updated existing user {user.id} for SAP code {sap_code}")
        return user

    user = User(sap_code=sap_code, dealership_name=dealership_name, mobile_number=mobile_number)
    db.session.add(user)
    try:
        _commit()
    except IntegrityError:
        # Another request created this SAP code first
        user = find_user_by_sap_code(sap_code)
        if user is None:
            raise
        _apply_user_fields(user, dealership_name, mobile_number)
        _commit()
        logger.info(f"Concurrent insert for SAP code {sap_code}, updated user {user.id}")
        return user

    logger.info(f"Created new user {user.id} for SAP code {sap_code}")
    return user


# Uploads

def create_upload(**fields):
    return _add(Upload(**fields))


def get_upload(upload_id):
    return db.session.get(Upload, upload_id)


def get_upload_for_user(upload_id, user_id):
    return Upload.query.filter_by(id=upload_id, user_id=user_id).first()


def list_uploads_for_user(user_id):
    return (Upload.query.filter_by(user_id=user_id)
            .order_by(Upload.created_at.desc(), Upload.id.desc())
            .all())


def delete_upload(upload):
    db.session.delete(upload)
    _commit()


# Generated designs

def create_generated_design(**fields):
    return _add(GeneratedDesign(**fields))


def get_design_for_user(design_id, user_id):
    return GeneratedDesign.query.filter_by(id=design_id, user_id=user_id).first()


def get_storefront_design(design_id, user_id):
    return GeneratedDesign.query.filter_by(id=design_id, user_id=user_id, is_interior=False).first()


def list_designs_for_upload(upload_id, user_id):
    return (GeneratedDesign.query.filter_by(upload_id=upload_id, user_id=user_id)
            .order_by(GeneratedDesign.created_at.desc(), GeneratedDesign.id.desc())
            .all())


def list_designs_for_user(user_id, upload_id=None, design_type=None, is_interior=None):
    query = GeneratedDesign.query.filter_by(user_id=user_id)
    if upload_id is not None:
        query = query.filter_by(upload_id=upload_id)
    if design_type is not None:
        query = query.filter_by(design_type=getattr(design_type, 'value', design_type))
    if is_interior is not None:
        query = query.filter_by(is_interior=is_interior)
    return query.order_by(GeneratedDesign.created_at.desc(), GeneratedDesign.id.desc()).all()


def group_designs_by_upload(designs):
    """Group designs under their source upload, keeping the incoming order."""
    groups = OrderedDict()
    for design in designs:
        group = groups.get(design.upload_id)
        if group is None:
            upload = design.upload
            group = {
                'uploadId': design.upload_id,
                'uploadType': upload.upload_type if upload else None,
                'originalImage': {
                    'filename': upload.original_name if upload else None,
                    'filePath': upload.file_path if upload else None,
                    'thumbnailPath': upload.thumbnail_path if upload else None,
                    'uploadedAt': upload.created_at.isoformat() if upload and upload.created_at else None,
                },
                'designs': [],
            }
            groups[design.upload_id] = group
        group['designs'].append(design.to_dict())
    return list(groups.values())


def delete_design(design):
    db.session.delete(design)
    _commit()


def design_stats_for_user(user_id):
    rows = (db.session.query(GeneratedDesign.design_type, func.count(GeneratedDesign.id))
            .filter(GeneratedDesign.user_id == user_id)
            .group_by(GeneratedDesign.design_type)
            .all())
    totals = (db.session.query(
                func.count(GeneratedDesign.id),
                func.count(func.distinct(GeneratedDesign.upload_id)))
              .filter(GeneratedDesign.user_id == user_id)
              .one())
    interior = GeneratedDesign.query.filter_by(user_id=user_id, is_interior=True).count()
    return {
        'totalDesigns': totals[0] or 0,
        'totalUploads': totals[1] or 0,
        'interiorDesigns': interior,
        'designsByType': {design_type: count for design_type, count in rows},
    }


def verify_design_pair(storefront_id, interior_id, user_id):
    """
    Load a storefront/interior pair in one query.

    Both rows must belong to user_id, the storefront must not be interior
    and the interior must be. Returns (storefront, interior) or None; a
    missing row and a foreign row look the same to the caller.
    """
    storefront = aliased(GeneratedDesign)
    interior = aliased(GeneratedDesign)
    row = (db.session.query(storefront, interior)
           .select_from(storefront)
           .join(interior, interior.user_id == storefront.user_id)
           .filter(storefront.id == storefront_id,
                   storefront.user_id == user_id,
                   storefront.is_interior.is_(False),
                   interior.id == interior_id,
                   interior.is_interior.is_(True))
           .first())
    if row is None:
        return None
    return row[0], row[1]


# Contest submissions

def find_submission_for_user(user_id):
    return ContestSubmission.query.filter_by(user_id=user_id).first()


def find_submission_for_pair(user_id, storefront_design_id, interior_design_id):
    return (ContestSubmission.query
            .filter_by(user_id=user_id,
                       storefront_design_id=storefront_design_id,
                       interior_design_id=interior_design_id)
            .order_by(ContestSubmission.submitted_at.desc())
            .first())


def find_submission_by_code(submission_code):
    return ContestSubmission.query.filter_by(submission_id=submission_code).first()


def list_submissions_for_user(user_id):
    return (ContestSubmission.query.filter_by(user_id=user_id)
            .order_by(ContestSubmission.submitted_at.desc())
            .all())


def list_leaderboard(status=SUBMISSION_STATUS_SUBMITTED, limit=50):
    return (ContestSubmission.query.filter_by(status=status)
            .order_by(ContestSubmission.submitted_at.desc(), ContestSubmission.id.desc())
            .limit(limit)
            .all())


def _apply_submission_fields(submission, fields, submission_code):
    for name, value in fields.items():
        setattr(submission, name, value)
    submission.submission_id = submission_code
    submission.submitted_at = datetime.utcnow()
    submission.status = SUBMISSION_STATUS_SUBMITTED


def upsert_contest_submission(user_id, submission_code, **fields):
    """
    Keep exactly one live submission per user.

    An existing row is overwritten in place with the new pair, a new
    submission code and a fresh submitted_at; otherwise a row is inserted.
    """
    submission = find_submission_for_user(user_id)
    if submission:
        _apply_submission_fields(submission, fields, submission_code)
        _commit()
        logger.info(f"Updated contest submission for user {user_id}: {submission_code}")
        return submission

    submission = ContestSubmission(user_id=user_id)
    _apply_submission_fields(submission, fields, submission_code)
    db.session.add(submission)
    try:
        _commit()
    except IntegrityError:
        # Lost a race with a concurrent submit, overwrite the winner's row
        submission = find_submission_for_user(user_id)
        if submission is None:
            raise
        _apply_submission_fields(submission, fields, submission_code)
        _commit()
        logger.info(f"Concurrent submission for user {user_id}, overwrote with {submission_code}")
        return submission

    logger.info(f"Created contest submission for user {user_id}: {submission_code}")
    return submission


# Shares

def create_share(user_id, design_id, platform, share_code, contest_entry=True):
    return _add(Share(user_id=user_id, design_id=design_id, share_platform=platform,
                      share_code=share_code, contest_entry=contest_entry))


def find_share_by_code(share_code):
    return Share.query.filter_by(share_code=share_code).first()


def list_shares_for_user(user_id, platform=None, contest_only=False):
    query = Share.query.filter_by(user_id=user_id)
    if platform:
        query = query.filter_by(share_platform=platform)
    if contest_only:
        query = query.filter_by(contest_entry=True)
    return query.order_by(Share.shared_at.desc(), Share.id.desc()).all()


def share_leaderboard(limit=50):
    total_shares = func.count(Share.id).label('total_shares')
    latest_share = func.max(Share.shared_at).label('latest_share')
    return (db.session.query(
                User,
                total_shares,
                func.count(func.distinct(Share.design_id)).label('unique_designs'),
                func.count(func.distinct(Share.share_platform)).label('platforms_used'),
                latest_share)
            .join(Share, Share.user_id == User.id)
            .filter(Share.contest_entry.is_(True))
            .group_by(User.id)
            .order_by(total_shares.desc(), latest_share.desc())
            .limit(limit)
            .all())


def share_stats():
    totals = (db.session.query(
                func.count(Share.id),
                func.count(func.distinct(Share.user_id)),
                func.count(func.distinct(Share.design_id)))
              .filter(Share.contest_entry.is_(True))
              .one())
    by_platform = (db.session.query(Share.share_platform, func.count(Share.id))
                   .filter(Share.contest_entry.is_(True))
                   .group_by(Share.share_platform)
                   .all())
    return {
        'totalShares': totals[0] or 0,
        'uniqueUsers': totals[1] or 0,
        'uniqueDesigns': totals[2] or 0,
        'sharesByPlatform': {platform: count for platform, count in by_platform if platform},
    }
