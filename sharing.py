import logging
import uuid
from urllib.parse import quote

from flask import current_app

import store
from errors import NotFoundError
from models import DesignType

logger = logging.getLogger(__name__)

HASHTAGS = ['JKLakshmi', 'FacadeDesign', 'ARDesign', 'CementDesign', 'ShopMakeover']


def new_share_code():
    return uuid.uuid4().hex


def contest_url(share_code):
    return f"{current_app.config['FRONTEND_URL'].rstrip('/')}/contest/{share_code}"


def _style_label(design_type):
    try:
        return DesignType.parse(design_type).label
    except ValueError:
        return str(design_type).replace('_', ' ')


def build_share_content(design, user, url):
    brand = current_app.config['BRAND_NAME']
    text = f"I transformed my shop with {brand}'s AR design app!"
    if user and user.dealership_name:
        text = f"{text} - {user.dealership_name}"
    return {
        'title': f"Check out my {_style_label(design.design_type)} facade design!",
        'text': text,
        'url': url,
        'hashtags': list(HASHTAGS),
    }


def build_sharing_urls(url, text, hashtags):
    encoded_url = quote(url, safe='')
    encoded_text = quote(text, safe='')
    return {
        'facebook': f"https://www.facebook.com/sharer/sharer.php?u={encoded_url}&quote={encoded_text}",
        'twitter': (f"https://twitter.com/intent/tweet?text={encoded_text}&url={encoded_url}"
                    f"&hashtags={','.join(hashtags)}"),
        'whatsapp': f"https://wa.me/?text={quote(f'{text} {url}', safe='')}",
        'linkedin': f"https://www.linkedin.com/sharing/share-offsite/?url={encoded_url}",
        'telegram': f"https://t.me/share/url?url={encoded_url}&text={encoded_text}",
    }


def log_share(user_id, design_id, platform='unknown'):
    """
    Append a share for one of the user's designs and build the links to post.

    Raises:
        NotFoundError: the design does not exist or belongs to someone else
    """
    design = store.get_design_for_user(design_id, user_id)
    if design is None:
        raise NotFoundError('The specified design was not found', error='Design not found')

    share = store.create_share(user_id, design.id, platform or 'unknown', new_share_code())
    url = contest_url(share.share_code)
    content = build_share_content(design, store.get_user(user_id), url)
    logger.info(f"Share {share.share_code} logged for design {design.id} on {share.share_platform}")

    return {
        'shareId': share.share_code,
        'contestUrl': url,
        'shareContent': content,
        'sharingUrls': build_sharing_urls(url, content['text'], content['hashtags']),
        'design': {
            'designId': design.id,
            'designType': design.design_type,
            'filename': design.filename,
            'filePath': design.file_path,
        },
    }


def share_summary(share):
    design = share.design
    return {
        'shareId': share.share_code,
        'designId': share.design_id,
        'platform': share.share_platform,
        'sharedAt': share.shared_at.isoformat() if share.shared_at else None,
        'isContestEntry': bool(share.contest_entry),
        'design': {
            'designType': design.design_type if design else None,
            'filename': design.filename if design else None,
            'filePath': design.file_path if design else None,
        },
        'contestUrl': contest_url(share.share_code),
    }


def contest_entry(share_code):
    """Public view of a shared design; anyone holding the code may see it."""
    share = store.find_share_by_code(share_code)
    if share is None:
        raise NotFoundError('The specified contest entry was not found', error='Contest entry not found')

    design = share.design
    upload = design.upload if design else None
    user = share.user
    return {
        'shareId': share.share_code,
        'platform': share.share_platform,
        'sharedAt': share.shared_at.isoformat() if share.shared_at else None,
        'isContestEntry': bool(share.contest_entry),
        'design': {
            'designType': design.design_type if design else None,
            'filename': design.filename if design else None,
            'filePath': design.file_path if design else None,
            'prompt': design.ai_prompt if design else None,
        },
        'originalImage': {
            'filename': upload.original_name if upload else None,
            'filePath': upload.file_path if upload else None,
        },
        'participant': {
            'dealershipName': user.dealership_name if user else None,
        },
    }


def leaderboard_rows(rows):
    return [
        {
            'rank': index + 1,
            'participant': {
                'userId': user.id,
                'dealershipName': user.dealership_name,
            },
            'stats': {
                'totalShares': total_shares,
                'uniqueDesigns': unique_designs,
                'platformsUsed': platforms_used,
                'latestShare': latest_share.isoformat() if latest_share else None,
            },
        }
        for index, (user, total_shares, unique_designs, platforms_used, latest_share) in enumerate(rows)
    ]
