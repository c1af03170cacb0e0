import json
import logging
import math

from sqlalchemy import String, cast
from sqlalchemy.exc import IntegrityError

from skillswap import db
from skillswap.errors import NotFound, ValidationError
from skillswap.models import User
from skillswap.persistence import fetch, unit_of_work

logger = logging.getLogger(__name__)


def get_user(user_id):
    return fetch(f"load user {user_id}", lambda: db.session.get(User, user_id))


def require_user(user_id, label='User'):
    user = get_user(user_id)
    if user is None:
        logger.debug("%s with ID %s not found.", label, user_id)
        raise NotFound(f'{label} not found')
    return user


def get_user_by_email(email):
    return fetch(
        "load user by email",
        lambda: User.query.filter(db.func.lower(User.email) == email.lower()).first(),
    )


def active_users_excluding(user_id):
    """Every active user except ``user_id``, the candidate pool for matching."""
    users = fetch(
        f"load match candidates for user {user_id}",
        lambda: User.query.filter(User.id != user_id, User.is_active.is_(True)).order_by(User.id).all(),
    )
    logger.debug("Retrieved %d candidate users for user ID %s.", len(users), user_id)
    return users


def _teaches_text_like(needle):
    # Skill lists are stored as JSON text, which escapes quotes and non-ASCII
    return cast(User.skills_to_teach, String).icontains(json.dumps(needle)[1:-1], autoescape=True)


def search_by_skill(user_id, skill=None, page=1, limit=10):
    """
    Active users other than ``user_id`` who teach something containing ``skill``.

    Exclusion, the active flag, ordering and paging run in SQL. With a skill,
    SQL first narrows the rows with a text match on the JSON column (ASCII
    needles only, since that is all the database lowercases), then each
    remaining user's skills are checked one by one here and the page is cut
    from that list. Cost grows with the number of users the text match keeps.
    """
    query = User.query.filter(User.id != user_id, User.is_active.is_(True)) \
        .order_by(User.created_at.desc(), User.id.desc())
    start = (page - 1) * limit
    needle = (skill or '').strip().lower()

    if not needle:
        total = fetch("count users", query.count)
        users = fetch("search users", lambda: query.offset(start).limit(limit).all())
    else:
        if needle.isascii():
            query = query.filter(_teaches_text_like(needle))
        candidates = fetch("search users", query.all)
        matched = [u for u in candidates if any(needle in s.lower() for s in (u.skills_to_teach or []))]
        total = len(matched)
        users = matched[start:start + limit]

    return {
        'users': users,
        'total': total,
        'total_pages': math.ceil(total / limit) if limit else 0,
        'current_page': page,
    }


PROFILE_FIELDS = {
    'name': 'name',
    'bio': 'bio',
    'location': 'location',
    'avatar': 'avatar',
    'skillsToTeach': 'skills_to_teach',
    'skillsToLearn': 'skills_to_learn',
}


def create_user(name, email, password_hash, skills_to_teach=None, skills_to_learn=None,
                bio=None, location=None):
    if get_user_by_email(email):
        raise ValidationError('User already exists')

    user = User(
        name=name,
        email=email.lower(),
        password_hash=password_hash,
        skills_to_teach=list(skills_to_teach or []),
        skills_to_learn=list(skills_to_learn or []),
        bio=bio,
        location=location,
    )
    try:
        with unit_of_work("register user"):
            db.session.add(user)
    except IntegrityError:
        raise ValidationError('User already exists')
    logger.info("Registered user %s.", user.id)
    return user


def update_profile(user_id, changes):
    """Apply profile edits. Rating and session count are not editable here."""
    user = require_user(user_id)
    with unit_of_work(f"update profile for user {user_id}"):
        for key, attr in PROFILE_FIELDS.items():
            if key not in changes:
                continue
            value = changes[key]
            if attr == 'name' and not value:
                continue
            if attr.startswith('skills_'):
                value = list(value)
            elif attr == 'avatar':
                value = value or ''
            setattr(user, attr, value)
    logger.info("Updated profile for user %s.", user_id)
    return user
