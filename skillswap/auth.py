from flask_jwt_extended import create_access_token, get_jwt_identity

from skillswap.directory import require_user


def generate_token(user):
    """
    Generate a JWT access token for the given user.
    """
    return create_access_token(identity=str(user.id))


def current_user_id():
    """
    The authenticated user's id. Must be called inside a ``jwt_required`` view.
    """
    return int(get_jwt_identity())


def current_user():
    return require_user(current_user_id())
