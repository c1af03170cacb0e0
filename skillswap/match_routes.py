import logging

from flask import Blueprint, current_app, jsonify
from flask_jwt_extended import jwt_required

from skillswap import directory, matching
from skillswap.auth import current_user

match_bp = Blueprint('match', __name__)
logger = logging.getLogger(__name__)


@match_bp.route('', methods=['GET'])
@jwt_required()
def get_matches():
    """
    Users who can teach what the current user wants to learn, want to learn
    what they teach, or both, best score first.
    """
    user = current_user()
    if not user.skills_to_learn:
        result = matching.find_matches(user, [])
    else:
        candidates = directory.active_users_excluding(user.id)
        result = matching.find_matches(user, candidates, limit=current_app.config.get('MATCH_LIMIT', 20))

    payload = {
        'success': True,
        'matches': [match.to_dict() for match in result.matches],
        'totalMatches': result.total_matches,
    }
    if result.message:
        payload['message'] = result.message

    logger.debug("Returning %d of %d matches for user ID %s.", len(result.matches), result.total_matches, user.id)
    return jsonify(payload), 200


@match_bp.route('/mutual', methods=['GET'])
@jwt_required()
def get_mutual_matches():
    """
    Users who can both teach the current user and learn from them.
    """
    user = current_user()
    if not user.skills_to_learn or not user.skills_to_teach:
        result = matching.find_mutual_matches(user, [])
    else:
        result = matching.find_mutual_matches(user, directory.active_users_excluding(user.id))

    payload = {'success': True, 'matches': [match.to_dict() for match in result.matches]}
    if result.message:
        payload['message'] = result.message
    return jsonify(payload), 200
