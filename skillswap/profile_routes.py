from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skillswap import directory
from skillswap.auth import current_user, current_user_id
from skillswap.validators import page_args, validate_profile_update

profile_bp = Blueprint('profile', __name__)


@profile_bp.route('/profile', methods=['GET'])
@jwt_required()
def view_profile():
    return jsonify({'success': True, 'user': current_user().to_dict()}), 200


@profile_bp.route('/profile', methods=['PUT'])
@jwt_required()
def update_profile():
    changes = validate_profile_update(request.get_json(silent=True))
    user = directory.update_profile(current_user_id(), changes)
    return jsonify({'success': True, 'user': user.to_dict()}), 200


# Search other users by a skill they teach
@profile_bp.route('/search', methods=['GET'])
@jwt_required()
def search_users():
    page, limit = page_args(request.args, default_limit=10)
    result = directory.search_by_skill(
        current_user_id(),
        skill=request.args.get('skill'),
        page=page,
        limit=limit,
    )
    return jsonify({
        'success': True,
        'users': [user.to_dict() for user in result['users']],
        'totalPages': result['total_pages'],
        'currentPage': result['current_page'],
    }), 200
