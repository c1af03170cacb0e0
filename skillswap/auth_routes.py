import logging

from flask import Blueprint, jsonify, request

from skillswap import bcrypt, directory
from skillswap.auth import generate_token
from skillswap.errors import SkillSwapError
from skillswap.validators import validate_login, validate_registration

auth_bp = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    data = validate_registration(request.get_json(silent=True))

    # Hash the password and insert the new user
    password_hash = bcrypt.generate_password_hash(data['password']).decode('utf-8')
    user = directory.create_user(
        name=data['name'],
        email=data['email'],
        password_hash=password_hash,
        skills_to_teach=data.get('skills_to_teach'),
        skills_to_learn=data.get('skills_to_learn'),
        bio=data.get('bio'),
        location=data.get('location'),
    )

    return jsonify({'success': True, 'access_token': generate_token(user), 'user': user.to_dict()}), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    data = validate_login(request.get_json(silent=True))

    user = directory.get_user_by_email(data['email'])
    if user and user.is_active and bcrypt.check_password_hash(user.password_hash, data['password']):
        return jsonify({'success': True, 'access_token': generate_token(user), 'user': user.to_dict()}), 200

    logger.info("Failed login attempt.")
    raise SkillSwapError('Invalid email or password', status_code=401)
