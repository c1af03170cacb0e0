from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required

from skillswap import appointments
from skillswap.auth import current_user_id
from skillswap.errors import ValidationError
from skillswap.models import APPOINTMENT_STATUSES
from skillswap.validators import validate_appointment_request, validate_feedback, validate_status_update

appointment_bp = Blueprint('appointments', __name__)


# Appointments where the current user is teacher or learner
@appointment_bp.route('', methods=['GET'])
@jwt_required()
def list_appointments():
    status = request.args.get('status')
    role = request.args.get('type', 'all')
    if status and status not in APPOINTMENT_STATUSES:
        raise ValidationError('Invalid status')
    if role not in ('all', 'teaching', 'learning'):
        raise ValidationError("type must be one of 'all', 'teaching', 'learning'")

    items = appointments.list_for_user(current_user_id(), status=status, role=role)
    return jsonify({'success': True, 'appointments': [a.to_dict() for a in items]}), 200


@appointment_bp.route('/<int:appointment_id>', methods=['GET'])
@jwt_required()
def get_appointment(appointment_id):
    appointment = appointments.get(appointment_id, requesting_user_id=current_user_id())
    return jsonify({'success': True, 'appointment': appointment.to_dict()}), 200


@appointment_bp.route('', methods=['POST'])
@jwt_required()
def create_appointment():
    data = validate_appointment_request(request.get_json(silent=True))
    appointment = appointments.create(
        learner_id=current_user_id(),
        teacher_id=data['teacher_id'],
        skill=data['skill'],
        title=data['title'],
        scheduled_date=data['scheduled_date'],
        duration=data.get('duration'),
        description=data.get('description'),
        meeting_link=data.get('meeting_link'),
    )
    return jsonify({'success': True, 'appointment': appointment.to_dict()}), 201


# accept / reject / complete / cancel
@appointment_bp.route('/<int:appointment_id>/status', methods=['PUT'])
@jwt_required()
def update_appointment_status(appointment_id):
    data = validate_status_update(request.get_json(silent=True))
    appointment = appointments.update_status(
        appointment_id, current_user_id(), data['status'], notes=data.get('notes'),
    )
    return jsonify({'success': True, 'appointment': appointment.to_dict()}), 200


@appointment_bp.route('/<int:appointment_id>/feedback', methods=['PUT'])
@jwt_required()
def submit_feedback(appointment_id):
    data = validate_feedback(request.get_json(silent=True))
    appointment = appointments.submit_feedback(
        appointment_id, current_user_id(), data['rating'], feedback=data.get('feedback'),
    )
    return jsonify({'success': True, 'appointment': appointment.to_dict()}), 200
