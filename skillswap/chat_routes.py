import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import decode_token, jwt_required
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_socketio import emit, join_room, leave_room
from jwt.exceptions import PyJWTError

from skillswap import messaging, socketio
from skillswap.auth import current_user_id
from skillswap.errors import SkillSwapError
from skillswap.validators import page_args

chat_bp = Blueprint('chat', __name__)
logger = logging.getLogger(__name__)


def user_room(user_id):
    return f'user_{user_id}'


@chat_bp.route('/conversations', methods=['GET'])
@jwt_required()
def get_conversations():
    conversations = messaging.list_conversations(current_user_id())
    return jsonify({
        'success': True,
        'conversations': [
            {
                'partner': {
                    'id': c['partner'].id,
                    'name': c['partner'].name,
                    'avatar': c['partner'].avatar,
                    'skillsToTeach': list(c['partner'].skills_to_teach or []),
                },
                'lastMessage': c['last_message'].to_dict(),
                'unreadCount': c['unread_count'],
            }
            for c in conversations
        ],
    }), 200


# Route to fetch chat history
@chat_bp.route('/<int:user_id>', methods=['GET'])
@jwt_required()
def get_chat_history(user_id):
    page, limit = page_args(request.args, default_limit=50)
    other, messages = messaging.conversation_between(current_user_id(), user_id, page=page, limit=limit)
    logger.debug("Retrieved %d messages between %s and %s.", len(messages), current_user_id(), user_id)
    return jsonify({
        'success': True,
        'messages': [m.to_dict() for m in messages],
        'otherUser': {'id': other.id, 'name': other.name, 'avatar': other.avatar},
    }), 200


@chat_bp.route('', methods=['POST'])
@jwt_required()
def send_message():
    data = request.get_json(silent=True) or {}
    message = messaging.send_message(current_user_id(), data.get('receiverId'), data.get('content'))
    payload = message.to_dict()
    socketio.emit('newMessage', payload, to=user_room(message.receiver_id))
    return jsonify({'success': True, 'message': payload}), 201


@chat_bp.route('/<int:message_id>/read', methods=['PUT'])
@jwt_required()
def mark_message_read(message_id):
    message = messaging.mark_read(message_id, current_user_id())
    return jsonify({'success': True, 'message': message.to_dict()}), 200


# WebSocket events for real-time messaging
def _socket_user_id(data):
    """Resolve the sender from the access token sent with the event."""
    token = (data or {}).get('token')
    if not token:
        return None
    try:
        return int(decode_token(token)['sub'])
    except (JWTExtendedException, PyJWTError, KeyError, ValueError) as e:
        logger.info("Rejected socket token: %s", e)
        return None


@socketio.on('join')
def handle_join(data):
    user_id = _socket_user_id(data)
    if user_id is None:
        emit('error', {'message': 'Invalid or expired token'})
        return
    join_room(user_room(user_id))
    logger.debug("User %s joined their room.", user_id)
    emit('status', {'message': f'User {user_id} joined'})


@socketio.on('leave')
def handle_leave(data):
    user_id = _socket_user_id(data)
    if user_id is None:
        return
    leave_room(user_room(user_id))
    logger.debug("User %s left their room.", user_id)


@socketio.on('sendMessage')
def handle_send_message(data):
    sender_id = _socket_user_id(data)
    if sender_id is None:
        emit('error', {'message': 'Invalid or expired token'})
        return

    try:
        message = messaging.send_message(sender_id, (data or {}).get('receiverId'), (data or {}).get('content'))
    except SkillSwapError as e:
        emit('error', {'message': e.message})
        return

    payload = message.to_dict()
    emit('newMessage', payload, to=user_room(message.receiver_id))
    emit('newMessage', payload, to=user_room(sender_id))
    logger.debug("Message %s broadcast to users %s and %s.", message.id, sender_id, message.receiver_id)
