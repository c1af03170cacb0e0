import logging

from skillswap import db
from skillswap.directory import require_user
from skillswap.errors import NotFound, ValidationError
from skillswap.models import Message, utcnow
from skillswap.persistence import fetch, unit_of_work

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 2000


def send_message(sender_id, receiver_id, content):
    content = (content or '').strip()
    if not receiver_id or not content:
        raise ValidationError('Receiver ID and content are required')
    try:
        receiver_id = int(receiver_id)
    except (TypeError, ValueError):
        raise ValidationError('Receiver ID must be an integer')
    if len(content) > MAX_MESSAGE_LENGTH:
        raise ValidationError(f'Message must be at most {MAX_MESSAGE_LENGTH} characters')
    if sender_id == receiver_id:
        raise ValidationError('You cannot message yourself')

    require_user(receiver_id, 'Receiver')

    message = Message(sender_id=sender_id, receiver_id=receiver_id, content=content)
    with unit_of_work(f"save message from {sender_id} to {receiver_id}"):
        db.session.add(message)

    logger.debug("Message %s saved from %s to %s.", message.id, sender_id, receiver_id)
    return message


def _between(user_id, other_id):
    return db.or_(
        db.and_(Message.sender_id == user_id, Message.receiver_id == other_id),
        db.and_(Message.sender_id == other_id, Message.receiver_id == user_id),
    )


def conversation_between(user_id, other_id, page=1, limit=50):
    """
    One page of the conversation, oldest first within the page.

    Opening a conversation marks everything the partner sent as read.
    """
    other = require_user(other_id)

    newest_first = fetch(
        f"load conversation {user_id}<->{other_id}",
        lambda: Message.query.filter(_between(user_id, other_id))
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .offset((page - 1) * limit)
        .all(),
    )

    with unit_of_work(f"mark messages from {other_id} read"):
        Message.query.filter(
            Message.sender_id == other_id,
            Message.receiver_id == user_id,
            Message.is_read.is_(False),
        ).update({'is_read': True, 'read_at': utcnow()}, synchronize_session='fetch')

    return other, list(reversed(newest_first))


def list_conversations(user_id):
    """Latest message and unread count per conversation partner, most recent first."""
    messages = fetch(
        f"load conversations for user {user_id}",
        lambda: Message.query.filter(
            db.or_(Message.sender_id == user_id, Message.receiver_id == user_id)
        ).order_by(Message.created_at.desc(), Message.id.desc()).all(),
    )

    conversations = {}
    for message in messages:
        partner = message.receiver if message.sender_id == user_id else message.sender
        entry = conversations.get(partner.id)
        if entry is None:
            entry = conversations[partner.id] = {
                'partner': partner,
                'last_message': message,
                'unread_count': 0,
            }
        if message.receiver_id == user_id and not message.is_read:
            entry['unread_count'] += 1

    # Insertion order already follows the newest message per partner
    return list(conversations.values())


def mark_read(message_id, user_id):
    with unit_of_work(f"mark message {message_id} read"):
        message = Message.query.filter_by(id=message_id, receiver_id=user_id, is_read=False).first()
        if message is None:
            raise NotFound('Message not found or already read')
        message.is_read = True
        message.read_at = utcnow()
    return message
