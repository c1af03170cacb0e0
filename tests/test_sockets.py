from flask_jwt_extended import create_access_token

from skillswap import socketio
from skillswap.models import Message


def token_for(user):
    return create_access_token(identity=str(user.id))


def events(client, name):
    return [e for e in client.get_received() if e['name'] == name]


def test_send_message_reaches_receiver_room(app, make_user):
    alice, bob = make_user('Alice'), make_user('Bob')
    alice_socket = socketio.test_client(app)
    bob_socket = socketio.test_client(app)

    bob_socket.emit('join', {'token': token_for(bob)})
    bob_socket.get_received()

    alice_socket.emit('sendMessage', {'token': token_for(alice), 'receiverId': bob.id, 'content': 'Hola!'})

    received = events(bob_socket, 'newMessage')
    assert len(received) == 1
    assert received[0]['args'][0]['content'] == 'Hola!'
    assert received[0]['args'][0]['senderId'] == alice.id
    assert Message.query.count() == 1


def test_join_without_token_is_rejected(app):
    client = socketio.test_client(app)

    client.emit('join', {})

    errors = events(client, 'error')
    assert errors and errors[0]['args'][0]['message'] == 'Invalid or expired token'


def test_invalid_message_reports_error(app, make_user):
    alice = make_user('Alice')
    client = socketio.test_client(app)

    client.emit('sendMessage', {'token': token_for(alice), 'receiverId': 999, 'content': 'anyone?'})

    errors = events(client, 'error')
    assert errors[0]['args'][0]['message'] == 'Receiver not found'
