from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


@rooms.route('/<string:room_code>', methods=['GET'])
def get_room(room_code):
    """
    Returns the public state of a room: roster, call history and claims.
    Tickets and chat are only sent to joined players over the socket.
    """
    session = current_app.extensions['tambola'].registry.get(room_code)
    if session is None:
        return jsonify({'error': 'Room not found'}), 404
    with session.lock:
        return jsonify(session.to_dict())
