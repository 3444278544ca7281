import time

from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Tambola server is running'})


@main.route('/health')
def health():
    engine = current_app.extensions['tambola']
    return jsonify({'status': 'healthy', 'rooms': len(engine.registry), 'timestamp': time.time()})
