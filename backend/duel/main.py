from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the duel server!'})

@main.route('/api/stats')
def stats():
    return jsonify(current_app.extensions['duel'].stats())

@main.route('/api/config')
def game_config():
    return jsonify(current_app.extensions['duel'].config.to_dict())
