from flask import Blueprint, current_app, jsonify

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Salvo game server!'})


@main.route('/status')
def status():
    """Live counts of connections and waiting players, plus running games."""
    registry = current_app.extensions['salvo'].registry
    data = registry.stats()
    data['sessions'] = registry.sessions()
    return jsonify(data)
