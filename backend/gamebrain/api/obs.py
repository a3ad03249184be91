from flask import Blueprint, jsonify, request, current_app
from gamebrain.services.obs import ActuatorError


obs = Blueprint('obs', __name__)


def _bridge():
    return current_app.extensions['obs']


@obs.errorhandler(ActuatorError)
def handle_actuator_error(exc):
    current_app.logger.warning(f"[obs-api-error] path={request.path} error={exc}")
    return jsonify({'ok': False, 'error': str(exc)}), 502


@obs.route('/health', methods=['GET'])
def health():
    return jsonify(_bridge().health())


@obs.route('/scene', methods=['POST'])
def switch_scene():
    data = request.get_json(silent=True)
    if data is not None and not isinstance(data, dict):
        return jsonify({'ok': False, 'error': 'Request body must be a JSON object'}), 400
    data = data or {}
    scene_name = data.get('scene_name') or data.get('sceneName')
    if not scene_name:
        return jsonify({'ok': False, 'error': 'scene_name required'}), 400
    _bridge().set_scene(scene_name)
    return jsonify({'ok': True, 'scene_name': scene_name})


# Convenience endpoint: switch to the configured Scene 2
@obs.route('/scene2', methods=['POST'])
def switch_scene2():
    scene_name = current_app.config.get('OBS_SCENE_2_NAME', 'Scene 2')
    _bridge().set_scene(scene_name)
    return jsonify({'ok': True, 'scene_name': scene_name})
