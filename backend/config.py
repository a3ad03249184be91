import os


def _env_bool(name, default='0'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///game.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Comma separated list, or "*" for any device on the LAN
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*')
    # Reject unrecognized event kinds instead of recording them as no-ops
    STRICT_EVENT_KINDS = _env_bool('STRICT_EVENT_KINDS')
    # Default/maximum page size for GET /api/sessions
    SESSION_LIST_LIMIT = int(os.environ.get('SESSION_LIST_LIMIT', '50'))
    # OBS WebSocket (v5) stage control
    OBS_HOST = os.environ.get('OBS_HOST', '127.0.0.1')
    OBS_PORT = int(os.environ.get('OBS_PORT', '4455'))
    OBS_PASSWORD = os.environ.get('OBS_PASSWORD', '')
    # Per-request timeout (seconds). Bounds how long a stalled OBS can hold a worker.
    OBS_TIMEOUT_SEC = float(os.environ.get('OBS_TIMEOUT_SEC', '3'))
    # Reconnect backoff ceiling (seconds) after failed connection attempts
    OBS_RECONNECT_MAX_BACKOFF_SEC = float(os.environ.get('OBS_RECONNECT_MAX_BACKOFF_SEC', '30'))
    OBS_SCENE_2_NAME = os.environ.get('OBS_SCENE_2_NAME', 'Scene 2')
    OBS_BASE_SCENE_NAME = os.environ.get('OBS_BASE_SCENE_NAME', 'Scene')
    OBS_SPOTLIGHT_SOURCE = os.environ.get('OBS_SPOTLIGHT_SOURCE', 'SOLEIL')
    # Effect run when a device submits OBS_SWITCH_SCENE2: switch_scene2 | toggle_spotlight
    OBS_SWITCH_SCENE2_EFFECT = os.environ.get('OBS_SWITCH_SCENE2_EFFECT', 'toggle_spotlight')
