import json

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

WS_NAMESPACE = '/ws'


def _cors_origins(value):
    if not value or value == '*':
        return '*'
    return [o.strip() for o in value.split(',') if o.strip()]


def _emit_to_subscriber(sid, event, data):
    socketio.emit(event, data, to=sid, namespace=WS_NAMESPACE)


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    origins = _cors_origins(flask_app.config.get('CORS_ORIGINS'))
    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=origins)
    socketio.init_app(flask_app, cors_allowed_origins=origins)

    # Session synchronization engine, shared by HTTP routes and socket handlers
    from gamebrain.services.obs import ObsBridge
    from gamebrain.services.timeline import RoomRegistry, SessionStore, SyncEngine, OBS_SWITCH_SCENE2

    bridge = ObsBridge.from_config(flask_app.config)
    engine = SyncEngine(
        SessionStore(),
        RoomRegistry(_emit_to_subscriber),
        bridge=bridge,
        spawn=socketio.start_background_task,
        actuator_effects={OBS_SWITCH_SCENE2: flask_app.config.get('OBS_SWITCH_SCENE2_EFFECT')},
        strict_kinds=bool(flask_app.config.get('STRICT_EVENT_KINDS')),
    )
    flask_app.extensions['obs'] = bridge
    flask_app.extensions['timeline'] = engine

    from gamebrain.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    from gamebrain.api.obs import obs
    flask_app.register_blueprint(obs, url_prefix='/api/obs')

    from gamebrain.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the sessions and events tables."""
        import gamebrain.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            print('Database has been reset!')

    @click.command('audit-session')
    @click.argument('session_id')
    def audit_session_command(session_id):
        """Replays a session's event log and compares it with the stored snapshot."""
        with flask_app.app_context():
            report = engine.audit_session(session_id)
        print(json.dumps(report, indent=2, ensure_ascii=False))
        if not report['consistent']:
            raise click.exceptions.Exit(1)

    flask_app.cli.add_command(db_reset_command)
    flask_app.cli.add_command(audit_session_command)

    flask_app.logger.info(
        f"[startup] db={flask_app.config.get('SQLALCHEMY_DATABASE_URI')} "
        f"obs={bridge.host}:{bridge.port} strict_kinds={engine.strict_kinds}"
    )
    return flask_app
