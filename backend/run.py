import os

from gamebrain import create_app, socketio

app = create_app()


def server_options(environ=os.environ):
    debug = environ.get('FLASK_DEBUG') == '1'
    # Devices on the LAN (past/present/future stations) connect directly.
    # The Werkzeug dev server is only allowed in debug mode.
    return {
        'host': environ.get('HOST', '0.0.0.0'),
        'port': int(environ.get('PORT', '3000')),
        'debug': debug,
        'allow_unsafe_werkzeug': debug,
    }


if __name__ == '__main__':
    socketio.run(app, **server_options())
