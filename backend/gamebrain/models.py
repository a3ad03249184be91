from gamebrain import db
import json
import random
import string


def generate_session_id(length=6):
    """Generate an unused session id such as ``S4f09ab``."""
    alphabet = string.digits + 'abcdef'
    while True:
        session_id = 'S' + ''.join(random.choices(alphabet, k=length))
        if db.session.get(GameSession, session_id) is None:
            return session_id


class GameSession(db.Model):
    __tablename__ = 'sessions'
    id = db.Column(db.String(64), primary_key=True)
    state_json = db.Column(db.Text, nullable=False)
    updated_at = db.Column(db.BigInteger, nullable=False, index=True)  # epoch ms

    @property
    def state(self):
        return json.loads(self.state_json)

    @state.setter
    def state(self, value):
        self.state_json = json.dumps(value)

    def to_dict(self):
        return {
            'session_id': self.id,
            'updated_at': self.updated_at,
            'state': self.state,
        }


class GameEvent(db.Model):
    __tablename__ = 'events'
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    session_id = db.Column(db.String(64), nullable=False, index=True)
    type = db.Column(db.String(64), nullable=False)
    payload_json = db.Column(db.Text, nullable=False)
    ts = db.Column(db.BigInteger, nullable=False)  # epoch ms

    @property
    def payload(self):
        return json.loads(self.payload_json)

    def to_dict(self):
        return {
            'id': self.id,
            'session_id': self.session_id,
            'kind': self.type,
            'payload': self.payload,
            'ts': self.ts,
        }
