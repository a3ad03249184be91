"""OBS Studio scene control over obs-websocket v5.

The bridge owns its connection state and reconnect backoff. The engine only
ever calls ``dispatch`` from a background task, which logs failures and never
raises, so a stalled or missing OBS cannot hold up gameplay.
"""
import logging
import threading
import time

import obsws_python as obsws
from obsws_python.error import OBSSDKError, OBSSDKRequestError
from websocket import WebSocketException

logger = logging.getLogger(__name__)

SWITCH_SCENE2 = 'switch_scene2'
TOGGLE_SPOTLIGHT = 'toggle_spotlight'

_TRANSPORT_ERRORS = (OBSSDKError, OSError, WebSocketException)


class ActuatorError(Exception):
    pass


class ObsBridge:
    def __init__(
        self,
        host='127.0.0.1',
        port=4455,
        password='',
        timeout=3.0,
        scene2_name='Scene 2',
        base_scene_name='Scene',
        spotlight_source='SOLEIL',
        max_backoff=30.0,
        client_factory=None,
        clock=time.monotonic,
    ):
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout
        self.scene2_name = scene2_name
        self.base_scene_name = base_scene_name
        self.spotlight_source = spotlight_source
        self.max_backoff = max_backoff
        self._client_factory = client_factory or obsws.ReqClient
        self._clock = clock
        self._client = None
        self._failures = 0
        self._retry_at = 0.0
        self._connect_lock = threading.Lock()
        self._request_lock = threading.Lock()
        self._effects = {
            SWITCH_SCENE2: lambda: self.set_scene(self.scene2_name),
            TOGGLE_SPOTLIGHT: lambda: self.toggle_source(self.scene2_name, self.spotlight_source),
        }

    @classmethod
    def from_config(cls, config):
        return cls(
            host=config.get('OBS_HOST', '127.0.0.1'),
            port=int(config.get('OBS_PORT', 4455)),
            password=config.get('OBS_PASSWORD', ''),
            timeout=float(config.get('OBS_TIMEOUT_SEC', 3)),
            scene2_name=config.get('OBS_SCENE_2_NAME', 'Scene 2'),
            base_scene_name=config.get('OBS_BASE_SCENE_NAME', 'Scene'),
            spotlight_source=config.get('OBS_SPOTLIGHT_SOURCE', 'SOLEIL'),
            max_backoff=float(config.get('OBS_RECONNECT_MAX_BACKOFF_SEC', 30)),
        )

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def effects(self):
        return sorted(self._effects)

    def connect(self) -> bool:
        """Connect if needed. Safe to call repeatedly and from many threads."""
        if self._client is not None:
            return True
        with self._connect_lock:
            if self._client is not None:
                return True
            if self._clock() < self._retry_at:
                return False
            try:
                self._client = self._client_factory(
                    host=self.host, port=self.port, password=self.password, timeout=self.timeout
                )
            except _TRANSPORT_ERRORS as exc:
                self._failures += 1
                backoff = min(self.max_backoff, 0.5 * (2 ** (self._failures - 1)))
                self._retry_at = self._clock() + backoff
                logger.warning(
                    f"[obs-connect-failed] host={self.host}:{self.port} attempt={self._failures} "
                    f"retry_in={backoff:.1f}s error={exc}"
                )
                return False
            self._failures = 0
            self._retry_at = 0.0
            logger.info(f"[obs-connected] host={self.host}:{self.port}")
            return True

    def disconnect(self) -> None:
        with self._connect_lock:
            client, self._client = self._client, None
        if client is not None:
            try:
                client.disconnect()
            except _TRANSPORT_ERRORS as exc:
                logger.debug(f"[obs-disconnect] error={exc}")

    def _request(self, name, *args):
        if not self.connect():
            raise ActuatorError('OBS not connected')
        client = self._client
        if client is None:
            raise ActuatorError('OBS connection closed')
        try:
            with self._request_lock:
                return getattr(client, name)(*args)
        except OBSSDKRequestError as exc:
            # OBS answered; the connection itself is fine
            raise ActuatorError(f'{name} rejected: {exc}') from exc
        except _TRANSPORT_ERRORS as exc:
            logger.warning(f"[obs-connection-lost] request={name} error={exc}")
            self.disconnect()
            raise ActuatorError(f'{name} failed: {exc}') from exc

    def set_scene(self, scene_name: str) -> bool:
        self._request('set_current_program_scene', scene_name)
        logger.info(f"[obs-scene] program={scene_name}")
        return True

    def toggle_source(self, scene_name: str, source_name: str) -> bool:
        """Flip a source's visibility in ``scene_name`` and take it to program.

        When the source was visible (and is now hidden) ``scene_name`` goes
        live; otherwise the base scene does.
        """
        items = self._request('get_scene_item_list', scene_name).scene_items
        item = next((i for i in items if i.get('sourceName') == source_name), None)
        if item is None:
            raise ActuatorError(f'{source_name} source not found in {scene_name}')

        was_enabled = bool(item.get('sceneItemEnabled'))
        self._request('set_scene_item_enabled', scene_name, item['sceneItemId'], not was_enabled)
        if self._request('get_studio_mode_enabled').studio_mode_enabled:
            self._request('trigger_studio_mode_transition')
        self.set_scene(scene_name if was_enabled else self.base_scene_name)
        logger.info(f"[obs-toggle] scene={scene_name} source={source_name} visible={not was_enabled}")
        return True

    def trigger_scene_effect(self, effect_id: str) -> bool:
        effect = self._effects.get(effect_id)
        if effect is None:
            raise ActuatorError(f'Unknown scene effect: {effect_id}')
        return effect()

    def dispatch(self, effect_id: str) -> bool:
        """Fire-and-forget entry point: failures are logged, never raised."""
        started = self._clock()
        try:
            self.trigger_scene_effect(effect_id)
        except ActuatorError as exc:
            logger.warning(f"[obs-effect-failed] effect={effect_id} error={exc}")
            return False
        logger.info(f"[obs-effect] effect={effect_id} took={self._clock() - started:.2f}s")
        return True

    def health(self) -> dict:
        ok = self.connect()
        return {'ok': ok, 'connected': self.connected, 'host': self.host, 'port': self.port}
