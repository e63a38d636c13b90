from flask import current_app, request

from salvo import socketio
from salvo.errors import TransportFailure
from salvo.router import MessageRouter
from salvo.services.battle.scheduler import schedule_turn_timer


class SocketIOTransport:
    """Sends protocol text to one Socket.IO connection (its sid)."""

    def __init__(self, server, namespace: str):
        self.server = server
        self.namespace = namespace

    def send(self, connection: str, text: str) -> None:
        try:
            self.server.send(text, to=connection, namespace=self.namespace)
        except Exception as exc:
            raise TransportFailure(str(exc)) from exc


def _router() -> MessageRouter:
    return current_app.extensions['salvo']


def _get_sid() -> str:
    return request.sid


def handle_connect(auth=None):
    router = _router()
    player = router.registry.register(_get_sid())
    session = player.session
    if session is not None:
        schedule_turn_timer(current_app._get_current_object(), router.registry, session)


def handle_message(data):
    router = _router()
    outcome = router.handle(_get_sid(), data)
    if outcome is None or outcome.game_over:
        return
    session = outcome.attacker.session
    if session is not None:
        schedule_turn_timer(current_app._get_current_object(), router.registry, session)


def handle_disconnect(reason=None):
    player = _router().registry.unregister(_get_sid())
    if player is not None:
        current_app.logger.info(f"[socket-closed] player={player.id} reason={reason}")


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register the game handlers on ``namespace``.

    Handlers look the router up on ``current_app``, so every app built by
    ``create_app`` talks to its own registry.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('message', handle_message, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
