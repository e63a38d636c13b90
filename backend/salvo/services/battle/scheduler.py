from salvo import socketio
from salvo.registry import ConnectionRegistry
from salvo.services.battle.session import GameSession


def schedule_turn_timer(app, registry: ConnectionRegistry, session: GameSession) -> bool:
    """Arm a forfeit timer for the current turn of ``session``.

    - No-ops when TURN_TIMEOUT_SEC is 0 (the default)
    - The timer only fires if no shot has been fired since it was armed,
      so every shot simply arms a fresh one
    - In TESTING mode the worker runs inline for determinism
    """
    try:
        timeout = float(app.config.get('TURN_TIMEOUT_SEC', 0) or 0)
    except (TypeError, ValueError):
        app.logger.warning(f"[timer-config] invalid TURN_TIMEOUT_SEC={app.config.get('TURN_TIMEOUT_SEC')!r}")
        return False
    if timeout <= 0:
        return False

    with session.lock:
        if not session.active:
            return False
        expected_shots = session.shots_fired
        seat = session.turn.seat

    app.logger.info(f"[timer-set] session={session.id} seat={seat} shots={expected_shots} timeout={timeout}s")

    def _worker(delay: float, expected: int):
        socketio.sleep(delay)
        with app.app_context():
            if registry.expire_turn(session, expected):
                app.logger.info(f"[timer-fire] session={session.id} seat={seat} forfeited")

    if app.config.get('TESTING'):
        _worker(timeout, expected_shots)
    else:
        socketio.start_background_task(_worker, timeout, expected_shots)
    return True
