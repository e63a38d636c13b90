import logging
from typing import Optional

from salvo import protocol
from salvo.errors import GameError
from salvo.registry import ConnectionRegistry
from salvo.services.battle.session import ShotOutcome

logger = logging.getLogger(__name__)


class MessageRouter:
    """Turns inbound channel messages into session operations."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def handle(self, connection: str, raw) -> Optional[ShotOutcome]:
        message = protocol.decode(raw)
        if isinstance(message, protocol.Unrecognized):
            logger.debug(f"[drop] conn={connection} type={message.type} reason={message.reason}")
            return None

        player = self.registry.player_for(connection)
        session = player.session if player else None
        if session is None:
            logger.debug(f"[drop] conn={connection} shoot without an active session")
            return None
        if message.game_id is not None and message.game_id != session.id:
            # The id is advisory; the session always comes from the connection
            logger.info(f"[game-id-mismatch] conn={connection} claimed={message.game_id} actual={session.id}")

        with session.lock:
            try:
                outcome = session.apply_shot(player, message.row, message.col)
            except GameError as exc:
                logger.info(f"[rejected] session={session.id} player={player.id} "
                            f"reason={type(exc).__name__} row={message.row} col={message.col}")
                self.registry.deliver(player, protocol.error(exc.message))
                return None
            if outcome.game_over:
                self.registry.finish(session)
            for recipient, reply in session.outcome_messages(outcome):
                # A failed send mid-game ends the session; the peer already got 'end'
                if not outcome.game_over and not session.active:
                    break
                self.registry.deliver(recipient, reply)
        return outcome
