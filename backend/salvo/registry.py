"""Connection lifecycle: who is connected, who is waiting, who is playing."""
import logging
import random
import threading
from typing import Dict, Iterable, Optional, Protocol, Sequence

from salvo import protocol
from salvo.errors import TransportFailure
from salvo.models import Player
from salvo.services.battle.board import DEFAULT_FLEET, Board
from salvo.services.battle.matchmaking import MatchmakingQueue
from salvo.services.battle.session import GameSession, Outbound

logger = logging.getLogger(__name__)

WAITING_MSG = 'Waiting for an opponent...'
OPPONENT_LEFT_MSG = 'Your opponent disconnected.'
TURN_EXPIRED_MSG = 'You ran out of time. Game over.'
OPPONENT_EXPIRED_MSG = 'Your opponent ran out of time. You win.'
SHUTDOWN_MSG = 'The server is shutting down.'


class Transport(Protocol):
    def send(self, connection: str, text: str) -> None:
        ...


class ConnectionRegistry:
    """Owns the connection -> Player map and the index of live sessions.

    One registry is built per application by ``create_app`` and handed to
    the socket handlers; tests build their own with a fake transport.
    ``shutdown()`` ends every running game and forgets all connections.

    The registry lock only guards the two maps. It may be taken while a
    session lock is held, never the other way round, and it is never held
    while messages are delivered.
    """

    def __init__(self, transport: Transport, fleet: Sequence[int] = DEFAULT_FLEET,
                 rng: Optional[random.Random] = None, queue: Optional[MatchmakingQueue] = None):
        self.transport = transport
        self.fleet = tuple(fleet)
        self.rng = rng or random.Random()
        self.queue = queue or MatchmakingQueue()
        self._players: Dict[str, Player] = {}
        self._sessions: Dict[str, GameSession] = {}
        self._lock = threading.Lock()

    def register(self, connection: str) -> Player:
        board = Board()
        board.place(self.fleet, self.rng)
        player = Player(connection=connection, board=board)
        with self._lock:
            if connection in self._players:
                raise ValueError(f'connection {connection} is already registered')
            self._players[connection] = player
        logger.info(f"[connect] conn={connection} player={player.id}")
        self._enroll(player)
        return player

    def _is_registered(self, player: Player) -> bool:
        return self.player_for(player.connection) is player

    def _enroll(self, player: Player) -> None:
        """Pair ``player`` or put it in the queue, then notify."""
        session = self.queue.enqueue_or_pair(player, alive=self._is_registered)
        if session is None:
            if not self._is_registered(player):
                # Left while being enqueued; its unregister may have missed it
                self.queue.discard(player)
                return
            self.deliver(player, protocol.waiting(WAITING_MSG))
            return

        with session.lock:
            # The waiting player may have left between pairing and here;
            # unregister has then put this player back in the queue
            if not session.active:
                return
            with self._lock:
                self._sessions[session.id] = session
            session.started = True
            for seated, message in session.start_messages():
                # A failed send ends the session and the survivor gets 'end' instead
                if not session.active:
                    break
                self.deliver(seated, message)

    def unregister(self, connection: str) -> Optional[Player]:
        with self._lock:
            player = self._players.pop(connection, None)
        if player is None:
            return None
        logger.info(f"[disconnect] conn={connection} player={player.id}")

        if self.queue.discard(player):
            return player
        session = player.session
        if session is None:
            return player
        requeue = None
        with session.lock:
            survivor = session.abandon(player)
            if survivor is None:
                return player
            self.finish(session)
            if self._is_registered(survivor):
                if session.started:
                    self.deliver(survivor, protocol.end(OPPONENT_LEFT_MSG))
                else:
                    requeue = survivor
        if requeue is not None:
            requeue.seat = None
            logger.info(f"[requeue] player={requeue.id} session={session.id} never started")
            self._enroll(requeue)
        return player

    def player_for(self, connection: str) -> Optional[Player]:
        with self._lock:
            return self._players.get(connection)

    def session_for(self, connection: str) -> Optional[GameSession]:
        player = self.player_for(connection)
        if player is None:
            return None
        return player.session

    def get_session(self, session_id: str) -> Optional[GameSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def finish(self, session: GameSession) -> None:
        """Drop a finished session from the index and from its players."""
        with self._lock:
            self._sessions.pop(session.id, None)
        session.detach()

    def deliver(self, player: Player, message: dict) -> bool:
        try:
            self.transport.send(player.connection, protocol.encode(message))
        except TransportFailure as exc:
            logger.warning(f"[send-failed] conn={player.connection} type={message.get('type')} error={exc}")
            self.unregister(player.connection)
            return False
        return True

    def deliver_all(self, outbound: Iterable[Outbound]) -> bool:
        delivered = True
        for player, message in outbound:
            delivered = self.deliver(player, message) and delivered
        return delivered

    def expire_turn(self, session: GameSession, expected_shots: int) -> bool:
        with session.lock:
            idle = session.forfeit_turn(expected_shots)
            if idle is None:
                return False
            self.finish(session)
            self.deliver_all([
                (idle, protocol.end(TURN_EXPIRED_MSG)),
                (session.opponent_of(idle), protocol.end(OPPONENT_EXPIRED_MSG)),
            ])
        return True

    def stats(self):
        with self._lock:
            connections = len(self._players)
            sessions = len(self._sessions)
        return {
            'connections': connections,
            'waiting': len(self.queue),
            'active_sessions': sessions,
        }

    def sessions(self):
        with self._lock:
            sessions = list(self._sessions.values())
        summaries = []
        for session in sessions:
            with session.lock:
                summaries.append(session.to_dict())
        return summaries

    def shutdown(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            with session.lock:
                if not session.close():
                    continue
                self.finish(session)
                self.deliver_all((player, protocol.end(SHUTDOWN_MSG)) for player in session.players)
        dropped = self.queue.clear()
        with self._lock:
            self._players.clear()
            self._sessions.clear()
        logger.info(f"[shutdown] sessions={len(sessions)} waiting={len(dropped)}")
