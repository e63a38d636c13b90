import logging
import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from salvo.models import Player
from salvo.services.battle.session import GameSession

logger = logging.getLogger(__name__)


class MatchmakingQueue:
    """FIFO of players waiting for an opponent."""

    def __init__(self, session_factory: Callable[[Player, Player], GameSession] = GameSession):
        self._session_factory = session_factory
        self._waiting: Deque[Player] = deque()
        self._lock = threading.Lock()

    def enqueue_or_pair(self, player: Player,
                        alive: Callable[[Player], bool] = lambda p: True) -> Optional[GameSession]:
        """Pair ``player`` with the longest-waiting player, or enqueue it.

        Dequeue, session creation and enqueue happen in one critical section,
        so a waiting player is handed to exactly one newcomer and a player is
        never paired with itself. Waiting players for which ``alive`` is false
        are dropped instead of paired.
        """
        with self._lock:
            if any(waiting is player for waiting in self._waiting):
                return None
            while self._waiting:
                opponent = self._waiting.popleft()
                if not alive(opponent):
                    logger.info(f"[drop-stale] player={opponent.id}")
                    continue
                session = self._session_factory(opponent, player)
                logger.info(f"[pair] session={session.id} seat0={opponent.id} seat1={player.id}")
                return session
            self._waiting.append(player)
            logger.info(f"[enqueue] player={player.id} waiting={len(self._waiting)}")
            return None

    def discard(self, player: Player) -> bool:
        with self._lock:
            for waiting in self._waiting:
                if waiting is player:
                    self._waiting.remove(waiting)
                    logger.info(f"[dequeue] player={player.id} waiting={len(self._waiting)}")
                    return True
            return False

    def clear(self) -> List[Player]:
        with self._lock:
            dropped = list(self._waiting)
            self._waiting.clear()
            return dropped

    def __contains__(self, player) -> bool:
        with self._lock:
            return any(waiting is player for waiting in self._waiting)

    def __len__(self) -> int:
        with self._lock:
            return len(self._waiting)
