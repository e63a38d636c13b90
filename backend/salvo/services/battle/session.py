import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from salvo import protocol
from salvo.errors import DuplicateShot, OutOfBounds, TurnViolation
from salvo.models import Player, generate_id

logger = logging.getLogger(__name__)

Outbound = Tuple[Player, Dict]


class SessionStatus(str, Enum):
    ACTIVE = 'active'
    FINISHED = 'finished'


@dataclass(frozen=True)
class ShotOutcome:
    attacker: Player
    defender: Player
    row: int
    col: int
    hit: bool
    sunk: bool
    game_over: bool


class GameSession:
    """State machine for one game between two seated players.

    Seat 0 is the first-joined player and owns the first turn. Every
    mutation happens under ``lock``; callers that must order their own
    notifications after a mutation (the registry, the router) hold the same
    re-entrant lock while delivering.
    """

    def __init__(self, first: Player, second: Player, session_id: Optional[str] = None):
        if first is second:
            raise ValueError('a player cannot be paired with itself')
        self.id = session_id or generate_id()
        self.players: Tuple[Player, Player] = (first, second)
        for seat, player in enumerate(self.players):
            player.seat = seat
            player.session = self
        self.turn: Player = first
        self.status = SessionStatus.ACTIVE
        # Set once both players have been sent 'start'
        self.started = False
        self.winner: Optional[Player] = None
        self.shots_fired = 0
        self.lock = threading.RLock()
        self._targeted: Dict[int, Set[Tuple[int, int]]] = {0: set(), 1: set()}

    @property
    def active(self) -> bool:
        return self.status is SessionStatus.ACTIVE

    def opponent_of(self, player: Player) -> Player:
        first, second = self.players
        if player is first:
            return second
        if player is second:
            return first
        raise ValueError(f'{player!r} is not seated in session {self.id}')

    def start_messages(self) -> List[Outbound]:
        return [
            (player, protocol.start(self.id, player.board.snapshot(), player.seat))
            for player in self.players
        ]

    def apply_shot(self, attacker: Player, row: int, col: int) -> ShotOutcome:
        with self.lock:
            if not self.active:
                raise TurnViolation('The game is over.')
            if attacker is not self.turn:
                raise TurnViolation('It is not your turn.')
            defender = self.opponent_of(attacker)
            board = defender.board
            if not board.in_bounds(row, col):
                raise OutOfBounds(f'Cell ({row}, {col}) is off the board.')
            targeted = self._targeted[attacker.seat]
            if (row, col) in targeted:
                raise DuplicateShot('You already fired at that cell.')

            targeted.add((row, col))
            self.shots_fired += 1
            hit = sunk = False
            if board.shot_at(row, col) > 0:
                ship = board.mark_hit(row, col)
                hit = True
                sunk = ship.sunk
            else:
                board.mark_miss(row, col)
            game_over = hit and board.all_sunk()

            if game_over:
                self.status = SessionStatus.FINISHED
                self.winner = attacker
                logger.info(f"[game-over] session={self.id} winner={attacker.id} shots={self.shots_fired}")
            else:
                self.turn = defender
            return ShotOutcome(attacker, defender, row, col, hit, sunk, game_over)

    def outcome_messages(self, outcome: ShotOutcome) -> List[Outbound]:
        fields = (outcome.row, outcome.col, outcome.hit, outcome.sunk, outcome.game_over)
        return [
            (outcome.attacker, protocol.result(*fields)),
            (outcome.defender, protocol.shot(*fields)),
        ]

    def abandon(self, leaver: Player) -> Optional[Player]:
        """Finish the session because ``leaver`` left; return the survivor.

        Returns None when the session was already finished.
        """
        with self.lock:
            survivor = self.opponent_of(leaver)
            if not self.active:
                return None
            self.status = SessionStatus.FINISHED
            self.winner = survivor
            logger.info(f"[abandon] session={self.id} leaver={leaver.id} survivor={survivor.id}")
            return survivor

    def forfeit_turn(self, expected_shots: int) -> Optional[Player]:
        """Finish the session if the turn owner has not fired since
        ``expected_shots`` was observed. Returns the idle player."""
        with self.lock:
            if not self.active or self.shots_fired != expected_shots:
                return None
            idle = self.turn
            self.status = SessionStatus.FINISHED
            self.winner = self.opponent_of(idle)
            logger.info(f"[turn-expired] session={self.id} idle={idle.id} shots={self.shots_fired}")
            return idle

    def close(self) -> bool:
        """Finish without a winner. Returns False if already finished."""
        with self.lock:
            if not self.active:
                return False
            self.status = SessionStatus.FINISHED
            return True

    def detach(self) -> None:
        for player in self.players:
            if player.session is self:
                player.session = None

    def to_dict(self):
        return {
            'id': self.id,
            'status': self.status.value,
            'turn': self.turn.seat,
            'shots_fired': self.shots_fired,
            'winner': self.winner.seat if self.winner else None,
            'players': [player.to_dict() for player in self.players],
        }

    def __repr__(self):
        return f'<GameSession {self.id} {self.status.value}>'
