import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from salvo.services.battle.board import Board

if TYPE_CHECKING:
    from salvo.services.battle.session import GameSession


def generate_id(length: int = 8) -> str:
    """Short opaque identifier for players and sessions."""
    return uuid.uuid4().hex[:length]


@dataclass(eq=False)
class Player:
    connection: str
    board: Board
    seat: Optional[int] = None
    session: Optional['GameSession'] = None
    id: str = field(default_factory=generate_id)

    def to_dict(self):
        return {
            'id': self.id,
            'seat': self.seat,
        }

    def __repr__(self):
        return f'<Player {self.id} seat={self.seat}>'
