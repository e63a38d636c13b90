"""Wire format for the game channel.

Every message is a JSON object with a ``type`` field.

Inbound:
- shoot: { type: 'shoot', gameId: str (advisory), row: int, col: int }

Outbound:
- waiting: { type, msg }
- start:   { type, gameId, board: 10x10 int grid, you: 0|1 }
- result:  { type, row, col, hit, sunk, gameOver }  (to the attacker)
- shot:    { type, row, col, hit, sunk, gameOver }  (to the defender)
- end:     { type, msg }
- error:   { type, msg }
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from salvo.errors import ProtocolError


@dataclass(frozen=True)
class Shoot:
    row: int
    col: int
    game_id: Optional[str] = None


@dataclass(frozen=True)
class Unrecognized:
    type: Optional[str]
    reason: str


InboundMessage = Union[Shoot, Unrecognized]


def _coordinate(data: Dict[str, Any], key: str) -> int:
    value = data.get(key)
    # bool is an int subclass; true/false are not coordinates
    if not isinstance(value, int) or isinstance(value, bool):
        raise ProtocolError(f"'{key}' must be an integer")
    return value


def parse(raw: Union[str, bytes, Dict[str, Any]]) -> Shoot:
    """Parse one inbound message, raising ProtocolError when it is not usable."""
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (ValueError, RecursionError) as exc:
            raise ProtocolError(f'invalid JSON: {exc}') from exc
    else:
        data = raw
    if not isinstance(data, dict):
        raise ProtocolError('message must be a JSON object')
    msg_type = data.get('type')
    if msg_type != 'shoot':
        raise ProtocolError(f'unrecognized message type {msg_type!r}')
    game_id = data.get('gameId')
    return Shoot(
        row=_coordinate(data, 'row'),
        col=_coordinate(data, 'col'),
        game_id=game_id if isinstance(game_id, str) else None,
    )


def decode(raw) -> InboundMessage:
    """Like parse(), but folds every failure into an Unrecognized message."""
    try:
        return parse(raw)
    except ProtocolError as exc:
        msg_type = raw.get('type') if isinstance(raw, dict) else None
        return Unrecognized(type=msg_type if isinstance(msg_type, str) else None, reason=str(exc))


def encode(message: Dict[str, Any]) -> str:
    return json.dumps(message, separators=(',', ':'))


def waiting(msg: str) -> Dict[str, Any]:
    return {'type': 'waiting', 'msg': msg}


def start(game_id: str, board: List[List[int]], you: int) -> Dict[str, Any]:
    return {'type': 'start', 'gameId': game_id, 'board': board, 'you': you}


def _shot_fields(kind, row, col, hit, sunk, game_over):
    return {
        'type': kind,
        'row': row,
        'col': col,
        'hit': hit,
        'sunk': sunk,
        'gameOver': game_over,
    }


def result(row: int, col: int, hit: bool, sunk: bool, game_over: bool) -> Dict[str, Any]:
    return _shot_fields('result', row, col, hit, sunk, game_over)


def shot(row: int, col: int, hit: bool, sunk: bool, game_over: bool) -> Dict[str, Any]:
    return _shot_fields('shot', row, col, hit, sunk, game_over)


def end(msg: str) -> Dict[str, Any]:
    return {'type': 'end', 'msg': msg}


def error(msg: str) -> Dict[str, Any]:
    return {'type': 'error', 'msg': msg}
