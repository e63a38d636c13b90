import json
import threading

import pytest

from salvo.router import MessageRouter
from salvo.services.battle.board import Board

from conftest import SMALL_GRID


@pytest.fixture()
def router(registry):
    return MessageRouter(registry)


@pytest.fixture()
def game(router, registry):
    """Two connected players 'a' (seat 0) and 'b' (seat 1) on SMALL_GRID boards."""
    first = registry.register('a')
    second = registry.register('b')
    first.board = Board.from_grid(SMALL_GRID)
    second.board = Board.from_grid(SMALL_GRID)
    return first.session


def shoot(row, col, **extra):
    return json.dumps(dict(type='shoot', row=row, col=col, **extra))


def test_shot_delivers_result_and_shot(router, transport, game):
    outcome = router.handle('a', shoot(0, 0, gameId=game.id))
    assert outcome.hit
    fields = {'row': 0, 'col': 0, 'hit': True, 'sunk': False, 'gameOver': False}
    assert transport.messages('a')[-1] == dict(type='result', **fields)
    assert transport.messages('b')[-1] == dict(type='shot', **fields)
    assert game.turn is game.players[1]


def test_out_of_turn_gets_error_and_no_mutation(router, transport, game):
    before = game.players[0].board.snapshot()
    assert router.handle('b', shoot(0, 0)) is None
    assert transport.messages('b')[-1] == {'type': 'error', 'msg': 'It is not your turn.'}
    assert game.players[0].board.snapshot() == before
    assert game.turn is game.players[0]
    assert transport.types('a') == ['waiting', 'start']


def test_out_of_bounds_gets_error(router, transport, game):
    router.handle('a', shoot(10, 0))
    assert transport.types('a')[-1] == 'error'
    assert game.shots_fired == 0


def test_duplicate_gets_error(router, transport, game):
    router.handle('a', shoot(9, 9))
    router.handle('b', shoot(9, 9))
    router.handle('a', shoot(9, 9))
    assert transport.messages('a')[-1] == {'type': 'error', 'msg': 'You already fired at that cell.'}
    assert game.shots_fired == 2


def test_malformed_and_unknown_messages_are_dropped(router, transport, game):
    for raw in ('garbage', '{"type": "chat"}', shoot('1', 2), {'type': 'shoot'}):
        assert router.handle('a', raw) is None
    assert transport.types('a') == ['waiting', 'start']
    assert transport.types('b') == ['start']


def test_game_id_is_advisory(router, transport, game):
    outcome = router.handle('a', shoot(0, 0, gameId='somebody-elses'))
    assert outcome is not None
    assert outcome.defender is game.players[1]


def test_shot_from_player_without_session_is_dropped(router, registry, transport):
    registry.register('lonely')
    assert router.handle('lonely', shoot(0, 0)) is None
    assert router.handle('unknown', shoot(0, 0)) is None
    assert transport.types('lonely') == ['waiting']


def test_winning_shot_finishes_and_retires_session(router, registry, transport, game):
    targets = [(0, 0), (0, 1), (2, 0), (3, 0), (4, 0)]
    for i, (r, c) in enumerate(targets):
        router.handle('a', shoot(r, c))
        if i < len(targets) - 1:
            router.handle('b', shoot(9, i))

    final = transport.messages('a')[-1]
    assert final == {'type': 'result', 'row': 4, 'col': 0, 'hit': True, 'sunk': True, 'gameOver': True}
    assert transport.messages('b')[-1]['gameOver'] is True
    assert game.players[1].board.live_cells() == 0
    assert registry.get_session(game.id) is None
    assert registry.session_for('a') is None

    # further shots have no session to go to
    assert router.handle('b', shoot(5, 5)) is None
    assert transport.types('b')[-1] == 'shot'


def test_send_failure_on_result_ends_game_for_peer(router, transport, game):
    transport.failing.add('a')
    router.handle('a', shoot(0, 0))
    assert transport.types('b') == ['start', 'end']


def test_concurrent_shots_from_turn_owner_are_serialized(router, transport, game):
    barrier = threading.Barrier(8)

    def fire(col):
        barrier.wait()
        router.handle('a', shoot(9, col))

    threads = [threading.Thread(target=fire, args=(col,)) for col in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    replies = transport.types('a')[2:]
    assert replies.count('result') == 1
    assert replies.count('error') == 7
    assert transport.types('b') == ['start', 'shot']
    assert game.shots_fired == 1
    assert game.turn is game.players[1]


def test_both_seats_firing_at_once_never_interleave(router, transport, game):
    barrier = threading.Barrier(2)

    def fire(connection):
        barrier.wait()
        router.handle(connection, shoot(9, 9))

    threads = [threading.Thread(target=fire, args=(conn,)) for conn in ('a', 'b')]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    if game.shots_fired == 1:
        # seat 1 was rejected before seat 0's shot passed the turn
        assert transport.types('a')[2:] == ['result']
        assert transport.types('b')[1:] == ['error', 'shot']
        assert game.turn is game.players[1]
    else:
        assert game.shots_fired == 2
        assert transport.types('a')[2:] == ['result', 'shot']
        assert transport.types('b')[1:] == ['shot', 'result']
        assert game.turn is game.players[0]
