import itertools

import pytest

from duel.models import GameOverReason, Move, beats
from duel.services.games import GameConfig
from duel.services.games.resolver import decide_game_over, decide_winner, resolve_round, subtract_health

PLAYERS = ('a', 'b')
PLAYABLE = [Move.ROCK, Move.PAPER, Move.SCISSORS]


def _resolve(m1, m2, config=None, health=None, afk=None, streak=None):
    config = config or GameConfig()
    return resolve_round(
        PLAYERS,
        {'a': m1, 'b': m2},
        health or {'a': config.max_health, 'b': config.max_health},
        afk or {'a': 0, 'b': 0},
        streak or {'a': 0, 'b': 0},
        config,
    )


def test_beats_relation_is_exactly_the_three_classic_pairs():
    winning = {(a, b) for a, b in itertools.product(PLAYABLE, PLAYABLE) if beats(a, b)}
    assert winning == {
        (Move.ROCK, Move.SCISSORS),
        (Move.SCISSORS, Move.PAPER),
        (Move.PAPER, Move.ROCK),
    }


@pytest.mark.parametrize('a,b', list(itertools.product(PLAYABLE, PLAYABLE)))
def test_beats_is_antisymmetric(a, b):
    if a is b:
        assert not beats(a, b) and not beats(b, a)
    else:
        assert beats(a, b) != beats(b, a)


def test_hit_damages_loser_and_extends_winner_streak():
    out = _resolve(Move.ROCK, Move.SCISSORS, config=GameConfig(crit_trigger_streak=3))
    assert out.winner_id == 'a'
    assert out.damages == {'a': 0.0, 'b': 1.0}
    assert out.health == {'a': 10.0, 'b': 9.0}
    assert out.win_streak == {'a': 1, 'b': 0}
    assert out.crit is None
    assert out.game_over is None


def test_equal_moves_deal_no_damage_and_reset_streaks():
    out = _resolve(Move.PAPER, Move.PAPER, streak={'a': 2, 'b': 0}, config=GameConfig(crit_trigger_streak=5))
    assert out.winner_id is None
    assert out.damages == {'a': 0.0, 'b': 0.0}
    assert out.win_streak == {'a': 0, 'b': 0}


def test_lone_mover_wins_by_forfeit_without_hit_damage():
    out = _resolve(Move.ROCK, Move.NONE, config=GameConfig(crit_trigger_streak=5))
    assert out.winner_id == 'a'
    assert out.damages == {'a': 0.0, 'b': 1.5}
    assert out.afk_streak == {'a': 0, 'b': 1}
    assert out.win_streak['a'] == 1


def test_nobody_moving_costs_both_and_has_no_winner():
    out = _resolve(Move.NONE, Move.NONE, config=GameConfig(max_afk_rounds=5))
    assert out.winner_id is None
    assert out.damages == {'a': 1.5, 'b': 1.5}
    assert out.afk_streak == {'a': 1, 'b': 1}


def test_submitting_a_move_resets_afk_streak():
    out = _resolve(Move.ROCK, Move.ROCK, afk={'a': 1, 'b': 1})
    assert out.afk_streak == {'a': 0, 'b': 0}


def test_inputs_are_not_mutated():
    health = {'a': 10.0, 'b': 10.0}
    afk = {'a': 0, 'b': 0}
    streak = {'a': 0, 'b': 0}
    _resolve(Move.ROCK, Move.NONE, health=health, afk=afk, streak=streak)
    assert health == {'a': 10.0, 'b': 10.0}
    assert afk == {'a': 0, 'b': 0}
    assert streak == {'a': 0, 'b': 0}


def test_health_is_floored_at_zero():
    out = _resolve(Move.ROCK, Move.NONE, health={'a': 10.0, 'b': 0.5})
    assert out.health['b'] == 0.0
    assert subtract_health(0.2, 0.2) == 0.0
    assert subtract_health(1.0, 5.0) == 0.0


def test_ko_when_health_reaches_zero():
    out = _resolve(Move.PAPER, Move.ROCK, health={'a': 10.0, 'b': 1.0})
    assert out.game_over.reason is GameOverReason.KO
    assert out.game_over.winner_id == 'a'
    assert out.game_over.afk_user_id is None
    assert out.crit is None


def test_afk_limit_ends_game_regardless_of_health():
    out = _resolve(Move.NONE, Move.ROCK, afk={'a': 1, 'b': 0}, config=GameConfig(max_afk_rounds=2))
    assert out.game_over.reason is GameOverReason.AFK
    assert out.game_over.winner_id == 'b'
    assert out.game_over.afk_user_id == 'a'


def test_both_afk():
    out = _resolve(Move.NONE, Move.NONE, afk={'a': 1, 'b': 1}, config=GameConfig(max_afk_rounds=2))
    assert out.game_over.reason is GameOverReason.BOTH_AFK
    assert out.game_over.winner_id is None


def test_simultaneous_knockout_with_equal_health_is_a_draw():
    config = GameConfig(max_afk_rounds=5)
    outcome = decide_game_over(PLAYERS, {'a': 0.0, 'b': 0.0}, {'a': 1, 'b': 1}, config)
    assert outcome.reason is GameOverReason.KO
    assert outcome.winner_id is None


def test_knockout_goes_to_higher_health():
    config = GameConfig()
    outcome = decide_game_over(PLAYERS, {'a': 0.0, 'b': 0.5}, {'a': 0, 'b': 0}, config)
    assert outcome.winner_id == 'b'


def test_streak_reaching_trigger_arms_crit_and_resets():
    out = _resolve(Move.SCISSORS, Move.PAPER, streak={'a': 1, 'b': 0}, config=GameConfig(crit_trigger_streak=2))
    assert out.crit == ('a', 'b')
    assert out.win_streak == {'a': 0, 'b': 0}
    # the broadcast reports the streak that triggered the crit
    assert out.to_dict()['streaks'] == {'a': 2, 'b': 0}


def test_decide_winner_handles_every_absence_combination():
    assert decide_winner(PLAYERS, {'a': Move.NONE, 'b': Move.NONE}) is None
    assert decide_winner(PLAYERS, {'a': Move.NONE, 'b': Move.PAPER}) == 'b'
    assert decide_winner(PLAYERS, {'a': Move.ROCK, 'b': Move.PAPER}) == 'b'


def test_round_payload_reports_missing_moves_as_none():
    payload = _resolve(Move.ROCK, Move.NONE).to_dict()
    assert payload['moves'] == {'a': 'rock', 'b': None}
    assert set(payload) == {'moves', 'damages', 'health', 'streaks', 'afk', 'winner'}
