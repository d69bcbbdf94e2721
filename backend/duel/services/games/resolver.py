from typing import Dict, Optional, Tuple

from duel.models import GameOutcome, GameOverReason, Move, beats
from .config import GameConfig


def subtract_health(health: float, damage: float) -> float:
    """Deduct damage, flooring at zero.

    Rounded to avoid float drift leaving e.g. 1e-16 after fractional taps.
    """
    return max(0.0, round(health - damage, 6))


class RoundOutcome:
    """Result of resolving one round; the inputs are never mutated."""

    def __init__(self, moves, damages, health, afk_streak, win_streak, winner_id, game_over, crit,
                 reported_streak=None):
        self.moves: Dict[str, Move] = moves
        self.damages: Dict[str, float] = damages
        self.health: Dict[str, float] = health
        self.afk_streak: Dict[str, int] = afk_streak
        self.win_streak: Dict[str, int] = win_streak
        self.winner_id: Optional[str] = winner_id
        self.game_over: Optional[GameOutcome] = game_over
        # (attacker, victim) when the winner's streak triggers a critical hit
        self.crit: Optional[Tuple[str, str]] = crit
        # streaks as they stood when the round ended, before a crit reset
        self.reported_streak: Dict[str, int] = reported_streak if reported_streak is not None else dict(win_streak)

    def to_dict(self):
        return {
            'moves': {sid: (None if m is Move.NONE else m.value) for sid, m in self.moves.items()},
            'damages': dict(self.damages),
            'health': dict(self.health),
            'streaks': dict(self.reported_streak),
            'afk': dict(self.afk_streak),
            'winner': self.winner_id,
        }


def decide_winner(players: Tuple[str, str], moves: Dict[str, Move]) -> Optional[str]:
    """Round winner, or None on a draw or when nobody moved.

    A lone mover wins by forfeit.
    """
    p1, p2 = players
    m1, m2 = moves[p1], moves[p2]
    if m1 is Move.NONE and m2 is Move.NONE:
        return None
    if m2 is Move.NONE:
        return p1
    if m1 is Move.NONE:
        return p2
    if m1 is m2:
        return None
    return p1 if beats(m1, m2) else p2


def decide_game_over(players: Tuple[str, str], health: Dict[str, float], afk_streak: Dict[str, int],
                     config: GameConfig) -> Optional[GameOutcome]:
    """Terminal check after a round. AFK reasons take precedence over KO.

    When both players are knocked out at once the one with strictly more
    health wins; equal health is a draw (no winner).
    """
    p1, p2 = players
    p1_afk = afk_streak[p1] >= config.max_afk_rounds
    p2_afk = afk_streak[p2] >= config.max_afk_rounds
    if p1_afk and p2_afk:
        return GameOutcome(None, GameOverReason.BOTH_AFK)
    if p1_afk:
        return GameOutcome(p2, GameOverReason.AFK, p1)
    if p2_afk:
        return GameOutcome(p1, GameOverReason.AFK, p2)
    if health[p1] <= 0 or health[p2] <= 0:
        if health[p1] > health[p2]:
            winner = p1
        elif health[p2] > health[p1]:
            winner = p2
        else:
            winner = None
        return GameOutcome(winner, GameOverReason.KO)
    return None


def resolve_round(players: Tuple[str, str], moves: Dict[str, Move], health: Dict[str, float],
                  afk_streak: Dict[str, int], win_streak: Dict[str, int], config: GameConfig) -> RoundOutcome:
    """Resolve a round from both pending moves.

    - A missing move costs ``afk_damage`` and extends that player's AFK streak;
      a submitted move resets it.
    - Differing moves: the winner deals ``hit_damage``. Equal moves: nothing.
    - The winner's streak grows, everyone else's resets. Reaching
      ``crit_trigger_streak`` resets it again and arms a critical hit.
    """
    p1, p2 = players
    moves = {sid: moves.get(sid, Move.NONE) for sid in players}
    damages = {p1: 0.0, p2: 0.0}
    afk = dict(afk_streak)
    streak = dict(win_streak)

    for sid in players:
        if moves[sid] is Move.NONE:
            damages[sid] += config.afk_damage
            afk[sid] += 1
        else:
            afk[sid] = 0

    winner = decide_winner(players, moves)
    both_moved = moves[p1] is not Move.NONE and moves[p2] is not Move.NONE
    if winner and both_moved:
        loser = p2 if winner == p1 else p1
        damages[loser] += config.hit_damage

    if winner:
        streak[winner] += 1
        streak[p2 if winner == p1 else p1] = 0
    else:
        streak[p1] = 0
        streak[p2] = 0

    new_health = {sid: subtract_health(health[sid], damages[sid]) for sid in players}

    game_over = decide_game_over(players, new_health, afk, config)
    reported = dict(streak)
    crit = None
    if game_over is None and winner and streak[winner] >= config.crit_trigger_streak:
        streak[winner] = 0
        crit = (winner, p2 if winner == p1 else p1)

    return RoundOutcome(moves, damages, new_health, afk, streak, winner, game_over, crit, reported)
