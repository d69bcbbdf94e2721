import enum
import uuid
from typing import Dict, Optional, Tuple


class Move(str, enum.Enum):
    ROCK = 'rock'
    PAPER = 'paper'
    SCISSORS = 'scissors'
    NONE = 'none'

    @classmethod
    def parse(cls, value) -> Optional['Move']:
        """Return the playable move named by ``value``, or None if it is not one."""
        try:
            move = cls(value)
        except ValueError:
            return None
        return None if move is cls.NONE else move


# Each move beats exactly the move it maps to.
BEATS = {
    Move.ROCK: Move.SCISSORS,
    Move.SCISSORS: Move.PAPER,
    Move.PAPER: Move.ROCK,
}


def beats(a: Move, b: Move) -> bool:
    return BEATS.get(a) is b


class Phase(str, enum.Enum):
    PLAYING = 'playing'
    SHOWING_RESULT = 'showing_result'
    CRIT_WARMUP = 'crit_warmup'
    CRIT_ACTIVE = 'crit_active'
    CRIT_SETTLE = 'crit_settle'
    GAME_OVER_PENDING = 'game_over_pending'


class GameOverReason(str, enum.Enum):
    KO = 'ko'
    AFK = 'afk'
    BOTH_AFK = 'both_afk'


DEFAULT_MODE = 'classic'


class Connection:
    """A connected client: transport id, display name and requested mode."""

    def __init__(self, sid: str, name: Optional[str] = None, mode: Optional[str] = None):
        self.sid = sid
        self.name = name if name else f"Player{sid[:4]}"
        self.mode = mode if mode else DEFAULT_MODE


class GameOutcome:
    def __init__(self, winner_id: Optional[str], reason: GameOverReason, afk_user_id: Optional[str] = None):
        self.winner_id = winner_id
        self.reason = reason
        self.afk_user_id = afk_user_id

    def to_dict(self):
        return {
            'winner_id': self.winner_id,
            'reason': self.reason.value,
            'afk_user_id': self.afk_user_id,
        }


def generate_match_id() -> str:
    return uuid.uuid4().hex


class Match:
    """Live state of one two-player duel.

    Mutated only by the owning service: the phase scheduler, and move/tap
    submissions gated on ``phase``.
    """

    def __init__(self, players: Tuple[Connection, Connection], max_health: float, mode: str = DEFAULT_MODE):
        first, second = players
        self.id = generate_match_id()
        self.players: Tuple[str, str] = (first.sid, second.sid)
        self.names: Dict[str, str] = {first.sid: first.name, second.sid: second.name}
        self.mode = mode
        self.health: Dict[str, float] = {sid: max_health for sid in self.players}
        self.pending_move: Dict[str, Move] = {sid: Move.NONE for sid in self.players}
        self.afk_streak: Dict[str, int] = {sid: 0 for sid in self.players}
        self.win_streak: Dict[str, int] = {sid: 0 for sid in self.players}
        self.round_index = 0
        self.phase = Phase.PLAYING
        self.phase_deadline = 0
        # bumped on every deadline change so stale scheduler entries can be dropped
        self.deadline_version = 0
        self.crit_attacker: Optional[str] = None
        self.crit_victim: Optional[str] = None
        self.crit_accumulated_damage = 0.0
        self.outcome: Optional[GameOutcome] = None

    @property
    def room(self) -> str:
        return f"match:{self.id}"

    def opponent_of(self, sid: str) -> str:
        first, second = self.players
        return second if sid == first else first

    def has_player(self, sid: str) -> bool:
        return sid in self.players

    def set_deadline(self, deadline: int) -> None:
        self.phase_deadline = deadline
        self.deadline_version += 1

    def clear_moves(self) -> None:
        self.pending_move = {sid: Move.NONE for sid in self.players}

    def both_moved(self) -> bool:
        return all(move is not Move.NONE for move in self.pending_move.values())

    def clear_crit(self) -> None:
        self.crit_attacker = None
        self.crit_victim = None
        self.crit_accumulated_damage = 0.0

    def start_payload(self, config_snapshot):
        return {
            'match_id': self.id,
            'players': list(self.players),
            'names': dict(self.names),
            'health': dict(self.health),
            'next_phase_time': self.phase_deadline,
            'mode': self.mode,
            'config': config_snapshot,
        }

    def to_dict(self):
        return {
            'match_id': self.id,
            'players': list(self.players),
            'names': dict(self.names),
            'mode': self.mode,
            'health': dict(self.health),
            'afk_streak': dict(self.afk_streak),
            'win_streak': dict(self.win_streak),
            'round_index': self.round_index,
            'phase': self.phase.value,
            'next_phase_time': self.phase_deadline,
            'crit_attacker': self.crit_attacker,
            'crit_victim': self.crit_victim,
            'crit_total_damage': self.crit_accumulated_damage,
        }
