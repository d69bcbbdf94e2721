import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from duel.models import Connection, GameOutcome, GameOverReason, Match, Move, Phase
from .config import GameConfig, seconds_to_ms
from .crit import apply_crit_tap, arm_crit, victim_knocked_out
from .matchmaking import MatchmakingQueue
from .resolver import resolve_round
from .scheduler import PhaseScheduler


def now_ms() -> int:
    return int(time.time() * 1000)


class DuelService:
    """Owns every piece of live duel state for the process.

    Handlers and the scheduler loop call into this object; all access is
    serialized by ``lock`` so a tick never interleaves with an inbound event.
    ``gateway`` delivers outbound events and must provide
    ``emit(event, data, to)``, ``enter_room(sid, room)`` and ``close_room(room)``.
    """

    def __init__(self, config: GameConfig, gateway, clock: Callable[[], int] = now_ms,
                 logger: Optional[logging.Logger] = None, matchmaking_slack_ms: int = 1000,
                 game_over_grace_ms: int = 1000):
        self.config = config
        self.gateway = gateway
        self.clock = clock
        self.logger = logger or logging.getLogger(__name__)
        self.matchmaking_slack_ms = matchmaking_slack_ms
        self.game_over_grace_ms = game_over_grace_ms
        self.lock = threading.RLock()
        self.matches: Dict[str, Match] = {}
        self.connections: Dict[str, Connection] = {}
        self.membership: Dict[str, str] = {}
        self.queue = MatchmakingQueue()
        self.scheduler = PhaseScheduler()

    # ---- inbound events ----

    def connect(self, sid: str, name: Optional[str] = None, mode: Optional[str] = None) -> Connection:
        with self.lock:
            conn = Connection(sid, name, mode)
            self.connections[sid] = conn
            self._enqueue(conn)
            return conn

    def play_again(self, sid: str, mode: Optional[str] = None) -> bool:
        """Queue a connection for a fresh match.

        Refused while the connection still belongs to a match; it has to
        leave (forfeit) that match first.
        """
        with self.lock:
            conn = self.connections.get(sid)
            if conn is None:
                return False
            if sid in self.membership:
                self.gateway.emit('waiting', {'message': 'Leave your current match before queueing again.'}, to=sid)
                self.logger.info(f"[queue-refused] sid={sid} still in match={self.membership[sid]}")
                return False
            if mode:
                conn.mode = mode
            self._enqueue(conn)
            return True

    def submit_move(self, sid: str, match_id: Any, move: Any) -> bool:
        with self.lock:
            match = self.matches.get(match_id) if isinstance(match_id, str) else None
            if match is None or not match.has_player(sid) or match.phase is not Phase.PLAYING:
                return False
            parsed = Move.parse(move)
            if parsed is None or match.pending_move[sid] is not Move.NONE:
                return False
            match.pending_move[sid] = parsed
            self.gateway.emit('move_confirmed', {'move': parsed.value}, to=sid)
            if match.both_moved():
                # resolve on the next tick instead of waiting out the round
                self.scheduler.schedule(match, self.clock())
                self.logger.info(f"[early-resolve] match={match.id} round={match.round_index}")
            return True

    def crit_tap(self, sid: str, match_id: Any) -> bool:
        with self.lock:
            match = self.matches.get(match_id) if isinstance(match_id, str) else None
            if match is None or not apply_crit_tap(match, sid, self.config):
                return False
            self.gateway.emit('crit_update', {
                'health': dict(match.health),
                'total_damage': match.crit_accumulated_damage,
            }, to=match.room)
            if victim_knocked_out(match):
                self.logger.info(f"[crit-ko] match={match.id} attacker={sid}")
                self._end_match(match, GameOutcome(sid, GameOverReason.KO))
            return True

    def leave_match(self, sid: str) -> bool:
        with self.lock:
            return self._forfeit(sid)

    def disconnect(self, sid: str) -> None:
        with self.lock:
            self.queue.remove(sid)
            self._forfeit(sid)
            self.connections.pop(sid, None)

    def sync_time(self, client_time: Any) -> Dict[str, Any]:
        return {'server_time': self.clock(), 'client_time': client_time}

    # ---- scheduler ----

    def tick(self, now: Optional[int] = None) -> int:
        """Advance every match whose deadline has passed by exactly one phase."""
        with self.lock:
            if now is None:
                now = self.clock()
            return self.scheduler.run_due(now, self.matches, self._advance)

    def _advance(self, match: Match, now: int) -> None:
        phase = match.phase
        self.logger.info(f"[phase-due] match={match.id} phase={phase.value} round={match.round_index}")
        if phase is Phase.PLAYING:
            self._resolve(match, now)
        elif phase in (Phase.SHOWING_RESULT, Phase.CRIT_SETTLE):
            self._start_round(match, now)
        elif phase is Phase.CRIT_WARMUP:
            match.phase = Phase.CRIT_ACTIVE
            match.crit_accumulated_damage = 0.0
            self.scheduler.schedule(match, now + seconds_to_ms(self.config.crit_duration_sec))
            self.gateway.emit('crit_started', {
                'attacker_id': match.crit_attacker,
                'victim_id': match.crit_victim,
                'next_phase_time': match.phase_deadline,
            }, to=match.room)
        elif phase is Phase.CRIT_ACTIVE:
            match.phase = Phase.CRIT_SETTLE
            self.scheduler.schedule(match, now + seconds_to_ms(self.config.crit_settle_duration_sec))
            self.gateway.emit('crit_result', {
                'total_damage': match.crit_accumulated_damage,
                'next_phase_time': match.phase_deadline,
            }, to=match.room)
        elif phase is Phase.GAME_OVER_PENDING:
            self._finish(match)

    def _resolve(self, match: Match, now: int) -> None:
        outcome = resolve_round(match.players, match.pending_move, match.health,
                                match.afk_streak, match.win_streak, self.config)
        match.health = outcome.health
        match.afk_streak = outcome.afk_streak
        match.win_streak = outcome.win_streak
        match.clear_moves()

        if outcome.game_over is not None:
            match.outcome = outcome.game_over
            match.phase = Phase.GAME_OVER_PENDING
            self.scheduler.schedule(match, now + self.game_over_grace_ms)
            self.logger.info(f"[game-over-pending] match={match.id} reason={outcome.game_over.reason.value}")
        elif outcome.crit is not None:
            attacker, victim = outcome.crit
            arm_crit(match, attacker, victim)
            self.scheduler.schedule(match, now + seconds_to_ms(self.config.crit_warmup_sec))
            self.logger.info(f"[crit-armed] match={match.id} attacker={attacker} victim={victim}")
        else:
            match.phase = Phase.SHOWING_RESULT
            self.scheduler.schedule(match, now + seconds_to_ms(self.config.show_result_duration_sec))

        payload = outcome.to_dict()
        payload['phase'] = match.phase.value
        payload['next_phase_time'] = match.phase_deadline
        self.gateway.emit('round_result', payload, to=match.room)

    def _start_round(self, match: Match, now: int) -> None:
        match.round_index += 1
        match.clear_moves()
        match.clear_crit()
        match.phase = Phase.PLAYING
        self.scheduler.schedule(match, now + self.config.round_duration_ms(match.round_index))
        self.gateway.emit('new_round', {
            'round_index': match.round_index,
            'next_phase_time': match.phase_deadline,
        }, to=match.room)

    # ---- lifecycle ----

    def _enqueue(self, conn: Connection) -> None:
        opponent = self.queue.enqueue_or_pair(conn)
        if opponent is None:
            self.gateway.emit('waiting', {'message': 'Waiting for opponent...'}, to=conn.sid)
            self.logger.info(f"[queue-wait] sid={conn.sid} mode={conn.mode}")
            return
        self._create_match(opponent, conn)

    def _create_match(self, first: Connection, second: Connection) -> Match:
        match = Match((first, second), self.config.max_health, mode=first.mode)
        self.matches[match.id] = match
        for sid in match.players:
            self.membership[sid] = match.id
            self.gateway.enter_room(sid, match.room)
        # grace period so the opening round is not eaten by client load time
        deadline = self.clock() + self.config.round_duration_ms(0) + self.matchmaking_slack_ms
        self.scheduler.schedule(match, deadline)
        self.logger.info(f"[match-start] match={match.id} players={first.sid},{second.sid} mode={match.mode}")
        self.gateway.emit('match_started', match.start_payload(self.config.to_dict()), to=match.room)
        return match

    def _forfeit(self, sid: str) -> bool:
        match = self.matches.get(self.membership.get(sid, ''))
        if match is None:
            return False
        if match.phase is Phase.GAME_OVER_PENDING:
            # result already decided; deliver it now
            self._finish(match)
        else:
            self.logger.info(f"[forfeit] match={match.id} sid={sid}")
            self._end_match(match, GameOutcome(match.opponent_of(sid), GameOverReason.AFK, sid))
        return True

    def _end_match(self, match: Match, outcome: GameOutcome) -> None:
        if match.phase is Phase.GAME_OVER_PENDING:
            return
        match.outcome = outcome
        match.phase = Phase.GAME_OVER_PENDING
        match.clear_moves()
        self._finish(match)

    def _finish(self, match: Match) -> None:
        if self.matches.get(match.id) is not match:
            return
        del self.matches[match.id]
        for sid in match.players:
            if self.membership.get(sid) == match.id:
                del self.membership[sid]
        outcome = match.outcome or GameOutcome(None, GameOverReason.KO)
        self.logger.info(
            f"[game-over] match={match.id} winner={outcome.winner_id} reason={outcome.reason.value} afk={outcome.afk_user_id}"
        )
        self.gateway.emit('game_over', outcome.to_dict(), to=match.room)
        self.gateway.close_room(match.room)

    # ---- queries ----

    def get_match(self, match_id: str) -> Optional[Match]:
        with self.lock:
            return self.matches.get(match_id)

    def match_for(self, sid: str) -> Optional[Match]:
        with self.lock:
            return self.matches.get(self.membership.get(sid, ''))

    def stats(self) -> Dict[str, Any]:
        with self.lock:
            return {
                'active_matches': sum(1 for m in self.matches.values() if m.phase is not Phase.GAME_OVER_PENDING),
                'connections': len(self.connections),
                'waiting_modes': self.queue.waiting_modes(),
            }
