"""Critical-hit sub-game: a timed rapid-tap bonus for the round winner."""

from duel.models import Match, Phase
from .config import GameConfig
from .resolver import subtract_health


def arm_crit(match: Match, attacker: str, victim: str) -> None:
    match.crit_attacker = attacker
    match.crit_victim = victim
    match.crit_accumulated_damage = 0.0
    match.phase = Phase.CRIT_WARMUP


def can_tap(match: Match, sid: str) -> bool:
    return match.phase is Phase.CRIT_ACTIVE and match.crit_attacker == sid and match.crit_victim is not None


def apply_crit_tap(match: Match, sid: str, config: GameConfig) -> bool:
    """Deal one tap of damage to the victim. Returns False if the tap is not allowed."""
    if not can_tap(match, sid):
        return False
    victim = match.crit_victim
    match.health[victim] = subtract_health(match.health[victim], config.crit_damage_per_tap)
    match.crit_accumulated_damage = round(match.crit_accumulated_damage + config.crit_damage_per_tap, 6)
    return True


def victim_knocked_out(match: Match) -> bool:
    return match.crit_victim is not None and match.health[match.crit_victim] <= 0
