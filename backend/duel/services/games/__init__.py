"""Duel domain services: round resolution, crit sub-game, matchmaking and timers.

This package contains the match state machine and should be driven by the
socket handlers and the scheduler loop, keeping transport concerns separated
from core game mechanics.
"""

from .config import GameConfig, load_game_config
from .service import DuelService

__all__ = ['DuelService', 'GameConfig', 'load_game_config']
