import json
import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional, Tuple, Union


logger = logging.getLogger(__name__)

DurationSpec = Union[float, Tuple[float, ...]]


@dataclass(frozen=True)
class GameConfig:
    """Tunable durations (seconds) and damage values for every match.

    ``round_duration_sec`` is either one number or a sequence indexed by
    round; once the sequence is exhausted its last entry is reused.
    """

    max_health: float = 10.0
    round_duration_sec: DurationSpec = 4.0
    show_result_duration_sec: float = 2.0
    crit_warmup_sec: float = 1.0
    crit_duration_sec: float = 4.0
    crit_settle_duration_sec: float = 2.0
    afk_damage: float = 1.5
    hit_damage: float = 1.0
    max_afk_rounds: int = 2
    crit_trigger_streak: int = 1
    crit_damage_per_tap: float = 0.2

    def __post_init__(self):
        duration = self.round_duration_sec
        if isinstance(duration, (list, tuple)):
            if not duration:
                raise ValueError('round_duration_sec sequence must not be empty')
            object.__setattr__(self, 'round_duration_sec', tuple(_number(v, 'round_duration_sec') for v in duration))
        else:
            _number(duration, 'round_duration_sec')
        for name in ('max_health', 'show_result_duration_sec', 'crit_warmup_sec', 'crit_duration_sec',
                     'crit_settle_duration_sec', 'afk_damage', 'hit_damage', 'crit_damage_per_tap'):
            _number(getattr(self, name), name)
        if self.max_health <= 0:
            raise ValueError('max_health must be positive')
        for name in ('max_afk_rounds', 'crit_trigger_streak'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f'{name} must be a positive integer')

    def round_duration_ms(self, round_index: int) -> int:
        duration = self.round_duration_sec
        if isinstance(duration, tuple):
            duration = duration[min(max(round_index, 0), len(duration) - 1)]
        return seconds_to_ms(duration)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if isinstance(self.round_duration_sec, tuple):
            data['round_duration_sec'] = list(self.round_duration_sec)
        return data


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite non-negative number, got {value!r}")
    return value


def seconds_to_ms(seconds: float) -> int:
    return int(round(seconds * 1000))


def load_game_config(path: Optional[str], log: Optional[logging.Logger] = None) -> GameConfig:
    """Load tunables from a JSON file, falling back to the built-in defaults.

    A missing file, invalid JSON or any invalid field value discards the
    whole file; keys absent from the file keep their default.
    """
    log = log or logger
    if not path:
        return GameConfig()
    try:
        with open(path, 'r', encoding='utf-8') as fh:
            raw = json.load(fh)
        if not isinstance(raw, dict):
            raise ValueError('game config must be a JSON object')
        known = {f.name for f in fields(GameConfig)}
        return GameConfig(**{k: v for k, v in raw.items() if k in known})
    except FileNotFoundError:
        log.warning(f"[config-default] path={path} not found, using built-in game config")
    except (OSError, ValueError, TypeError) as exc:
        # json.JSONDecodeError is a ValueError
        log.warning(f"[config-fallback] path={path} invalid ({exc}), using built-in game config")
    return GameConfig()
