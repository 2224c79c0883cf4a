from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Mapping, Optional

from .game_logic import DEFAULT_PIECES_PER_PLAYER, MAX_PIECES_PER_PLAYER
from .search import AIOptions

ENV_PREFIX = "FOURSQUARE_"
AI_MODES = ("random", "minimax")


@dataclass(frozen=True)
class Settings:
    pieces_per_player: int = DEFAULT_PIECES_PER_PLAYER
    ai_mode: str = "minimax"
    ai_max_depth: int = 3
    ai_time_limit_ms: int = 1500
    ai_noise: float = 0.0
    ai_top_k: int = 1
    # When set, finished games are appended to <dataset_dir>/games.csv.
    dataset_dir: Optional[Path] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.ai_mode not in AI_MODES:
            raise ValueError(f"{ENV_PREFIX}AI_MODE must be one of {', '.join(AI_MODES)}")
        if not (1 <= self.pieces_per_player <= MAX_PIECES_PER_PLAYER):
            raise ValueError(f"{ENV_PREFIX}PIECES_PER_PLAYER must be between 1 and {MAX_PIECES_PER_PLAYER}")

    @property
    def ai_options(self) -> AIOptions:
        return AIOptions(
            max_depth=self.ai_max_depth,
            time_limit_ms=self.ai_time_limit_ms,
            noise_amplitude=self.ai_noise,
            top_k_random=self.ai_top_k,
        )

    @property
    def dataset_path(self) -> Optional[Path]:
        return self.dataset_dir / "games.csv" if self.dataset_dir is not None else None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            return value if value not in (None, "") else None

        defaults = cls()
        dataset_dir = get("DATASET_DIR")
        try:
            return cls(
                pieces_per_player=int(get("PIECES_PER_PLAYER") or defaults.pieces_per_player),
                ai_mode=(get("AI_MODE") or defaults.ai_mode).lower(),
                ai_max_depth=int(get("AI_MAX_DEPTH") or defaults.ai_max_depth),
                ai_time_limit_ms=int(get("AI_TIME_LIMIT_MS") or defaults.ai_time_limit_ms),
                ai_noise=float(get("AI_NOISE") or defaults.ai_noise),
                ai_top_k=int(get("AI_TOP_K") or defaults.ai_top_k),
                dataset_dir=Path(dataset_dir) if dataset_dir else None,
                log_level=(get("LOG_LEVEL") or defaults.log_level).upper(),
            )
        except ValueError as e:
            raise ValueError(f"invalid {ENV_PREFIX}* setting: {e}") from e


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()
