"""
Announcer configuration.

Values default from the environment so a deployment can be configured
without code:

    VOICE_ANNOUNCER_DATA_DIR   directory for persisted settings (./data)
    VOICE_ANNOUNCER_ENGINE     default speech engine (murf)
    MURF_API_KEY               primary remote engine credentials
    ELEVENLABS_API_KEY         secondary remote engine credentials
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from voice_announcer.settings import EngineKind


@dataclass
class Config:
    """Voice announcer configuration.

    Example:
        config = Config(data_dir="/var/lib/announcer", ducked_volume=0.3)
    """
    data_dir: Path = field(
        default_factory=lambda: Path(os.environ.get("VOICE_ANNOUNCER_DATA_DIR", "data"))
    )
    locale: str = "pt-BR"
    default_engine: str = field(
        default_factory=lambda: os.environ.get("VOICE_ANNOUNCER_ENGINE", "murf")
    )

    # Seconds between scheduler evaluations
    tick_interval: float = 1.0
    # Seconds between midnight-rollover and hourly checks
    rollover_interval: float = 30.0

    # Media volume multiplier while an announcement is in progress
    ducked_volume: float = 0.2

    murf_api_key: str | None = field(default_factory=lambda: os.environ.get("MURF_API_KEY"))
    elevenlabs_api_key: str | None = field(
        default_factory=lambda: os.environ.get("ELEVENLABS_API_KEY")
    )

    def __post_init__(self):
        self.data_dir = Path(self.data_dir)
        self.default_engine = EngineKind.parse(self.default_engine).value
        if self.tick_interval <= 0:
            raise ValueError(f"tick_interval must be > 0, got {self.tick_interval}")
        if self.rollover_interval < self.tick_interval:
            raise ValueError("rollover_interval must be >= tick_interval")
        if not 0.0 <= self.ducked_volume <= 1.0:
            raise ValueError(f"ducked_volume must be 0.0-1.0, got {self.ducked_volume}")
        self.data_dir.mkdir(parents=True, exist_ok=True)


__all__ = ["Config"]
