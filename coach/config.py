from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional


@dataclass
class Settings:
    opponent_delay_s: float = 1.0
    reevaluation_delay_s: float = 2.0
    ply_cap: int = 10
    opponent_error_rate: float = 0.3
    gemini_model: str = "gemini-3-pro-preview"
    gemini_api_key: Optional[str] = None
    log_level: str = "INFO"
    seed: Optional[int] = None

    @staticmethod
    def from_env(environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        cfg = Settings()
        if "ODYSSEY_OPPONENT_DELAY" in env:
            cfg.opponent_delay_s = float(env["ODYSSEY_OPPONENT_DELAY"])
        if "ODYSSEY_REEVALUATION_DELAY" in env:
            cfg.reevaluation_delay_s = float(env["ODYSSEY_REEVALUATION_DELAY"])
        if "ODYSSEY_PLY_CAP" in env:
            cfg.ply_cap = int(env["ODYSSEY_PLY_CAP"])
        if "ODYSSEY_ERROR_RATE" in env:
            cfg.opponent_error_rate = float(env["ODYSSEY_ERROR_RATE"])
        if "ODYSSEY_SEED" in env:
            cfg.seed = int(env["ODYSSEY_SEED"])
        cfg.gemini_model = env.get("ODYSSEY_GEMINI_MODEL", cfg.gemini_model)
        cfg.gemini_api_key = env.get("GEMINI_API_KEY") or env.get("API_KEY")
        cfg.log_level = env.get("ODYSSEY_LOG_LEVEL", cfg.log_level).upper()
        return cfg
