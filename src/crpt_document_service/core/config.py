import os
from dataclasses import dataclass
from functools import lru_cache


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None and value.strip() else default


def _get_env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value is not None and value.strip() else default


def _get_env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None and value.strip() else default


@dataclass(frozen=True)
class Settings:
    crpt_base_url: str
    crpt_token: str
    connect_timeout_s: float
    read_timeout_s: float
    crpt_rl_limit: int
    crpt_rl_period_s: float
    crpt_rl_poll_interval_s: float
    crpt_rl_max_wait_s: float


@lru_cache
def get_settings() -> Settings:
    return Settings(
        crpt_base_url=_get_env("CRPT_BASE_URL", "https://ismp.crpt.ru/api/v3").rstrip("/"),
        crpt_token=_get_env("CRPT_TOKEN", ""),
        connect_timeout_s=_get_env_float("HTTP_CONNECT_TIMEOUT_S", 5.0),
        read_timeout_s=_get_env_float("HTTP_READ_TIMEOUT_S", 10.0),
        crpt_rl_limit=_get_env_int("CRPT_RL_LIMIT", 10),
        crpt_rl_period_s=_get_env_float("CRPT_RL_PERIOD_S", 1.0),
        crpt_rl_poll_interval_s=_get_env_float("CRPT_RL_POLL_INTERVAL_S", 0.1),
        # <= 0 waits for a slot indefinitely
        crpt_rl_max_wait_s=_get_env_float("CRPT_RL_MAX_WAIT_S", 30.0),
    )
