from __future__ import annotations
import functools
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

def _get(name: str, default: str | None = None) -> str | None:
    v = os.getenv(name, default)
    return v if v not in ("", None) else default

def _num(name: str, default: str, cast=float):
    raw = _get(name, default) or default
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None

@dataclass(frozen=True)
class Settings:
    kelly_fraction: float
    kelly_cap: float
    dc_rho: float
    max_goals: int
    log_level: str

@functools.lru_cache(maxsize=1)
def settings() -> Settings:
    fraction = _num("FOOTCAST_KELLY_FRACTION", "0.25")
    cap = _num("FOOTCAST_KELLY_CAP", "0.25")
    max_goals = _num("FOOTCAST_MAX_GOALS", "10", int)

    if not 0.0 < fraction <= 1.0:
        raise RuntimeError(f"FOOTCAST_KELLY_FRACTION must be in (0, 1], got {fraction}")
    if not 0.0 < cap <= 1.0:
        raise RuntimeError(f"FOOTCAST_KELLY_CAP must be in (0, 1], got {cap}")
    if max_goals < 1:
        raise RuntimeError(f"FOOTCAST_MAX_GOALS must be at least 1, got {max_goals}")

    return Settings(
        kelly_fraction=fraction,
        kelly_cap=cap,
        dc_rho=_num("FOOTCAST_DC_RHO", "-0.13"),
        max_goals=max_goals,
        log_level=(_get("FOOTCAST_LOG_LEVEL", "INFO") or "INFO").upper(),
    )
