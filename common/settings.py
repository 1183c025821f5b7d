"""
Purpose: Environment-driven configuration and logging setup.
What it does:
- Reads `.env` / process environment (python-dotenv) into a frozen Settings object.
- Builds validated MergePolicy / AssignmentPolicy instances from those settings.
- Provides a one-call logging setup for scripts and services.

Example .env:
EVENT_BUS_URL=http://localhost:8082
MERGE_POLICY_PROFILE=peak
MERGE_SWEEP_INTERVAL_SEC=30
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

from dotenv import load_dotenv

from couriers.policy import AssignmentPolicy, default_assignment_policy
from orders.merging.policy import MergePolicy, policy_for_profile

LOG_FORMAT = "%(asctime)s | %(levelname)8s | %(name)s | %(message)s"


@dataclass(frozen=True)
class Settings:
    event_bus_url: Optional[str] = None
    event_bus_timeout: float = 5.0

    merge_policy_profile: str = "default"
    merge_efficiency_threshold: Optional[float] = None
    merge_max_distance_km: Optional[float] = None
    merge_sweep_interval_sec: float = 30.0

    assignment_search_radius_km: Optional[float] = None
    assignment_min_rating: Optional[float] = None

    log_level: str = "INFO"

    def merge_policy(self) -> MergePolicy:
        policy = policy_for_profile(self.merge_policy_profile)
        overrides = {}
        if self.merge_efficiency_threshold is not None:
            overrides["efficiency_threshold"] = self.merge_efficiency_threshold
        if self.merge_max_distance_km is not None:
            overrides["max_distance_km"] = self.merge_max_distance_km
        if overrides:
            policy = replace(policy, **overrides)
            policy.validate()
        return policy

    def assignment_policy(self) -> AssignmentPolicy:
        policy = default_assignment_policy()
        overrides = {}
        if self.assignment_search_radius_km is not None:
            overrides["search_radius_km"] = self.assignment_search_radius_km
        if self.assignment_min_rating is not None:
            overrides["min_rating"] = self.assignment_min_rating
        if overrides:
            policy = replace(policy, **overrides)
            policy.validate()
        return policy


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """
    Load settings from the environment (and a .env file if present).
    Raises ValueError on malformed numbers.
    """
    load_dotenv(dotenv_path)

    settings = Settings(
        event_bus_url=os.getenv("EVENT_BUS_URL") or None,
        event_bus_timeout=_float_env("EVENT_BUS_TIMEOUT", 5.0),
        merge_policy_profile=os.getenv("MERGE_POLICY_PROFILE", "default"),
        merge_efficiency_threshold=_optional_float_env("MERGE_EFFICIENCY_THRESHOLD"),
        merge_max_distance_km=_optional_float_env("MERGE_MAX_DISTANCE_KM"),
        merge_sweep_interval_sec=_float_env("MERGE_SWEEP_INTERVAL_SEC", 30.0),
        assignment_search_radius_km=_optional_float_env("ASSIGNMENT_SEARCH_RADIUS_KM"),
        assignment_min_rating=_optional_float_env("ASSIGNMENT_MIN_RATING"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )

    if settings.event_bus_timeout <= 0:
        raise ValueError("EVENT_BUS_TIMEOUT must be > 0")
    if settings.merge_sweep_interval_sec <= 0:
        raise ValueError("MERGE_SWEEP_INTERVAL_SEC must be > 0")
    return settings


def configure_logging(level: str = "INFO") -> None:
    """
    Install a single stream handler on the root logger.
    Library modules only ever call logging.getLogger(__name__).
    """
    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(level)


def _optional_float_env(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _float_env(name: str, default: float) -> float:
    value = _optional_float_env(name)
    return default if value is None else value
