# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Registers the Hypothesis profiles used by the callvm property tests and picks
one on import:

- HYPOTHESIS_PROFILE=dev|ci|fast|stress wins if set
- otherwise "ci" when the CI env var is truthy, "dev" locally

Per-test overrides go through @settings(...) as usual.
"""
from __future__ import annotations

import os
from typing import Final, Tuple

from hypothesis import HealthCheck, Verbosity, settings


def _hc(*items: HealthCheck) -> Tuple[HealthCheck, ...]:
    return items


# Engine runs are cheap but not free; deadlines only add flakiness on slow runners.
settings.register_profile(
    "dev",
    settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow),
        verbosity=Verbosity.normal,
    ),
)

settings.register_profile(
    "ci",
    settings(
        max_examples=200,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow),
        verbosity=Verbosity.verbose,
        derandomize=True,
    ),
)

settings.register_profile(
    "fast",
    settings(max_examples=25, deadline=None, suppress_health_check=_hc(HealthCheck.too_slow)),
)

settings.register_profile(
    "stress",
    settings(
        max_examples=1000,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow, HealthCheck.data_too_large),
        derandomize=True,
    ),
)


def _env_truthy(name: str) -> bool:
    return (os.getenv(name) or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)


def active_profile() -> str:
    return _active


__all__ = ["active_profile"]
