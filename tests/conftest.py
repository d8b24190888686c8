from __future__ import annotations

import pytest

from settings import Settings


@pytest.fixture
def fast_settings() -> Settings:
    """Settings tuned for quick, deterministic test runs."""
    return Settings(
        sample_rate=128,
        bit_depth=16,
        duration=1,
        cooldown=0.0,
        cycles=2,
        strategy="sequential",
        workers=2,
        success_probability=0.9,
        latency=0.0,
        runner_workers=2,
        run_store_path=None,
        log_level="INFO",
        log_context=False,
    )
