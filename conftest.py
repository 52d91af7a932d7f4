"""Root conftest: test environment is fixed before realtime_bus.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

# No Redis in the unit/integration suites.
os.environ.setdefault("REDIS_FANOUT_ENABLED", "false")
os.environ.setdefault("WS_RECONNECT", "false")
