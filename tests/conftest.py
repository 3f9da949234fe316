from __future__ import annotations

import os

import pytest


@pytest.fixture(autouse=True)
def _isolate_xdb_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's XDB_* settings (or a loaded .env) out of the tests."""

    for name in list(os.environ):
        if name.startswith("XDB_"):
            monkeypatch.delenv(name)
