# tests/client/test_state_store.py
"""Tests for client login state persistence."""

from __future__ import annotations

from datetime import UTC, datetime

from stellar_auth.client.state import PersistedAuthState, StateStore


def test_missing_file_loads_as_none(tmp_path) -> None:
    assert StateStore(tmp_path / "absent.json").load() is None


def test_save_then_load(tmp_path) -> None:
    store = StateStore(tmp_path / "nested" / "login.json")
    snapshot = PersistedAuthState(
        state="awaiting_external_signature",
        public_key="G" + "A" * 55,
        transaction="AAAA",
        expires_at=datetime(2026, 3, 1, 12, 5, tzinfo=UTC),
        deep_link="web+stellar:tx?xdr=AAAA",
    )

    store.save(snapshot)

    assert store.load() == snapshot


def test_corrupt_file_is_ignored(tmp_path) -> None:
    path = tmp_path / "login.json"
    path.write_text("{not json", encoding="utf-8")

    assert StateStore(path).load() is None


def test_clear_is_idempotent(tmp_path) -> None:
    store = StateStore(tmp_path / "login.json")
    store.save(PersistedAuthState(state="idle"))

    store.clear()
    store.clear()

    assert store.load() is None
