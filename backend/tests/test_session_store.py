"""Tests for the SQL-backed session store."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from playground.db.base import utcnow
from playground.db.models import (
    SESSION_STATUS_ACTIVE,
    SESSION_STATUS_COMPLETED,
    PlaygroundSession,
)
from playground.db.repositories import get_session_turns
from playground.services.session_store import SqlSessionStore, TurnRecord


def turn(session_id: str, model: str, *, run_id: str = "run-1", cost: float = 0.01) -> TurnRecord:
    return TurnRecord(
        session_id=session_id,
        run_id=run_id,
        model_name=model,
        user_prompt="hello",
        response="hi there",
        input_tokens=2,
        output_tokens=3,
        cost=cost,
        response_time_ms=120,
    )


def test_create_and_find_session_enforces_ownership(
    store: SqlSessionStore, user_id: str, other_user_id: str
) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4", "gpt-3.5-turbo"])

    assert session.status == SESSION_STATUS_ACTIVE
    assert session.models == ["gpt-4", "gpt-3.5-turbo"]
    assert session.total_cost == 0
    assert session.total_tokens == 0

    assert store.find_session(user_id, session.id).id == session.id
    assert store.find_session(other_user_id, session.id) is None
    assert store.find_session(user_id, "missing") is None


def test_touch_reopens_completed_session(store: SqlSessionStore, user_id: str) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4"])
    store.mark_completed(session.id)
    assert store.find_session(user_id, session.id).status == SESSION_STATUS_COMPLETED

    store.touch_session(session.id, ["gpt-4o-mini"])

    reopened = store.find_session(user_id, session.id)
    assert reopened.status == SESSION_STATUS_ACTIVE
    # Earlier rounds keep their models
    assert reopened.models == ["gpt-4", "gpt-4o-mini"]


def test_touch_merges_models_and_bumps_updated_at(
    store: SqlSessionStore, db_session, user_id: str
) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4", "gpt-3.5-turbo"])
    stale = utcnow() - timedelta(hours=1)
    db_session.execute(
        update(PlaygroundSession)
        .where(PlaygroundSession.id == session.id)
        .values(updated_at=stale)
    )
    db_session.commit()

    # Still ACTIVE and nothing new: the touch alone must move updated_at
    store.touch_session(session.id, ["gpt-3.5-turbo", "gpt-4"])
    touched = store.find_session(user_id, session.id)
    assert touched.models == ["gpt-4", "gpt-3.5-turbo"]
    assert touched.updated_at > stale

    store.touch_session(session.id, ["gpt-4o-mini", "gpt-4"])
    assert store.find_session(user_id, session.id).models == [
        "gpt-4",
        "gpt-3.5-turbo",
        "gpt-4o-mini",
    ]


def test_touch_missing_session_raises(store: SqlSessionStore) -> None:
    with pytest.raises(LookupError):
        store.touch_session("missing", ["gpt-4"])


def test_concurrent_increments_are_not_lost(store: SqlSessionStore, user_id: str) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4"])

    with ThreadPoolExecutor(max_workers=8) as pool:
        for _ in range(40):
            pool.submit(store.increment_totals, session.id, 0.25, 5)

    refreshed = store.find_session(user_id, session.id)
    assert refreshed.total_cost == pytest.approx(10.0)
    assert refreshed.total_tokens == 200


def test_one_turn_per_session_run_and_model(store: SqlSessionStore, user_id: str) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4"])
    store.append_turn(turn(session.id, "gpt-4"))

    with pytest.raises(IntegrityError):
        store.append_turn(turn(session.id, "gpt-4"))

    # A later round may answer with the same model again
    store.append_turn(turn(session.id, "gpt-4", run_id="run-2"))
    _, turns = store.get_session_detail(user_id, session.id)
    assert [t.run_id for t in turns] == ["run-1", "run-2"]


def test_list_sessions_paginates_newest_first(
    store: SqlSessionStore, user_id: str, other_user_id: str
) -> None:
    created = [store.create_session(user_id, f"prompt {i}", ["gpt-4"]) for i in range(5)]
    store.create_session(other_user_id, "not mine", ["gpt-4"])

    first = store.list_sessions(user_id, page=1, page_size=2)
    assert first.total == 5
    assert [s.id for s in first.items] == [created[4].id, created[3].id]

    last = store.list_sessions(user_id, page=3, page_size=2)
    assert [s.id for s in last.items] == [created[0].id]

    beyond = store.list_sessions(user_id, page=4, page_size=2)
    assert beyond.items == []
    assert beyond.total == 5


def test_session_detail_returns_turns_in_creation_order(
    store: SqlSessionStore, user_id: str, other_user_id: str
) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4", "gpt-4o-mini"])
    store.append_turn(turn(session.id, "gpt-4o-mini"))
    store.append_turn(turn(session.id, "gpt-4"))

    detail = store.get_session_detail(user_id, session.id)
    assert detail is not None
    found, turns = detail
    assert found.id == session.id
    assert [t.model_name for t in turns] == ["gpt-4o-mini", "gpt-4"]

    assert store.get_session_detail(other_user_id, session.id) is None


def test_record_turn_writes_turn_and_totals_together(
    store: SqlSessionStore, user_id: str
) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4", "gpt-4o-mini"])

    store.record_turn(turn(session.id, "gpt-4", cost=0.5))
    store.record_turn(turn(session.id, "gpt-4o-mini", cost=0.25))

    found, turns = store.get_session_detail(user_id, session.id)
    assert [t.model_name for t in turns] == ["gpt-4", "gpt-4o-mini"]
    assert found.total_tokens == 10
    assert found.total_cost == pytest.approx(0.75)


def test_record_turn_duplicate_leaves_totals_untouched(
    store: SqlSessionStore, user_id: str
) -> None:
    session = store.create_session(user_id, "hello", ["gpt-4"])
    store.record_turn(turn(session.id, "gpt-4"))

    with pytest.raises(IntegrityError):
        store.record_turn(turn(session.id, "gpt-4"))

    found = store.find_session(user_id, session.id)
    assert found.total_tokens == 5
    assert found.total_cost == pytest.approx(0.01)


def test_record_turn_for_missing_session_writes_nothing(
    store: SqlSessionStore, db_session
) -> None:
    with pytest.raises((LookupError, IntegrityError)):
        store.record_turn(turn("missing", "gpt-4"))

    assert get_session_turns(db_session, "missing") == []
