"""
Unit tests for web_gateway/sessions/models.py.
"""

import pytest


class TestSessionCreate:
    def test_new_session_is_empty_and_unmodified(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)

        assert session.is_new is True
        assert session.modified is False
        assert session.principal is None
        assert session.data.values == {}
        assert len(session.id) == 32

    def test_ids_are_unique(self):
        from web_gateway.sessions.models import Session

        assert Session.create(60).id != Session.create(60).id

    def test_expiry_is_duration_from_now(self):
        from datetime import datetime, timedelta, timezone

        from web_gateway.sessions.models import Session

        before = datetime.now(timezone.utc)
        session = Session.create(90)

        assert before + timedelta(seconds=89) <= session.expires_at
        assert session.expires_at <= datetime.now(timezone.utc) + timedelta(seconds=90)


class TestMutations:
    def test_set_marks_modified(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)
        session.set("theme", "dark")

        assert session.modified is True
        assert session.get("theme") == "dark"
        assert "theme" in session

    def test_reads_do_not_mark_modified(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)
        session.get("missing", "fallback")
        session.pop("missing")
        session.clear()

        assert session.modified is False

    def test_pop_existing_key(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)
        session.set("k", 1)
        session.modified = False

        assert session.pop("k") == 1
        assert session.modified is True
        assert "k" not in session

    def test_principal_assignment_marks_modified_only_on_change(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)
        session.principal = None
        assert session.modified is False

        session.principal = "alice"
        assert session.modified is True
        assert session.data.principal == "alice"

    def test_values_must_be_json(self):
        from pydantic import ValidationError

        from web_gateway.sessions.models import SessionData

        with pytest.raises(ValidationError):
            SessionData(values={"bad": object()})


class TestRegenerate:
    def test_regenerate_loaded_session_remembers_previous_id(self):
        from web_gateway.sessions.models import Session

        loaded = Session(Session.create(60).record)
        old_id = loaded.id
        loaded.set("cart", ["apple"])

        loaded.regenerate()

        assert loaded.id != old_id
        assert loaded.previous_id == old_id
        assert loaded.get("cart") == ["apple"]
        assert loaded.is_new is True

    def test_regenerate_new_session_has_nothing_to_delete(self):
        from web_gateway.sessions.models import Session

        session = Session.create(60)
        session.regenerate()

        assert session.previous_id is None
        assert session.modified is True

    def test_regenerate_twice_keeps_original_previous_id(self):
        from web_gateway.sessions.models import Session

        loaded = Session(Session.create(60).record)
        original = loaded.id

        loaded.regenerate()
        loaded.regenerate()

        assert loaded.previous_id == original


class TestRecordExpiry:
    def test_is_expired(self):
        from datetime import datetime, timedelta, timezone

        from web_gateway.sessions.models import SessionRecord

        now = datetime.now(timezone.utc)
        record = SessionRecord(id="a", created_at=now, expires_at=now + timedelta(seconds=5))

        assert record.is_expired(now) is False
        assert record.is_expired(now + timedelta(seconds=5)) is True
