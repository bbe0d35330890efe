import sqlite3

import pytest

import moderation_db


def test_roles_are_unique_per_user(temp_db):
    assert moderation_db.assign_role("mod-1", "moderator") is True
    assert moderation_db.assign_role("mod-1", "moderator") is False
    assert moderation_db.list_users_with_role("moderator") == ["mod-1"]


def test_unknown_role_rejected(temp_db):
    with pytest.raises(ValueError):
        moderation_db.assign_role("someone", "superuser")


def test_revoke_role(temp_db):
    moderation_db.assign_role("mod-1", "moderator")
    moderation_db.assign_role("mod-2", "moderator")
    assert moderation_db.revoke_role("mod-1", "moderator") is True
    assert moderation_db.revoke_role("mod-1", "moderator") is False
    assert moderation_db.list_users_with_role("moderator") == ["mod-2"]


def test_record_and_notifications(temp_db):
    record_id = moderation_db.insert_moderation_record(
        author_id="author-1",
        violation_kind="abusive_language",
        severity_level="high",
        flagged_content="you idiot",
        confidence=0.85,
        content_type="post",
        content_id="post-42",
    )
    record = moderation_db.get_moderation_record(record_id)
    assert record["content_type"] == "post"
    assert record["content_id"] == "post-42"
    assert record["reviewed"] == 0

    inserted = moderation_db.insert_reviewer_notifications(["mod-1", "mod-2"], record_id, "check this")
    assert inserted == 2
    notes = moderation_db.get_notifications_for("mod-2")
    assert len(notes) == 1
    assert notes[0]["moderation_id"] == record_id


def test_notifications_with_no_reviewers(temp_db):
    assert moderation_db.insert_reviewer_notifications([], None, "nobody to tell") == 0


def test_pending_newest_first(temp_db):
    first = moderation_db.insert_moderation_record("a", "spam", "low", "x", 0.5)
    second = moderation_db.insert_moderation_record("b", "spam", "low", "y", 0.5)
    pending = moderation_db.get_pending_records()
    assert [r["id"] for r in pending] == [second, first]

    moderation_db.mark_reviewed(second, "mod-1")
    assert [r["id"] for r in moderation_db.get_pending_records()] == [first]


def test_warning_acknowledged_once(temp_db):
    warning_id = moderation_db.insert_user_warning("author-1", None, "abusive_language", "be nice")
    assert moderation_db.acknowledge_warning(warning_id, "author-1") is True
    assert moderation_db.acknowledge_warning(warning_id, "author-1") is False
    assert moderation_db.get_unacknowledged_warnings("author-1") == []


class _BrokenConnection:
    def __init__(self):
        self.closed = False

    def execute(self, *args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    def close(self):
        self.closed = True


@pytest.mark.parametrize("read", [
    lambda: moderation_db.get_pending_records(),
    lambda: moderation_db.get_unacknowledged_warnings("author-1"),
])
def test_failed_reads_close_their_connection(temp_db, monkeypatch, read):
    conn = _BrokenConnection()
    monkeypatch.setattr(moderation_db, "get_db_connection", lambda: conn)
    assert read() == []
    assert conn.closed is True
