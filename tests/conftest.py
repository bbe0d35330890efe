import pytest

import moderation_db


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    # Point DB to a temp file for isolation
    db_file = tmp_path / "moderation_test.db"
    monkeypatch.setattr(moderation_db, "DB_PATH", str(db_file))
    moderation_db.init_db()
    yield str(db_file)


@pytest.fixture
def reviewers(temp_db):
    moderation_db.assign_role("admin-1", "admin")
    moderation_db.assign_role("mod-1", "moderator")
    moderation_db.assign_role("mod-2", "moderator")
    moderation_db.assign_role("admin-1", "moderator")
    moderation_db.assign_role("user-9", "user")
    return ["admin-1", "mod-1", "mod-2"]


class FakeBot:
    def __init__(self, fail=False):
        self.sent = []
        self.fail = fail
        self.initialized = False

    async def initialize(self):
        self.initialized = True

    async def shutdown(self):
        self.initialized = False

    async def send_message(self, chat_id, text, **kwargs):
        if self.fail:
            raise RuntimeError("telegram down")
        self.sent.append((chat_id, text))
        return type("M", (), {"message_id": len(self.sent), "text": text})()


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def failing_bot():
    return FakeBot(fail=True)
