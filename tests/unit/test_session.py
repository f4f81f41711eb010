"""
Unit tests for the in-memory session store.

Testing philosophy:
- Test behavior, not implementation
- Prefer real objects over mocks where practical
"""

from picklepro.core.session import AuthSession, SessionStore, User


class TestAuthSession:
    """Tests for session snapshots."""

    def test_anonymous_has_no_user(self):
        session = AuthSession.anonymous()

        assert not session.is_authenticated
        assert session.user_id is None

    def test_for_user(self):
        session = AuthSession.for_user(User(id="user-1", email="a@example.com"))

        assert session.is_authenticated
        assert session.user_id == "user-1"


class TestSessionStore:
    """Tests for publishing session changes."""

    def test_listeners_receive_every_snapshot(self):
        store = SessionStore()
        seen = []
        store.subscribe(seen.append)

        store.sign_in(User(id="user-1"))
        store.publish()
        store.sign_out()

        assert [s.user_id for s in seen] == ["user-1", "user-1", None]
        assert store.current == AuthSession.anonymous()

    def test_unsubscribe(self):
        store = SessionStore()
        seen = []
        unsubscribe = store.subscribe(seen.append)

        unsubscribe()
        store.sign_in(User(id="user-1"))

        assert seen == []
