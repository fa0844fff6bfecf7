"""Tests for the subscription state store."""

import errno
import json
from unittest.mock import patch

import pytest

from localtube.channel.state import SubscriptionStateStore
from localtube.core.exceptions import StateConsistencyError, StorageFailure
from localtube.core.schemas import SubscriptionState


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "subscriptions.json"


def write_state(path, **doc):
    path.write_text(json.dumps({"subscribing": [], "subscribed": [], "titles": {}, **doc}))


class TestLoad:
    """Test loading the subscription document."""

    def test_missing_file_is_created_empty(self, state_path):
        """A missing document is initialized and persisted."""
        store = SubscriptionStateStore(state_path)
        state = store.load()

        assert state == SubscriptionState()
        assert json.loads(state_path.read_text()) == {
            "subscribing": [],
            "subscribed": [],
            "titles": {},
        }

    def test_existing_document(self, state_path):
        """Lists keep their order."""
        write_state(state_path, subscribing=["UCb", "UCa"], subscribed=["UCc"], titles={"UCb": "B"})
        store = SubscriptionStateStore(state_path)
        store.load()

        assert store.pending() == ["UCb", "UCa"]
        assert store.subscribed() == ["UCc"]

    def test_overlap_rejected(self, state_path):
        """A channel cannot be both pending and subscribed."""
        write_state(state_path, subscribing=["UCa"], subscribed=["UCa"])
        with pytest.raises(StateConsistencyError, match="both"):
            SubscriptionStateStore(state_path).load()

    def test_duplicates_rejected(self, state_path):
        """Duplicate IDs within a list are rejected."""
        write_state(state_path, subscribed=["UCa", "UCa"])
        with pytest.raises(StateConsistencyError, match="duplicate"):
            SubscriptionStateStore(state_path).load()

    def test_orphan_title_rejected(self, state_path):
        """Titles are only kept for pending channels."""
        write_state(state_path, subscribed=["UCa"], titles={"UCa": "A"})
        with pytest.raises(StateConsistencyError, match="not pending"):
            SubscriptionStateStore(state_path).load()

    def test_invalid_json(self, state_path):
        """Unparseable documents are a state error."""
        state_path.write_text("{not json")
        with pytest.raises(StateConsistencyError):
            SubscriptionStateStore(state_path).load()

    def test_undecodable_document(self, state_path):
        """Bytes that are not UTF-8 are a state error, not a crash."""
        state_path.write_bytes(b'{"subscribing": ["\xff"], "subscribed": [], "titles": {}}')
        with pytest.raises(StateConsistencyError, match="UTF-8"):
            SubscriptionStateStore(state_path).load()

    def test_state_before_load(self, state_path):
        """Accessing state before load is a programming error."""
        with pytest.raises(RuntimeError):
            SubscriptionStateStore(state_path).pending()


class TestTransitions:
    """Test state transitions and persistence."""

    def test_promote_moves_and_drops_title(self, state_path):
        """Promotion moves the channel and removes its title on disk."""
        write_state(state_path, subscribing=["UCa", "UCb"], titles={"UCa": "A"})
        store = SubscriptionStateStore(state_path)
        store.load()

        store.promote("UCa")

        on_disk = json.loads(state_path.read_text())
        assert on_disk == {"subscribing": ["UCb"], "subscribed": ["UCa"], "titles": {}}

    def test_promote_twice_fails(self, state_path):
        """Promoting an already subscribed channel is rejected."""
        write_state(state_path, subscribing=["UCa"])
        store = SubscriptionStateStore(state_path)
        store.load()
        store.promote("UCa")

        with pytest.raises(StateConsistencyError, match="already subscribed"):
            store.promote("UCa")

    def test_promote_unknown_fails(self, state_path):
        """Only pending channels can be promoted."""
        store = SubscriptionStateStore(state_path)
        store.load()

        with pytest.raises(StateConsistencyError, match="not pending"):
            store.promote("UCzzz")

    def test_add_subscription(self, state_path):
        """New channels are queued with their title and persisted."""
        store = SubscriptionStateStore(state_path)
        store.load()

        assert store.add_subscription("UCa", "A") is True
        assert store.add_subscription("UCa") is False

        reloaded = SubscriptionStateStore(state_path)
        reloaded.load()
        assert reloaded.pending() == ["UCa"]
        assert reloaded.state.titles == {"UCa": "A"}

    def test_add_subscription_ignores_subscribed(self, state_path):
        """Subscribed channels are not queued again."""
        write_state(state_path, subscribed=["UCa"])
        store = SubscriptionStateStore(state_path)
        store.load()

        assert store.add_subscription("UCa") is False
        assert store.pending() == []

    def test_in_place_writes(self, state_path):
        """Non-atomic mode writes the same document."""
        store = SubscriptionStateStore(state_path, atomic_writes=False)
        store.load()
        store.add_subscription("UCa")

        assert json.loads(state_path.read_text())["subscribing"] == ["UCa"]
        assert list(state_path.parent.glob(".subscriptions.json.*")) == []

    def test_persist_failure(self, state_path):
        """A write error surfaces as StorageFailure and keeps the last good document."""
        write_state(state_path, subscribing=["UCa"])
        store = SubscriptionStateStore(state_path)
        store.load()

        with patch("localtube.core.fs.os.replace", side_effect=OSError(errno.EROFS, "read-only")):
            with pytest.raises(StorageFailure, match="read-only"):
                store.promote("UCa")

        assert json.loads(state_path.read_text())["subscribing"] == ["UCa"]
