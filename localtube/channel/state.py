"""Subscription state store: which channels are pending and which are onboarded."""

from pathlib import Path

from pydantic import ValidationError

from localtube.core.exceptions import StateConsistencyError
from localtube.core.fs import read_json, write_json
from localtube.core.logging_config import get_logger
from localtube.core.schemas import SubscriptionState

logger = get_logger(__name__)


class SubscriptionStateStore:
    """Load, mutate and persist the subscription document.

    Every transition is persisted before the method returns, so the file on
    disk always matches the work that has actually completed.

    Usage:
        store = SubscriptionStateStore(Path("subscriptions.json"))
        store.load()
        for channel_id in store.pending():
            ...
            store.promote(channel_id)
    """

    def __init__(self, path: Path, atomic_writes: bool = True):
        self.path = path
        self.atomic_writes = atomic_writes
        self._state: SubscriptionState | None = None

    @property
    def state(self) -> SubscriptionState:
        if self._state is None:
            raise RuntimeError("subscription state has not been loaded")
        return self._state

    def load(self) -> SubscriptionState:
        """
        Read the persisted document, creating an empty one if absent.

        Raises:
            StateConsistencyError: If the document breaks the subscription invariants
        """
        if not self.path.exists():
            logger.info(f"Creating empty subscription state at {self.path}")
            self._state = SubscriptionState()
            self.persist()
            return self._state

        try:
            raw = read_json(self.path)
        except OSError as e:
            raise StateConsistencyError(f"{self.path} could not be read: {e}") from e
        except ValueError as e:
            raise StateConsistencyError(f"{self.path} is not valid UTF-8 JSON: {e}") from e

        try:
            self._state = SubscriptionState.model_validate(raw)
        except ValidationError as e:
            raise StateConsistencyError(f"{self.path} is malformed: {e}") from e
        return self._state

    def persist(self) -> None:
        """
        Serialize and overwrite the whole document.

        Raises:
            StorageFailure: The document could not be written
        """
        write_json(self.path, self.state.model_dump(), atomic=self.atomic_writes)

    def pending(self) -> list[str]:
        """Channels awaiting their first full sync, in order."""
        return list(self.state.subscribing)

    def subscribed(self) -> list[str]:
        """Onboarded channels, in order."""
        return list(self.state.subscribed)

    def add_subscription(self, channel_id: str, title: str | None = None) -> bool:
        """
        Queue a channel for its first full sync.

        Args:
            channel_id: Channel to add
            title: Optional display name kept until promotion

        Returns:
            True if the channel was added, False if already pending or subscribed
        """
        state = self.state
        if channel_id in state.subscribing or channel_id in state.subscribed:
            return False

        state.subscribing.append(channel_id)
        if title:
            state.titles[channel_id] = title
        self.persist()
        return True

    def promote(self, channel_id: str) -> None:
        """
        Move a channel from ``subscribing`` to ``subscribed`` and drop its title.

        Raises:
            StateConsistencyError: If the channel is already subscribed or not pending
            StorageFailure: The document could not be written
        """
        state = self.state
        if channel_id in state.subscribed:
            raise StateConsistencyError(f"{channel_id} is already subscribed")
        if channel_id not in state.subscribing:
            raise StateConsistencyError(f"{channel_id} is not pending subscription")

        state.subscribing.remove(channel_id)
        state.subscribed.append(channel_id)
        state.titles.pop(channel_id, None)
        self.persist()
        logger.info(f"Promoted {channel_id} to subscribed")
