"""LocalTube ingest - mirror subscribed YouTube channels into a local archive."""

from localtube.channel import SubscriptionPipeline, SubscriptionStateStore

__version__ = "0.1.0"
__all__ = ["SubscriptionPipeline", "SubscriptionStateStore"]
