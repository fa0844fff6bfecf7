"""Channel tracking: subscription state, channel registration and sync."""

from .resolver import ChannelResolver, fetch_asset, select_assets
from .scanner import PlaylistScanner, video_id_from_url
from .state import SubscriptionStateStore
from .sync import SubscriptionPipeline

__all__ = [
    # State
    "SubscriptionStateStore",
    # Resolver
    "ChannelResolver",
    "select_assets",
    "fetch_asset",
    # Scanner
    "PlaylistScanner",
    "video_id_from_url",
    # Sync
    "SubscriptionPipeline",
]
