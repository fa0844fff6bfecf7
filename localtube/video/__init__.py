"""Video download and on-disk archive layout."""

from localtube.video.extractor import YtDlp
from localtube.video.ingestor import IngestStage, VideoIngestor

__all__ = [
    "YtDlp",
    "IngestStage",
    "VideoIngestor",
]
