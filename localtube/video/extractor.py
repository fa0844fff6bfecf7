"""yt-dlp invocation for channel info, playlist listing and video downloads."""

import subprocess
from pathlib import Path

from localtube.core.config import Settings, get_settings
from localtube.core.exceptions import ExternalToolFailure
from localtube.core.logging_config import get_logger

logger = get_logger(__name__)

CHANNEL_URL = "https://www.youtube.com/channel/{channel_id}"
CHANNEL_VIDEOS_URL = "https://www.youtube.com/channel/{channel_id}/videos"
VIDEO_URL = "https://www.youtube.com/watch?v={video_id}"


class YtDlp:
    """Run yt-dlp as a subprocess.

    Every method raises ``ExternalToolFailure`` when the tool cannot be started,
    times out, or exits nonzero; the captured stderr is attached verbatim.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.path = self.settings.ytdlp_path
        self.timeout = self.settings.ytdlp_timeout

    def _base_args(self) -> list[str]:
        args = [self.path, "--no-progress"]
        cookies = self.settings.cookies_path
        if cookies:
            args.extend(["--cookies", str(cookies)])
        return args

    def run(self, args: list[str], cwd: Path | None = None) -> subprocess.CompletedProcess:
        """
        Run yt-dlp with ``args``.

        Args:
            args: Arguments after the executable and shared flags
            cwd: Working directory; yt-dlp writes its output files here

        Returns:
            The completed process (text mode, stdout and stderr captured)
        """
        cmd = self._base_args() + args
        logger.debug(f"Executing: {' '.join(cmd)}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise ExternalToolFailure(f"yt-dlp not found at {self.path!r}") from e
        except OSError as e:
            raise ExternalToolFailure(f"could not run yt-dlp at {self.path!r}: {e}") from e
        except subprocess.TimeoutExpired as e:
            stderr = e.stderr or ""
            if isinstance(stderr, bytes):
                stderr = stderr.decode(errors="replace")
            raise ExternalToolFailure(
                f"yt-dlp timed out after {self.timeout}s", stderr=stderr
            ) from e

        if result.returncode != 0:
            raise ExternalToolFailure(
                f"yt-dlp failed with exit code {result.returncode}",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        return result

    def fetch_channel_info(self, channel_id: str, cwd: Path) -> None:
        """Write the channel's info JSON (and no videos) into ``cwd``."""
        self.run(
            [
                "--write-info-json",
                "--skip-download",
                "--playlist-items",
                "0",
                CHANNEL_URL.format(channel_id=channel_id),
            ],
            cwd=cwd,
        )

    def list_video_urls(
        self,
        channel_id: str,
        start: int | None = None,
        end: int | None = None,
    ) -> list[str]:
        """
        List video URLs from the channel's uploads, newest first.

        Args:
            channel_id: Channel to list
            start: 1-based first playlist index (whole list when omitted)
            end: Last playlist index, inclusive

        Returns:
            Non-empty, stripped lines of yt-dlp output
        """
        args = ["--flat-playlist", "--print", "webpage_url"]
        if start is not None and end is not None:
            args.extend(["--playlist-items", f"{start}:{end}"])
        args.append(CHANNEL_VIDEOS_URL.format(channel_id=channel_id))

        result = self.run(args)

        if result.stderr and "error" in result.stderr.lower():
            logger.warning(f"yt-dlp stderr for {channel_id} ({start}-{end}): {result.stderr.strip()}")

        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def download_video(self, video_id: str, cwd: Path) -> None:
        """Write info JSON, thumbnail, subtitles and media for one video into ``cwd``."""
        args = [
            "--write-info-json",
            "--write-thumbnail",
            "--write-subs",
            "--write-auto-subs",
            "--sub-langs",
            self.settings.subtitle_languages,
            "--sub-format",
            "vtt",
            "--no-playlist",
            "--output",
            "%(id)s.%(ext)s",
        ]
        if self.settings.ytdlp_format:
            args.extend(["--format", self.settings.ytdlp_format])
        args.append(VIDEO_URL.format(video_id=video_id))

        self.run(args, cwd=cwd)
