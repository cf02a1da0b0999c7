"""Image acquisition — direct still-image URLs and HLS stream snapshots."""

import logging
import subprocess

import httpx

from fogcheck.models import ImageSource

logger = logging.getLogger(__name__)

_MAX_SNAPSHOT_BYTES = 10 * 1024 * 1024


class ImageFetchError(Exception):
    """Image could not be fetched or captured."""


def fetch_webcam_image(
    source: ImageSource, *, timeout: float = 30.0, ffmpeg_path: str = "ffmpeg"
) -> bytes:
    """Return the raw bytes of the current webcam image for ``source``.

    Args:
        source: Direct image URL (``type="image"``) or HLS playlist (``type="hls"``).
        timeout: Seconds before the HTTP request or ffmpeg capture is abandoned.
        ffmpeg_path: ffmpeg executable used for HLS snapshots.

    Raises:
        ImageFetchError: On transport failure, non-2xx status, or empty capture.
    """
    if source.type == "image":
        return _fetch_direct_image(source.url, timeout)
    if source.type == "hls":
        return _fetch_hls_snapshot(source.url, timeout, ffmpeg_path)
    raise ImageFetchError(f"Unsupported source type: {source.type!r}")


def _fetch_direct_image(url: str, timeout: float) -> bytes:
    """Fetch a JPG/PNG over HTTP."""
    try:
        resp = httpx.get(url, timeout=timeout, follow_redirects=True)
    except httpx.HTTPError as e:
        raise ImageFetchError(f"Failed to fetch image from {url}: {e}") from e
    if not resp.is_success:
        raise ImageFetchError(
            f"Failed to fetch image: {resp.status_code} {resp.reason_phrase}"
        )
    logger.debug("Fetched %d bytes from %s", len(resp.content), url)
    return resp.content


def _fetch_hls_snapshot(url: str, timeout: float, ffmpeg_path: str) -> bytes:
    """Grab one frame from an HLS stream as PNG, piped through ffmpeg's stdout."""
    cmd = [
        ffmpeg_path,
        "-i", url,
        "-frames:v", "1",
        "-f", "image2pipe",
        "-vcodec", "png",
        "pipe:1",
    ]  # fmt: skip
    try:
        proc = subprocess.run(cmd, capture_output=True, timeout=timeout, check=False)
    except FileNotFoundError as e:
        raise ImageFetchError(f"ffmpeg not found at {ffmpeg_path!r}") from e
    except subprocess.TimeoutExpired as e:
        raise ImageFetchError(f"ffmpeg timed out after {timeout}s for {url}") from e

    if proc.returncode != 0:
        stderr = proc.stderr.decode("utf-8", errors="replace").strip().splitlines()
        detail = stderr[-1] if stderr else f"exit code {proc.returncode}"
        raise ImageFetchError(f"ffmpeg failed for {url}: {detail}")
    if not proc.stdout:
        raise ImageFetchError(f"ffmpeg returned empty output for {url}")
    if len(proc.stdout) > _MAX_SNAPSHOT_BYTES:
        raise ImageFetchError(
            f"ffmpeg snapshot for {url} exceeds {_MAX_SNAPSHOT_BYTES} bytes"
        )
    return proc.stdout
