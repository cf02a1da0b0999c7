"""Process-wide paths and tunables, resolved once and passed into each component."""

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    """Filesystem layout and acquisition settings for one run.

    The on-disk layout under ``root`` is::

        data/locations/<location>.json   location configs
        templates/<location>/<name>.png  landmark templates
        api/regions/<region>, index      current status per region
        api/history/YYYY-MM-DD           daily buckets
        api/history/recent, index        derived rollup and range
    """

    root: Path
    locations_dir: Path
    templates_dir: Path
    api_dir: Path
    ffmpeg_path: str = "ffmpeg"
    fetch_timeout: float = 30.0

    @property
    def regions_dir(self) -> Path:
        return self.api_dir / "regions"

    @property
    def history_dir(self) -> Path:
        return self.api_dir / "history"

    @classmethod
    def for_root(
        cls, root: Path, ffmpeg_path: str = "ffmpeg", fetch_timeout: float = 30.0
    ) -> "Settings":
        root = Path(root).resolve()
        return cls(
            root=root,
            locations_dir=root / "data" / "locations",
            templates_dir=root / "templates",
            api_dir=root / "api",
            ffmpeg_path=ffmpeg_path,
            fetch_timeout=fetch_timeout,
        )

    @classmethod
    def from_env(cls, root: Path | None = None) -> "Settings":
        """Build settings from the environment.

        Reads ``FOGCHECK_ROOT`` (default: current directory), ``FFMPEG_PATH`` and
        ``FOGCHECK_FETCH_TIMEOUT`` (seconds). An explicit ``root`` wins over the
        environment.
        """
        if root is None:
            env_root = os.environ.get("FOGCHECK_ROOT")
            root = Path(env_root) if env_root else Path.cwd()
        return cls.for_root(
            root,
            ffmpeg_path=os.environ.get("FFMPEG_PATH", "ffmpeg"),
            fetch_timeout=float(os.environ.get("FOGCHECK_FETCH_TIMEOUT", "30")),
        )
