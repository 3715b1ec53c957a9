"""
Per-execution tracking of local scratch files.
"""

import shutil
from pathlib import Path
from typing import Dict, List, Union

from reelgen.core import get_logger

logger = get_logger(__name__, component="resource_tracker")

PathLike = Union[str, Path]


class ResourceTracker:
    """Collects local paths created during one job execution and removes them.

    ``cleanup`` never raises; failures are logged and the remaining paths are
    still attempted.
    """

    def __init__(self, job_id: str = ""):
        self.job_id = job_id
        self._paths: Dict[Path, None] = {}

    def track(self, path: PathLike) -> Path:
        resolved = Path(path)
        self._paths[resolved] = None
        return resolved

    @property
    def tracked(self) -> List[Path]:
        return list(self._paths)

    def cleanup(self) -> int:
        removed = 0
        # Newest first so files go before the directories that hold them
        for path in reversed(list(self._paths)):
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                    removed += 1
                elif path.exists():
                    path.unlink()
                    removed += 1
            except OSError as exc:
                logger.warning(
                    f"Failed to remove temp resource {path}",
                    extra={"path": str(path), "error": str(exc)},
                )
        self._paths.clear()
        if removed:
            logger.debug(f"Removed {removed} temp resources", extra={"removed": removed})
        return removed

    def __enter__(self) -> "ResourceTracker":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.cleanup()
