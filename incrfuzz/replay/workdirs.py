"""
Work directory layout for one replay run.

    work/target-normal             cargo output, normal builds
    work/target-incr               cargo output, incremental builds
    work/target-incr-from-scratch  cargo output, fresh-cache builds
    work/incr                      primary incremental cache
    work/incr-from-scratch         fresh incremental cache
    work/commits/0003-1a2b3c4-...  evidence per (commit, stage)

The whole tree is disposable: it is wiped at run start and left in place on
failure for inspection.
"""

import logging
import shutil
from pathlib import Path

from ..core.errors import PreconditionError

logger = logging.getLogger(__name__)


def recreate_dir(path: Path) -> Path:
    """Delete `path` if present, create it empty, return its absolute form."""
    path = Path(path)
    if path.exists():
        if not path.is_dir():
            raise PreconditionError(f"`{path}` is not a directory")
        shutil.rmtree(path)
    path.mkdir(parents=True)
    return path.resolve()


class WorkDirs:
    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    @property
    def target_normal(self) -> Path:
        return self.root / "target-normal"

    @property
    def target_incr(self) -> Path:
        return self.root / "target-incr"

    @property
    def target_incr_from_scratch(self) -> Path:
        return self.root / "target-incr-from-scratch"

    @property
    def incr(self) -> Path:
        return self.root / "incr"

    @property
    def incr_from_scratch(self) -> Path:
        return self.root / "incr-from-scratch"

    @property
    def commits(self) -> Path:
        return self.root / "commits"

    def reset(self) -> None:
        """Start a run from an empty work directory."""
        logger.info("resetting work directory %s", self.root)
        recreate_dir(self.root)
        for path in (
            self.target_normal,
            self.target_incr,
            self.target_incr_from_scratch,
            self.incr,
            self.incr_from_scratch,
            self.commits,
        ):
            path.mkdir()

    def evidence_dir(self, index: int, short_id: str, stage: str) -> Path:
        return self.commits / f"{index:04}-{short_id}-{stage}"
