"""
Git collaborator: the narrow slice of git the harness needs.

All operations shell out to the `git` binary. Failures raise VcsError (or
PreconditionError for user-facing preconditions); nothing here prints.
"""

import logging
import os
import subprocess
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..core.errors import HistoryError, PreconditionError, VcsError
from ..history.graph import HistoryNode

logger = logging.getLogger(__name__)

CHECKPOINT_BRANCH = "cargo-incremental-build"
CHECKPOINT_AUTHOR = ("cargo-incremental", "none")


class GitCommit(HistoryNode):
    """
    A commit loaded from a GitRepository.

    Fields:
        oid: Full commit id
        short_id: Abbreviated id for display
        parent_ids: Parent ids in git's parent order
    """

    def __init__(self, repo: "GitRepository", oid: str, short_id: str, parent_ids: List[str]):
        self.repo = repo
        self.oid = oid
        self.short_id = short_id
        self.parent_ids = parent_ids

    def id(self) -> str:
        return self.oid

    def human_readable_id(self) -> str:
        return self.short_id

    def parent(self, index: int) -> "GitCommit":
        try:
            return self.repo.load_commit(self.parent_ids[index])
        except (IndexError, VcsError) as err:
            raise HistoryError(
                f"unable to load parent {index} of commit {self.short_id}: {err}"
            ) from err

    def num_parents(self) -> int:
        return len(self.parent_ids)

    def __repr__(self) -> str:
        return f"GitCommit({self.short_id})"


class GitRepository:
    """A git work tree driven through the git CLI."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._commits: Dict[str, GitCommit] = {}

    @classmethod
    def discover(cls, path: Path) -> "GitRepository":
        """
        Find the repository containing `path` (a file or directory).

        Raises:
            PreconditionError: If `path` is not inside a git work tree
        """
        path = Path(path).resolve()
        start = path if path.is_dir() else path.parent
        proc = subprocess.run(
            ["git", "-C", str(start), "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=False,
        )
        if proc.returncode != 0:
            raise PreconditionError(
                f"failed to find repository containing `{path}`: {proc.stderr.strip()}"
            )
        root = Path(proc.stdout.strip())
        logger.info("repo at %s", root)
        return cls(root)

    def _git(self, *args: str, env: Optional[Dict[str, str]] = None) -> str:
        proc = subprocess.run(
            ["git", "-C", str(self.root), *args],
            capture_output=True,
            text=True,
            env=env,
            check=False,
        )
        if proc.returncode != 0:
            stderr = proc.stderr.strip() or f"git {args[0]} failed"
            raise VcsError(stderr)
        return proc.stdout

    def _status_lines(self, *extra: str) -> List[str]:
        try:
            out = self._git("status", "--porcelain", *extra)
        except VcsError as err:
            raise VcsError(f"could not load git repository status: {err}") from err
        return [line for line in out.splitlines() if line.strip()]

    def dirty_paths(self) -> List[str]:
        """Modified, staged or untracked paths (ignored files excluded)."""
        return [line[3:] for line in self._status_lines()]

    def check_clean(self) -> None:
        dirty = self.dirty_paths()
        for path in dirty:
            logger.error("file `%s` is dirty", path)
        if dirty:
            raise PreconditionError("cannot run with a dirty repository; clean it first")

    def untracked_sources(self, suffix: str = ".rs") -> List[str]:
        lines = self._status_lines("--untracked-files=all")
        return [line[3:] for line in lines if line.startswith("?? ") and line.endswith(suffix)]

    def check_no_untracked_sources(self, suffix: str = ".rs") -> None:
        untracked = self.untracked_sources(suffix)
        for path in untracked:
            logger.error("file `%s` is untracked", path)
        if untracked:
            raise PreconditionError(f"there are untracked {suffix} files in the repository")

    def _remember(self, oid: str, short_id: str, parent_ids: List[str]) -> GitCommit:
        commit = self._commits.get(oid)
        if commit is None:
            commit = GitCommit(self, oid, short_id, parent_ids)
            self._commits[oid] = commit
        return commit

    def load_commit(self, rev: str) -> GitCommit:
        """
        Resolve `rev` to a commit.

        Only full commit ids are served from the cache; symbolic revisions
        (HEAD, branches) are resolved again on every call.

        Raises:
            VcsError: If `rev` does not name a commit
        """
        cached = self._commits.get(rev)
        if cached is not None:
            return cached

        try:
            out = self._git("show", "-s", "--format=%H%x00%h%x00%P", f"{rev}^{{commit}}", "--")
        except VcsError as err:
            raise VcsError(f"`{rev}` is not a commit: {err}") from err

        oid, short_id, parents = out.strip().split("\x00")
        return self._remember(oid, short_id, parents.split())

    def load_history(self, *tips: GitCommit) -> int:
        """
        Load every ancestor of `tips` with a single git call.

        Parent lookups during traversal are then served from memory.

        Returns:
            Number of commits newly loaded
        """
        before = len(self._commits)
        out = self._git("log", "--format=%H%x00%h%x00%P", *(tip.oid for tip in tips), "--")
        for line in out.splitlines():
            if not line:
                continue
            oid, short_id, parents = line.split("\x00")
            self._remember(oid, short_id, parents.split())
        loaded = len(self._commits) - before
        logger.debug("loaded %d commits of history", loaded)
        return loaded

    def resolve_range(self, revisions: str) -> Tuple[Optional[GitCommit], GitCommit]:
        """
        Resolve `A..B` into (A, B), or a bare endpoint into (None, B).

        Raises:
            PreconditionError: If the range is malformed or names no commit
        """
        if "..." in revisions:
            raise PreconditionError(f"symmetric-difference revspec `{revisions}` is not supported")

        if ".." in revisions:
            from_spec, to_spec = revisions.split("..", 1)
            if not from_spec:
                raise PreconditionError(f'revspec `{revisions}` had no "from" point specified')
            if not to_spec:
                raise PreconditionError(
                    f'revspec `{revisions}` had no "to" point specified; '
                    f"try something like `{revisions}HEAD`"
                )
        else:
            from_spec, to_spec = None, revisions

        try:
            start = self.load_commit(from_spec) if from_spec is not None else None
            end = self.load_commit(to_spec)
        except VcsError as err:
            raise PreconditionError(f"failed to parse revspec `{revisions}`: {err}") from err

        self.load_history(*(c for c in (start, end) if c is not None))
        return start, end

    def checkout(self, commit: GitCommit) -> None:
        """Update the work tree to `commit` and detach HEAD there."""
        try:
            self._git("checkout", "--quiet", "--detach", commit.oid)
        except VcsError as err:
            raise VcsError(f"encountered error checking out `{commit.short_id}`: {err}") from err

    def reset_hard(self, commit: GitCommit) -> None:
        try:
            self._git("reset", "--quiet", "--hard", commit.oid)
        except VcsError as err:
            raise VcsError(f"encountered error while resetting repo: {err}") from err

    def current_branch(self) -> str:
        return self._git("rev-parse", "--abbrev-ref", "HEAD").strip()

    def commit_checkpoint(self, branch: str = CHECKPOINT_BRANCH) -> str:
        """
        Snapshot the whole work tree as a new commit on `branch`.

        Tracked and untracked (non-ignored) files are recorded through a
        temporary index, so neither HEAD, the real index nor the work tree is
        touched. The new commit's parent is the branch tip, or HEAD when the
        branch does not exist yet.

        Returns:
            Id of the checkpoint commit
        """
        ref = f"refs/heads/{branch}"
        try:
            parent = self._git("rev-parse", "--verify", "--quiet", ref).strip()
        except VcsError:
            parent = ""
        if not parent:
            logger.info("creating checkpoint branch %s from HEAD", branch)
            parent = self._git("rev-parse", "--verify", "HEAD").strip()
            old_value = ""
        else:
            old_value = parent

        name, email = CHECKPOINT_AUTHOR
        with tempfile.TemporaryDirectory(prefix="incrfuzz-index-") as tmpdir:
            env = dict(os.environ)
            env["GIT_INDEX_FILE"] = os.path.join(tmpdir, "index")
            env.update({
                "GIT_AUTHOR_NAME": name,
                "GIT_AUTHOR_EMAIL": email,
                "GIT_COMMITTER_NAME": name,
                "GIT_COMMITTER_EMAIL": email,
            })
            try:
                self._git("add", "--all", ".", env=env)
                tree = self._git("write-tree", env=env).strip()
                oid = self._git("commit-tree", tree, "-p", parent, "-m", "checkpoint", env=env).strip()
                update = ["update-ref", "-m", "incrfuzz checkpoint", ref, oid]
                if old_value:
                    update.append(old_value)
                self._git(*update)
            except VcsError as err:
                raise VcsError(f"failed to create checkpoint commit: {err}") from err

        logger.info("checkpoint %s committed on %s", oid[:10], branch)
        return oid
