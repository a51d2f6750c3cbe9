"""
Run configuration, validated once at CLI entry.
"""

from pathlib import Path

from pydantic import BaseModel, Field

from .core.errors import PreconditionError
from .core.results import CacheScope
from .replay.orchestrator import ReplayOptions


class BuildConfig(BaseModel):
    manifest: Path = Path("Cargo.toml")
    just_current: bool = False
    live_log: bool = False

    @property
    def scope(self) -> CacheScope:
        return CacheScope.CURRENT_PROJECT if self.just_current else CacheScope.ALL_DEPS

    @property
    def project_dir(self) -> Path:
        return self.manifest.resolve().parent

    def check_manifest(self) -> None:
        if not self.manifest.is_file():
            raise PreconditionError(
                f"cargo path `{self.manifest}` does not lead to a `Cargo.toml` file"
            )


class ReplayConfig(BuildConfig):
    revisions: str
    work_dir: Path = Path("work")
    skip_tests: bool = False
    no_debuginfo: bool = False
    checkout_interval: float = Field(default=1.0, ge=0.0)

    def replay_options(self) -> ReplayOptions:
        return ReplayOptions(
            scope=self.scope,
            skip_tests=self.skip_tests,
            no_debuginfo=self.no_debuginfo,
            manifest_path=self.manifest.resolve(),
            checkout_interval=self.checkout_interval,
        )
