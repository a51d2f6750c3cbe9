"""
Scoped Cargo.toml mutations applied after checkout.

Changes made here leave the work tree dirty; the orchestrator hard-resets to
the replayed commit before the next checkout.
"""

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_SECTION_RE = re.compile(r"^\s*\[")
_DEBUG_KEY_RE = re.compile(r"^\s*debug\s*=")


def _header_re(profile: str) -> "re.Pattern[str]":
    # [profile.dev], [ profile . "dev" ], [profile.dev]  # comment
    name = re.escape(profile)
    return re.compile(rf"^\s*\[\s*profile\s*\.\s*(?:{name}|\"{name}\"|'{name}')\s*\]\s*(?:#.*)?$")


def disable_debuginfo(manifest_path: Path, profile: str = "dev") -> None:
    """Force `debug = 0` in `[profile.<profile>]`, creating the section if needed."""
    manifest_path = Path(manifest_path)
    lines = manifest_path.read_text().splitlines()
    header = f"[profile.{profile}]"
    header_re = _header_re(profile)

    try:
        start = next(i for i, line in enumerate(lines) if header_re.match(line))
    except StopIteration:
        lines.extend(["", header, "debug = 0"])
    else:
        end = start + 1
        while end < len(lines) and not _SECTION_RE.match(lines[end]):
            end += 1
        for i in range(start + 1, end):
            if _DEBUG_KEY_RE.match(lines[i]):
                lines[i] = "debug = 0"
                break
        else:
            lines.insert(start + 1, "debug = 0")

    manifest_path.write_text("\n".join(lines) + "\n")
    logger.debug("disabled debuginfo in %s", manifest_path)
