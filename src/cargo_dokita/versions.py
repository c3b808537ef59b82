"""Semantic version helpers."""

from typing import Iterable, Optional

import semver


def parse_version(text: Optional[str]) -> Optional[semver.Version]:
    """Parse a full semver string, or return None if it is not one."""
    if not text:
        return None
    try:
        return semver.Version.parse(text.strip())
    except (ValueError, TypeError):
        return None


def highest_stable(versions: Iterable[str]) -> Optional[semver.Version]:
    """Highest version without a pre-release tag; unparseable entries are ignored."""
    best = None
    for text in versions:
        version = parse_version(text)
        if version is None or version.prerelease:
            continue
        if best is None or version > best:
            best = version
    return best
