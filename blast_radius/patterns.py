from __future__ import annotations

import logging
import re
from typing import Iterable, Sequence

from blast_radius.models import ConfigurationError

logger = logging.getLogger(__name__)

_SLASH_RUN = re.compile(r"/{2,}")


class PatternError(ConfigurationError):
    pass


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def module_prefix(module_path: str) -> str:
    """Filesystem prefix of a module, e.g. ``:libs:core`` -> ``/libs/core``."""
    prefix = normalize_path(module_path).replace(":", "/")
    return prefix if prefix.startswith("/") else "/" + prefix


def pattern_source(module_path: str, pattern: str) -> str:
    # root modules yield "/" + "/src/..." so runs of slashes are collapsed
    return _SLASH_RUN.sub("/", module_prefix(module_path) + pattern)


def build_matchers(module_path: str, patterns: Iterable[str]) -> frozenset[re.Pattern[str]]:
    matchers = set()
    for pattern in patterns:
        source = pattern_source(module_path, pattern)
        try:
            matchers.add(re.compile(source))
        except re.error as exc:
            raise PatternError(f"Invalid file pattern '{pattern}' for module '{module_path}': {exc}") from exc
        logger.debug("Candidate pattern %s", source)
    return frozenset(matchers)


def matches_any(changed_paths: Sequence[str], matchers: Iterable[re.Pattern[str]]) -> bool:
    candidates = list(matchers)
    if not candidates:
        return False
    for changed in changed_paths:
        path = normalize_path(changed)
        for matcher in candidates:
            if matcher.fullmatch(path):
                logger.debug("Path %s matches pattern %s", path, matcher.pattern)
                return True
    return False
