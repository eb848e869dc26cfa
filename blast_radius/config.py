from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
import logging
import os

import yaml

from blast_radius.commit_range import parse_strategy
from blast_radius.models import ConfigurationError, DiffStrategy
from blast_radius.modules import ModuleTree


DEFAULT_CONFIG_FILE = ".blast-radius.yml"
DEFAULT_OUTPUT_FILE = "changedFiles"
DEFAULT_PREVIOUS_BUILD_ENV = "GIT_PREVIOUS_SUCCESSFUL_COMMIT"

DEFAULT_FILE_PATTERNS = ("/[^.]*.gradle", "/src/main/.*")
# single module queries also deploy on changes to deployment descriptors
DEFAULT_MODULE_FILE_PATTERNS = ("/[^.]*.gradle", "/src/main/.*", "/deploy/.*")


@dataclass(frozen=True)
class BlastRadiusConfig:
    modules: ModuleTree | None
    diff_strategy: DiffStrategy = DiffStrategy.LAST_SUCCESSFUL_BUILD
    previous_commit: str | None = None
    previous_build_env: str = DEFAULT_PREVIOUS_BUILD_ENV
    file_patterns: tuple[str, ...] | None = None
    output: str = DEFAULT_OUTPUT_FILE

    def default_patterns(self, single_module: bool = False) -> tuple[str, ...]:
        if self.file_patterns is not None:
            return self.file_patterns
        return DEFAULT_MODULE_FILE_PATTERNS if single_module else DEFAULT_FILE_PATTERNS

    def require_modules(self) -> ModuleTree:
        if self.modules is None:
            raise ConfigurationError(f"No module tree configured. Add a 'modules' section to {DEFAULT_CONFIG_FILE}")
        return self.modules

    def with_overrides(self, **kwargs: Any) -> "BlastRadiusConfig":
        return replace(self, **{k: v for k, v in kwargs.items() if v is not None})


def _pattern_list(value: Any, where: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ConfigurationError(f"'{where}' must be a list of patterns")
    return tuple(str(x) for x in value)


def load_config(path: str | Path | None, root: Path | None = None) -> BlastRadiusConfig:
    """Load the YAML config.

    With no explicit path, ``.blast-radius.yml`` under ``root`` is used when it
    exists; otherwise the defaults apply and no module tree is configured.
    """
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
    else:
        config_path = (root or Path.cwd()) / DEFAULT_CONFIG_FILE
        if not config_path.exists():
            return BlastRadiusConfig(modules=None)

    try:
        data = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid config file {config_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    modules = ModuleTree.from_dict(data["modules"]) if data.get("modules") is not None else None

    file_patterns = None
    if data.get("file_patterns") is not None:
        file_patterns = _pattern_list(data["file_patterns"], "file_patterns")

    previous_commit = data.get("previous_commit")
    return BlastRadiusConfig(
        modules=modules,
        diff_strategy=parse_strategy(str(data.get("diff_strategy") or DiffStrategy.LAST_SUCCESSFUL_BUILD.value)),
        previous_commit=str(previous_commit) if previous_commit is not None else None,
        previous_build_env=str(data.get("previous_build_env") or DEFAULT_PREVIOUS_BUILD_ENV),
        file_patterns=file_patterns,
        output=str(data.get("output") or DEFAULT_OUTPUT_FILE),
    )


def previous_build_ref(config: BlastRadiusConfig) -> str | None:
    value = (os.getenv(config.previous_build_env) or "").strip()
    return value or None


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.WARNING if quiet else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", force=True)
