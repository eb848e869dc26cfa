from __future__ import annotations

import logging
from typing import Any, Iterator

from blast_radius.models import ConfigurationError, Module

logger = logging.getLogger(__name__)


class ModuleTree:
    """Build modules keyed by path, owned top-down from a single root.

    Parents and runtime dependencies are stored as paths and looked up through
    the tree, so no module holds a reference to another.
    """

    def __init__(self, root: str, modules: dict[str, Module]) -> None:
        if root not in modules:
            raise ConfigurationError(f"Root module '{root}' is not part of the module tree")
        self.root = root
        self._modules = dict(modules)
        self._validate()

    def _validate(self) -> None:
        for module in self._modules.values():
            for child in module.children:
                if child not in self._modules:
                    raise ConfigurationError(f"Module '{module.path}' lists unknown child module '{child}'")
                if self._modules[child].parent != module.path:
                    raise ConfigurationError(f"Module '{child}' does not name '{module.path}' as its parent")
            for dep in module.dependencies or ():
                if dep not in self._modules:
                    raise ConfigurationError(f"Module '{module.path}' depends on unknown module '{dep}'")

    def __contains__(self, path: object) -> bool:
        return path in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def get(self, path: str) -> Module:
        try:
            return self._modules[path]
        except KeyError:
            raise ConfigurationError(f"Unknown module '{path}'") from None

    def paths(self) -> list[str]:
        return sorted(self._modules)

    def parent(self, path: str) -> Module | None:
        parent = self.get(path).parent
        return self._modules[parent] if parent is not None else None

    def children(self, path: str) -> list[Module]:
        return [self._modules[c] for c in self.get(path).children]

    def runtime_dependencies(self, path: str) -> list[Module]:
        return [self._modules[d] for d in self.get(path).dependencies or ()]

    def declared_patterns(self, path: str) -> tuple[str, ...] | None:
        return self.get(path).file_patterns

    def directory(self, path: str) -> str:
        """Location of the module relative to the repository root, for pattern prefixes."""
        module = self.get(path)
        if module.directory is not None:
            return module.directory
        # the root module lives at the repository root whatever it is called
        return "/" if path == self.root else path

    def ancestors(self, path: str) -> list[Module]:
        """Modules from the root down to, but excluding, ``path``."""
        chain = []
        parent = self.parent(path)
        while parent is not None:
            chain.append(parent)
            parent = self.parent(parent.path)
        return list(reversed(chain))

    def walk(self) -> Iterator[Module]:
        """Every module once, each parent before its children."""
        stack = [self.root]
        seen: set[str] = set()
        while stack:
            path = stack.pop()
            if path in seen:
                continue
            seen.add(path)
            module = self._modules[path]
            yield module
            stack.extend(reversed(module.children))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModuleTree":
        """Build a tree from nested mappings as found in the YAML config.

        Each node has ``path`` and optional ``children``, ``dependencies``,
        ``directory`` and ``file_patterns``. A node without ``dependencies`` (or
        with null) has no runtime dependency relation; one without
        ``file_patterns`` uses the defaults, while ``file_patterns: []`` matches
        nothing.
        """
        if not isinstance(data, dict):
            raise ConfigurationError("'modules' must be a mapping describing the root module")

        modules: dict[str, Module] = {}

        def add(node: Any, parent: str | None, where: str) -> str:
            if not isinstance(node, dict):
                raise ConfigurationError(f"{where} must be a mapping")
            path = node.get("path")
            if not path or not isinstance(path, str):
                raise ConfigurationError(f"{where} missing required string field: path")
            if path in modules:
                raise ConfigurationError(f"Duplicate module path '{path}'")

            raw_children = node.get("children") or []
            if not isinstance(raw_children, list):
                raise ConfigurationError(f"Module '{path}' 'children' must be a list")

            # registered before the children so duplicates below it are caught
            modules[path] = Module(path=path, parent=parent)
            children = tuple(
                add(child, path, f"Child #{idx} of '{path}'") for idx, child in enumerate(raw_children, start=1)
            )
            modules[path] = Module(
                path=path,
                parent=parent,
                children=children,
                dependencies=_string_tuple(node, "dependencies", path),
                file_patterns=_string_tuple(node, "file_patterns", path),
                directory=_directory(node, path),
            )
            return path

        root = add(data, None, "Root module")
        return cls(root, modules)


def _directory(node: dict[str, Any], path: str) -> str | None:
    raw = node.get("directory")
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ConfigurationError(f"Module '{path}' 'directory' must be a string")
    return raw


def _string_tuple(node: dict[str, Any], key: str, path: str) -> tuple[str, ...] | None:
    raw = node.get(key)
    if raw is None:
        return None
    if not isinstance(raw, list):
        raise ConfigurationError(f"Module '{path}' '{key}' must be a list")
    return tuple(str(x) for x in raw)


def relevant_paths(tree: ModuleTree, path: str) -> set[str]:
    """The module itself plus every module it transitively depends on at runtime."""
    out: set[str] = set()
    stack = [path]
    while stack:
        current = stack.pop()
        if current in out:
            continue
        out.add(current)
        module = tree.get(current)
        if module.dependencies is None:
            continue
        for dep in tree.runtime_dependencies(current):
            logger.debug("Path of dependency %s", dep.path)
            if dep.path not in out:
                stack.append(dep.path)
    return out
