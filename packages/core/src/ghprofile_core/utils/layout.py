"""Repository layout detection used to pick the architecture prompt."""

from __future__ import annotations

from collections import Counter
from pathlib import PurePosixPath

REPO_TYPE_STANDARD = "standard"
REPO_TYPE_MONOREPO = "monorepo"

MONOREPO_TOOL_FILES = {"lerna.json", "turbo.json", "nx.json", "pnpm-workspace.yaml"}
BUILD_MANIFESTS = {"go.mod", "package.json", "cargo.toml", "pyproject.toml", "pom.xml", "build.gradle"}

# A root manifest plus one sub-module is still a single project.
_MAX_MANIFESTS_PER_KIND = 2


def detect_repo_type(paths: list[str]) -> str:
    has_apps_dir = False
    has_packages_dir = False
    manifests: Counter[str] = Counter()

    for path in paths:
        lower = path.lower()
        name = PurePosixPath(lower).name
        if name in MONOREPO_TOOL_FILES:
            return REPO_TYPE_MONOREPO
        if lower.startswith("apps/"):
            has_apps_dir = True
        if lower.startswith(("packages/", "libs/")):
            has_packages_dir = True
        if name in BUILD_MANIFESTS:
            manifests[name] += 1

    if has_apps_dir and has_packages_dir:
        return REPO_TYPE_MONOREPO
    if any(count > _MAX_MANIFESTS_PER_KIND for count in manifests.values()):
        return REPO_TYPE_MONOREPO
    return REPO_TYPE_STANDARD
