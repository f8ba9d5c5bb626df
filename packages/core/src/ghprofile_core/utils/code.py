"""Heuristic file scoring: which files of a repository are worth an LLM call.

Scoring is purely path-based so a tree listing is enough to rank a whole
repository without downloading any content. Higher wins; 0 means never
sampled, 1 means only sampled when nothing better exists.
"""

from __future__ import annotations

import fnmatch
from pathlib import PurePosixPath

# Directory names whose contents are third-party or build output.
EXCLUDED_DIRS = {"vendor", "node_modules", ".git", "build", "dist"}

NON_CODE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".webp",
    ".bmp",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".eot",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".rar",
    ".7z",
}

LOCK_FILE_NAMES = {"go.sum", "package-lock.json", "pnpm-lock.yaml", "npm-shrinkwrap.json"}

CORE_DIR_PREFIXES = ("internal/", "pkg/", "src/", "lib/")
ENTRYPOINT_DIR_PREFIXES = ("cmd/",)

SOURCE_EXTENSIONS = {
    ".go",
    ".py",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".java",
    ".rs",
    ".swift",
    ".kt",
    ".kts",
    ".rb",
    ".ex",
    ".exs",
    ".cs",
    ".cpp",
    ".cc",
    ".c",
    ".h",
    ".hpp",
    ".php",
    ".scala",
    ".dart",
}
SCRIPT_EXTENSIONS = {".sh", ".bash", ".sql"}
CONFIG_EXTENSIONS = {".yml", ".yaml", ".json", ".toml", ".hcl", ".tf"}
PROSE_EXTENSIONS = {".md", ".txt", ".html", ".css"}

BASE_SCORE = 10
EXCLUDED_SCORE = 0
NEAR_EXCLUDED_SCORE = 1

_LANGUAGES = {
    ".go": "Go",
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".py": "Python",
    ".rb": "Ruby",
    ".java": "Java",
    ".dart": "Dart",
    ".clj": "Clojure",
    ".cljs": "ClojureScript",
    ".rkt": "Racket",
    ".gleam": "Gleam",
    ".ex": "Elixir",
    ".exs": "Elixir",
    ".md": "Markdown",
    ".markdown": "Markdown",
    ".cpp": "C++",
    ".hpp": "C++",
    ".cc": "C++",
    ".h": "C++",
    ".c": "C",
    ".cs": "C#",
    ".swift": "Swift",
    ".kt": "Kotlin",
    ".kts": "Kotlin",
    ".rs": "Rust",
    ".php": "PHP",
    ".scala": "Scala",
    ".html": "HTML",
    ".htm": "HTML",
    ".css": "CSS",
    ".sh": "Shell",
    ".bash": "Shell",
    ".sql": "SQL",
    ".yml": "YAML",
    ".yaml": "YAML",
    ".json": "JSON",
    ".toml": "TOML",
}


def is_code_file(file_name: str) -> bool:
    return not any(file_name.lower().endswith(ext) for ext in NON_CODE_EXTENSIONS)


def is_test_file(file_name: str) -> bool:
    """Match test naming conventions across ecosystems on the basename only.

    test_scorer.py, scorer_test.go, scorer.test.ts, scorer.spec.js,
    scorer_spec.rb.
    """
    name = PurePosixPath(file_name.lower()).name
    stem = name.split(".", 1)[0]
    return (
        stem.startswith("test_")
        or stem.endswith("_test")
        or stem.endswith("_spec")
        or ".test." in name
        or ".spec." in name
    )


def is_excluded(path: str, patterns: list[str]) -> bool:
    """Return True if path matches any exclude pattern.

    Supports:
    - fnmatch globs on the full path: "src/generated/*.py"
    - fnmatch globs on the basename: "*.lock", "*.min.js"
    - Directory names/prefixes: "migrations/", "tests" (matches any file within that tree)
    """
    for pattern in patterns:
        if fnmatch.fnmatch(path, pattern):
            return True
        if fnmatch.fnmatch(path.rsplit("/", 1)[-1], pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if path.startswith(prefix) or ("/" + prefix) in path:
            return True
    return False


def score_path(path: str) -> int:
    lower = path.lower()
    parts = PurePosixPath(lower).parts
    name = parts[-1] if parts else ""
    ext = PurePosixPath(name).suffix

    # Hard excludes win over every other signal.
    if any(part in EXCLUDED_DIRS for part in parts[:-1]):
        return EXCLUDED_SCORE
    if not is_code_file(lower):
        return EXCLUDED_SCORE

    if ext == ".lock" or name in LOCK_FILE_NAMES:
        return NEAR_EXCLUDED_SCORE
    if lower.startswith(("gen/", "docs/")) or "example" in lower:
        return NEAR_EXCLUDED_SCORE

    score = BASE_SCORE

    if lower.startswith(CORE_DIR_PREFIXES):
        score += 20
    if lower.startswith(ENTRYPOINT_DIR_PREFIXES):
        score += 15

    if ext in SOURCE_EXTENSIONS:
        score += 50
    elif ext in SCRIPT_EXTENSIONS:
        score += 20
    elif ext in CONFIG_EXTENSIONS or name == "dockerfile":
        score += 5
    elif ext in PROSE_EXTENSIONS:
        score += 2

    # Keep tests eligible without letting them crowd out the code they test.
    if is_test_file(lower):
        score -= 5

    return score


def select_paths(tree: list[str], chunks_per_repo: int, exclude: list[str] | None = None) -> list[str]:
    """Return the ``chunks_per_repo`` highest-scoring paths of a tree.

    Zero-score and user-excluded paths are dropped. The sort is stable, so
    equal scores keep their tree-listing order, which makes the selection
    reproducible for a given commit.
    """
    if chunks_per_repo <= 0:
        return []
    patterns = exclude or []
    scored = []
    for path in tree:
        if patterns and is_excluded(path, patterns):
            continue
        score = score_path(path)
        if score > 0:
            scored.append((path, score))
    scored.sort(key=lambda item: item[1], reverse=True)
    return [path for path, _ in scored[:chunks_per_repo]]


def guess_language(path: str) -> str:
    return _LANGUAGES.get(PurePosixPath(path.lower()).suffix, "Unknown")
