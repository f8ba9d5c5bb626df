"""Value types flowing through the profiling pipeline.

Every type here is created once and never mutated: RepoTarget by discovery,
FileChunk by sampling, ChunkScore/ArchReview by the LLM decoders and
RepoResult by aggregation. Rendering only reads them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class RepoTarget:
    owner: str
    name: str
    default_branch: str = ""
    stars: int = 0
    pinned: bool = False
    language: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def to_dict(self) -> dict:
        return {
            "owner": self.owner,
            "name": self.name,
            "default_branch": self.default_branch,
            "stars": self.stars,
            "pinned": self.pinned,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, d: dict) -> RepoTarget:
        return cls(
            owner=d.get("owner", ""),
            name=d.get("name", ""),
            default_branch=d.get("default_branch", ""),
            stars=d.get("stars", 0) or 0,
            pinned=bool(d.get("pinned", False)),
            language=d.get("language", ""),
        )


@dataclass(frozen=True)
class FileChunk:
    """One sampled file sent to the LLM."""

    path: str
    start_line: int
    end_line: int
    content: str
    language: str


@dataclass(frozen=True)
class Citation:
    file: str = ""
    lines: str = ""
    reason: str = ""


_SUB_SCORES = ("readability", "design", "testing", "maintainability", "idiomatic", "security")

# Six sub-scores of 0..5 each.
MAX_CHUNK_TOTAL = 30


def _as_int(value: Any, name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"Sub-score {name!r} is not a number: {value!r}")
    return int(value)


@dataclass(frozen=True)
class ChunkScore:
    """The LLM's verdict on a single chunk."""

    readability: int = 0
    design: int = 0
    testing: int = 0
    maintainability: int = 0
    idiomatic: int = 0
    security: int = 0
    notes: list[str] = field(default_factory=list)
    citations: list[Citation] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(getattr(self, name) for name in _SUB_SCORES)

    @classmethod
    def from_json(cls, data: Any) -> ChunkScore:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for a chunk score, got {type(data).__name__}")
        citations = []
        for c in data.get("citations") or []:
            if isinstance(c, dict):
                citations.append(
                    Citation(
                        file=str(c.get("file", "")),
                        lines=str(c.get("lines", "")),
                        reason=str(c.get("reason", "")),
                    )
                )
        return cls(
            **{name: _as_int(data.get(name), name) for name in _SUB_SCORES},
            notes=[str(n) for n in data.get("notes") or []],
            citations=citations,
        )


# ---------------------------------------------------------------------------
# Architecture points: the LLM returns each one either as a bare string or
# as an object. The two shapes are modelled as explicit variants.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SimpleText:
    text: str


@dataclass(frozen=True)
class DetailedPoint:
    point: str
    justification: str = ""
    severity: str = ""


ArchPoint = Union[SimpleText, DetailedPoint]


def decode_arch_point(data: Any) -> ArchPoint:
    """Decode a bare string as SimpleText, falling back to a DetailedPoint object."""
    if isinstance(data, str):
        return SimpleText(data)
    if isinstance(data, dict):
        return DetailedPoint(
            point=str(data.get("point", "")),
            justification=str(data.get("justification", "")),
            severity=str(data.get("severity", "")),
        )
    raise ValueError(f"Architecture point must be a string or an object, got {type(data).__name__}")


@dataclass(frozen=True)
class ArchStrength:
    value: ArchPoint

    @property
    def point(self) -> str:
        return self.value.text if isinstance(self.value, SimpleText) else self.value.point

    @property
    def justification(self) -> str:
        return "" if isinstance(self.value, SimpleText) else self.value.justification

    @classmethod
    def from_json(cls, data: Any) -> ArchStrength:
        return cls(decode_arch_point(data))


@dataclass(frozen=True)
class ArchConsideration:
    value: ArchPoint

    # Severity assumed when the LLM gives none.
    DEFAULT_SEVERITY = "Low"

    @property
    def point(self) -> str:
        return self.value.text if isinstance(self.value, SimpleText) else self.value.point

    @property
    def justification(self) -> str:
        return "" if isinstance(self.value, SimpleText) else self.value.justification

    @property
    def severity(self) -> str:
        if isinstance(self.value, SimpleText):
            return self.DEFAULT_SEVERITY
        return self.value.severity or self.DEFAULT_SEVERITY

    @classmethod
    def from_json(cls, data: Any) -> ArchConsideration:
        return cls(decode_arch_point(data))


@dataclass(frozen=True)
class ArchReview:
    strengths: list[ArchStrength] = field(default_factory=list)
    considerations: list[ArchConsideration] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> ArchReview:
        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object for an architecture review, got {type(data).__name__}")
        return cls(
            strengths=[ArchStrength.from_json(s) for s in data.get("arch_strengths") or []],
            considerations=[ArchConsideration.from_json(c) for c in data.get("arch_considerations") or []],
        )


@dataclass(frozen=True)
class Sample:
    url: str
    note: str


@dataclass(frozen=True)
class RepoResult:
    """Aggregate evaluation of one repository.

    ``error`` is set when the repository degraded (tree fetch failed, no
    readable files, every LLM call failed); the repository still appears in
    the report with zero/empty fields.
    """

    repo: RepoTarget
    score: int = 0
    strengths: list[str] = field(default_factory=list)
    risks: list[str] = field(default_factory=list)
    arch_strengths: list[ArchStrength] = field(default_factory=list)
    arch_considerations: list[ArchConsideration] = field(default_factory=list)
    samples: list[Sample] = field(default_factory=list)
    files: int = 0
    chunks: int = 0
    error: str | None = None
