"""Combine per-chunk scores into one RepoResult."""

from __future__ import annotations

import math
from typing import Optional

from ghprofile_core.models import MAX_CHUNK_TOTAL, ArchReview, ChunkScore, FileChunk, RepoResult, RepoTarget, Sample

POSITIVE_KEYWORDS = ("well-structured", "idiomatic", "tested")
NEGATIVE_KEYWORDS = ("missing tests", "long function", "globals", "security", "concurrency")

MAX_KEYWORD_NOTES = 3
MAX_SAMPLES = 3

_TEST_WEIGHT_BONUS = 0.1
_ENTRYPOINT_WEIGHT_BONUS = 0.2


def chunk_weight(path: str) -> float:
    """1.0, plus 0.1 for test-looking paths and 0.2 for cmd/ or internal/ trees."""
    lower = path.lower()
    weight = 1.0
    if "test" in lower:
        weight += _TEST_WEIGHT_BONUS
    segments = lower.split("/")[:-1]
    if "cmd" in segments or "internal" in segments:
        weight += _ENTRYPOINT_WEIGHT_BONUS
    return weight


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _counted(chunks: list[FileChunk], scores: list[Optional[ChunkScore]]):
    # A zero total means the model gave no signal, not a score of zero.
    for chunk, score in zip(chunks, scores):
        if score is not None and score.total > 0:
            yield chunk, score


def aggregate_scores(chunks: list[FileChunk], scores: list[Optional[ChunkScore]]) -> int:
    """Weighted average of the chunk totals as a 0-100 integer.

    Returns 0 when no chunk counts.
    """
    weighted_sum = 0.0
    weight_sum = 0.0
    for chunk, score in _counted(chunks, scores):
        weight = chunk_weight(chunk.path)
        weighted_sum += score.total / MAX_CHUNK_TOTAL * weight
        weight_sum += weight
    if weight_sum == 0:
        return 0
    return min(100, max(0, round_half_up(weighted_sum / weight_sum * 100)))


def extract_keyword_notes(scores: list[Optional[ChunkScore]]) -> tuple[list[str], list[str]]:
    """Split the notes into strengths and risks by keyword.

    A note matching a positive keyword is a strength even if it also
    mentions a negative one. Each list keeps at most MAX_KEYWORD_NOTES.
    """
    strengths: list[str] = []
    risks: list[str] = []
    for score in scores:
        if score is None or score.total == 0:
            continue
        for note in score.notes:
            lower = note.lower()
            if any(k in lower for k in POSITIVE_KEYWORDS):
                if len(strengths) < MAX_KEYWORD_NOTES:
                    strengths.append(note)
            elif any(k in lower for k in NEGATIVE_KEYWORDS):
                if len(risks) < MAX_KEYWORD_NOTES:
                    risks.append(note)
    return strengths, risks


def blob_url(repo: RepoTarget, path: str) -> str:
    return f"https://github.com/{repo.owner}/{repo.name}/blob/{repo.default_branch}/{path}"


def collect_samples(repo: RepoTarget, chunks: list[FileChunk], scores: list[Optional[ChunkScore]]) -> list[Sample]:
    samples: list[Sample] = []
    for chunk, score in _counted(chunks, scores):
        if len(samples) >= MAX_SAMPLES:
            break
        if score.citations:
            samples.append(Sample(url=blob_url(repo, chunk.path), note=score.notes[0] if score.notes else ""))
    return samples


def build_repo_result(
    repo: RepoTarget,
    files: list[str],
    chunks: list[FileChunk],
    scores: list[Optional[ChunkScore]],
    arch: ArchReview | None = None,
) -> RepoResult:
    arch = arch or ArchReview()
    strengths, risks = extract_keyword_notes(scores)
    return RepoResult(
        repo=repo,
        score=aggregate_scores(chunks, scores),
        strengths=strengths,
        risks=risks,
        arch_strengths=list(arch.strengths),
        arch_considerations=list(arch.considerations),
        samples=collect_samples(repo, chunks, scores),
        files=len(files),
        chunks=len(chunks),
    )
