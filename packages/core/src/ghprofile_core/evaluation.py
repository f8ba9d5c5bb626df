"""Per-chunk LLM scoring of one repository."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from ghprofile_core.models import ChunkScore, FileChunk
from ghprofile_core.providers.base import BaseProvider, Expect
from ghprofile_core.utils.fanout import ErrorPolicy, fan_out

logger = logging.getLogger(__name__)

MIN_DISPATCH_DELAY = 1.0


def dispatch_delay(requests_per_minute: int) -> float:
    """Seconds between two dispatches: ``max(1s, 60s / rpm)``.

    This bounds the dispatch rate only. With several calls in flight the
    actual request rate can briefly exceed ``requests_per_minute``.
    """
    rpm = requests_per_minute if requests_per_minute > 0 else 1
    return max(MIN_DISPATCH_DELAY, 60.0 / rpm)


@dataclass
class EvaluationBatch:
    results: list[ChunkScore | None]
    first_error: BaseException | None = None

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r is not None)


def evaluate_all(
    provider: BaseProvider,
    prompt: str,
    chunks: list[FileChunk],
    owner: str,
    repo: str,
    branch: str,
    parallelism: int,
    requests_per_minute: int,
    limiter: threading.Semaphore | None = None,
    policy: ErrorPolicy = ErrorPolicy.RUN_ALL,
) -> EvaluationBatch:
    """Score every chunk with one LLM call each.

    ``results[i]`` belongs to ``chunks[i]``; a failed chunk leaves ``None``
    there and is logged, never raised.
    """
    expect = Expect.one(ChunkScore.from_json)

    def _evaluate(chunk: FileChunk) -> ChunkScore:
        user_prompt = provider.build_chunk_prompt(owner, repo, branch, chunk)
        return provider.evaluate(prompt, user_prompt, expect)

    outcome = fan_out(
        _evaluate,
        chunks,
        limit=parallelism,
        dispatch_delay=dispatch_delay(requests_per_minute),
        policy=policy,
        limiter=limiter,
    )

    for chunk, error in zip(chunks, outcome.errors):
        if error is not None:
            logger.warning("Scoring %s in %s/%s failed: %s", chunk.path, owner, repo, error)

    return EvaluationBatch(results=outcome.results, first_error=outcome.first_error)
