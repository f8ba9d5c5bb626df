"""Base provider implementing the Template Method pattern.

All providers share the same evaluation algorithm:
    evaluate() → complete() → _call_api()   ← only this differs per provider
               → parse_payload() → Expect.decode()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

Retry, JSON extraction, shape decoding and the per-chunk prompt live here,
so they are defined once and inherited by every provider.
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Generic, TypeVar

if TYPE_CHECKING:
    from ghprofile_core.models import FileChunk

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = 0.3
_MAX_TOKENS = 2048


class EmptyCompletionError(RuntimeError):
    """The provider answered successfully but with no choices/candidates.

    Retrying would return the same empty answer, so this is never retried.
    """


class ResponseParseError(ValueError):
    """The response text holds no JSON payload of the expected shape."""


@dataclass(frozen=True)
class Expect(Generic[T]):
    """The JSON shape a caller expects back from the model.

    ``Expect.one(ChunkScore.from_json)`` decodes a single value,
    ``Expect.many(ArchStrength.from_json)`` a list of values.
    """

    decode_item: Callable[[Any], Any]
    as_list: bool = False

    @classmethod
    def one(cls, decode_item: Callable[[Any], T]) -> Expect[T]:
        return cls(decode_item, as_list=False)

    @classmethod
    def many(cls, decode_item: Callable[[Any], T]) -> Expect[list[T]]:
        return cls(decode_item, as_list=True)

    def decode(self, data: Any, wrap_single: bool = False) -> T:
        """Decode ``data`` into the expected shape.

        The exact shape is tried first. When a list is expected but an
        object arrives, ``wrap_single`` decodes the object as one element.
        """
        try:
            if not self.as_list:
                return self.decode_item(data)
            if isinstance(data, list):
                return [self.decode_item(item) for item in data]  # type: ignore[return-value]
            if wrap_single:
                return [self.decode_item(data)]  # type: ignore[return-value]
        except (TypeError, ValueError, KeyError) as e:
            raise ResponseParseError(f"Response does not match the expected shape: {e}") from e
        raise ResponseParseError(f"Expected a JSON array, got {type(data).__name__}")


def extract_json(text: str) -> str:
    """Return the substring between the first "{" and the last "}"."""
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ResponseParseError("No JSON object braces found in response")
    return text[start : end + 1]


def parse_payload(raw: str) -> Any:
    """Parse the model's raw text into JSON, tolerating prose around it.

    First the outer markdown fence is stripped and the whole text parsed;
    if that fails, the outermost braces are extracted and parsed instead.
    """
    # Strip only the outer ```json ... ``` fence, not backticks inside string values.
    cleaned = re.sub(r"^```(?:json)?\s*", "", (raw or "").strip())
    cleaned = re.sub(r"\s*```$", "", cleaned.strip())
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        first_error = e

    try:
        return json.loads(extract_json(cleaned))
    except ResponseParseError as e:
        raise ResponseParseError(f"Failed to parse response as JSON: {first_error}") from e
    except json.JSONDecodeError as e:
        raise ResponseParseError(f"Failed to parse extracted JSON: {e}") from e


class BaseProvider(ABC):
    MAX_RETRIES: int = _MAX_RETRIES
    RETRY_BACKOFF_SECONDS: float = _RETRY_BACKOFF_SECONDS
    MAX_TOKENS: int = _MAX_TOKENS
    # When a list is expected and the model returns a single object, wrap it.
    WRAP_SINGLE_OBJECT: bool = False

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def evaluate(self, system_prompt: str, user_prompt: str, expect: Expect[T]) -> T:
        """Run one model call and decode its JSON answer into ``expect``'s shape.

        Raises the transport error after MAX_RETRIES attempts,
        EmptyCompletionError, or ResponseParseError.
        """
        raw = self.complete(system_prompt, user_prompt)
        return expect.decode(parse_payload(raw), wrap_single=self.WRAP_SINGLE_OBJECT)

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Call _call_api up to MAX_RETRIES times with linear backoff.

        Only transport-level failures are retried. An empty completion is a
        permanent failure and is re-raised at once.
        """
        last_error: Exception | None = None
        for attempt in range(1, self.MAX_RETRIES + 1):
            try:
                return self._call_api(system_prompt, user_prompt)
            except EmptyCompletionError:
                raise
            except Exception as e:
                last_error = e
                delay = self.RETRY_BACKOFF_SECONDS * attempt
                logger.warning(
                    "%s API error (attempt %d/%d): %s. Retrying in %.1fs...",
                    self.__class__.__name__,
                    attempt,
                    self.MAX_RETRIES,
                    e,
                    delay,
                )
                time.sleep(delay)

        logger.error("%s API failed after %d attempts: %s", self.__class__.__name__, self.MAX_RETRIES, last_error)
        assert last_error is not None
        raise last_error

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response.

        This is the only method subclasses must implement. It should raise
        on failure, and raise EmptyCompletionError when the response carries
        no completion at all.
        """

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    @staticmethod
    def build_chunk_prompt(owner: str, repo: str, branch: str, chunk: FileChunk) -> str:
        """Build the per-chunk user prompt; the scoring rubric is the system prompt."""
        return f"""[REPO] {owner}/{repo}@{branch}
[FILE] {chunk.path} ({chunk.language})
[LINES] {chunk.start_line}-{chunk.end_line}

[CODE]
{chunk.content}

[REQUIREMENTS]
- Output STRICT JSON: {{readability, design, testing, maintainability, idiomatic, security, notes[], citations[]}}
- Base judgments ONLY on this snippet.
- Cite concrete lines where relevant."""
