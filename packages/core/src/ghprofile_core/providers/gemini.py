"""Gemini through Google's OpenAI-compatible endpoint.

Gemini tends to answer a request for a JSON array with a single bare object
when it only has one item to report, so list decoding wraps such objects.
"""

from __future__ import annotations

from ghprofile_core.providers.openai import OpenAIProvider

GEMINI_OPENAI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/openai/"


class GeminiProvider(OpenAIProvider):
    MODEL = "gemini-1.5-pro"
    WRAP_SINGLE_OBJECT = True

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        endpoint: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        super().__init__(
            api_key,
            model=model,
            endpoint=endpoint or GEMINI_OPENAI_ENDPOINT,
            max_tokens=max_tokens,
            temperature=temperature,
        )
