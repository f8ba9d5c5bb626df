from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from ghprofile_core.providers.base import BaseProvider, EmptyCompletionError


class OpenAIProvider(BaseProvider):
    MODEL = "gpt-4o"
    # Low temperature keeps scores stable across runs of the same commit.
    TEMPERATURE = 0.2

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        endpoint: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. Install it with: pip install openai"
            )
        self.model = model or self.MODEL
        self.max_tokens = max_tokens or self.MAX_TOKENS
        self.temperature = self.TEMPERATURE if temperature is None else temperature
        self.client = _OpenAI(api_key=api_key, base_url=endpoint or None)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            raise EmptyCompletionError(f"{self.model} returned no choices")
        return response.choices[0].message.content or ""
