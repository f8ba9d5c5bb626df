from __future__ import annotations

from ghprofile_core.providers.base import BaseProvider, EmptyCompletionError


class AnthropicProvider(BaseProvider):
    MODEL = "claude-sonnet-4-20250514"
    TEMPERATURE = 0.2

    def __init__(
        self,
        api_key: str,
        model: str | None = None,
        endpoint: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. Install it with: pip install anthropic"
            )
        self.model = model or self.MODEL
        self.max_tokens = max_tokens or self.MAX_TOKENS
        self.temperature = self.TEMPERATURE if temperature is None else temperature
        self.client = Anthropic(api_key=api_key, base_url=endpoint or None)

    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        # Imported inside the method because the anthropic package is optional;
        # __init__ already validated it is installed before we reach here.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        if not text_blocks:
            raise EmptyCompletionError(f"{self.model} returned no text content")
        return "".join(text_blocks).strip()
