"""Claude API extraction client."""

from __future__ import annotations

from . import ExtractionClient, ImagePayload


class ClaudeExtractionClient(ExtractionClient):
    """Extract invoice data using Claude's vision capability."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-5-20250929",
        timeout: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key
        self._model = model

    async def _generate(self, payload: ImagePayload, instruction: str) -> str:
        if not self._api_key:
            raise ValueError(
                "Anthropic API key is not set. "
                "Check the config file or the ANTHROPIC_API_KEY environment variable."
            )

        try:
            import anthropic
        except ImportError:
            raise ImportError(
                "anthropic SDK is required: pip install 'invoscan[claude]'"
            ) from None

        content: list[dict] = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": payload.mime_type,
                    "data": payload.data,
                },
            },
            {"type": "text", "text": instruction},
        ]

        # Retries are owned by RetryController
        async with anthropic.AsyncAnthropic(
            api_key=self._api_key, max_retries=0
        ) as client:
            response = await client.messages.create(
                model=self._model,
                max_tokens=4096,
                messages=[{"role": "user", "content": content}],
            )

        return "".join(
            block.text for block in response.content if block.type == "text"
        )
