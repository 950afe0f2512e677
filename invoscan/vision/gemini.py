"""Gemini API extraction client."""

from __future__ import annotations

from . import ExtractionClient, ImagePayload


class GeminiExtractionClient(ExtractionClient):
    """Extract invoice data using Google Gemini's vision capability."""

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        timeout: float | None = None,
    ) -> None:
        super().__init__(timeout=timeout)
        self._api_key = api_key
        self._model = model

    async def _generate(self, payload: ImagePayload, instruction: str) -> str:
        if not self._api_key:
            raise ValueError(
                "Gemini API key is not set. "
                "Check the config file or the GEMINI_API_KEY environment variable."
            )

        try:
            import google.generativeai as genai
        except ImportError:
            raise ImportError(
                "google-generativeai SDK is required: pip install 'invoscan[gemini]'"
            ) from None

        genai.configure(api_key=self._api_key)
        model = genai.GenerativeModel(self._model)

        parts: list = [
            {"mime_type": payload.mime_type, "data": payload.to_bytes()},
            instruction,
        ]
        response = await model.generate_content_async(
            parts,
            generation_config={"response_mime_type": "application/json"},
        )
        return response.text
