"""Extraction client base class, call-boundary types, and factory.

A client wraps exactly one call to a hosted vision model. It never retries
and never raises for provider failures: every call returns either
:class:`Ok` with the decoded (untyped) response or :class:`Err` with a
:class:`ClientError`.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
import logging
import mimetypes
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..config import ScanConfig

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)(?:;[\w.+-]+=[\w.+-]+)*;base64,(?P<data>.*)$",
    re.DOTALL,
)
_STATUS_RE = re.compile(r"\b([45]\d\d)\b")
_RATE_LIMIT_PHRASES = ("rate limit", "too many requests", "resource exhausted")


@dataclass(frozen=True)
class ImagePayload:
    """A MIME-typed, base64-encoded image."""

    mime_type: str
    data: str

    @property
    def empty(self) -> bool:
        return not self.data.strip()

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.data)

    @classmethod
    def from_path(cls, path: str | Path) -> ImagePayload:
        data = Path(path).read_bytes()
        media_type = mimetypes.guess_type(str(path))[0] or "image/jpeg"
        return cls(media_type, base64.standard_b64encode(data).decode())


def parse_data_uri(uri: str) -> ImagePayload:
    """Split ``data:<mime>;base64,<data>`` into an :class:`ImagePayload`.

    Raises:
        ValueError: If ``uri`` is not a base64 data URI or the data
            does not decode.
    """
    m = _DATA_URI_RE.match((uri or "").strip())
    if not m:
        raise ValueError("Invoice image must be a base64 data URI (data:<mime>;base64,<data>).")
    data = re.sub(r"\s+", "", m.group("data"))
    try:
        base64.b64decode(data, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invoice image data is not valid base64: {e}") from None
    return ImagePayload(m.group("mime").lower(), data)


@dataclass(frozen=True)
class ClientError:
    """A failed provider call.

    ``status_code`` comes from the SDK exception when it carries one,
    otherwise from an HTTP-like code in the message text.
    """

    message: str
    status_code: int | None = None
    rate_limited: bool = False
    input_error: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException) -> ClientError:
        message = str(exc) or type(exc).__name__
        status = None
        for attr in ("status_code", "code"):
            value = getattr(exc, attr, None)
            if isinstance(value, int) and not isinstance(value, bool):
                status = value
                break
        if status is None:
            m = _STATUS_RE.search(message)
            if m:
                status = int(m.group(1))
        lowered = message.lower()
        rate_limited = status == 429 or any(p in lowered for p in _RATE_LIMIT_PHRASES)
        return cls(message=message, status_code=status, rate_limited=rate_limited)


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class Err:
    error: ClientError


ClientResult = Ok | Err


def parse_response_text(text: str | None) -> Any:
    """Decode the model's JSON answer.

    Markdown fences are stripped first. Text that is not JSON yields
    ``None`` so the caller sees a malformed-shape response.
    """
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    if not cleaned:
        return None
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning("Provider response is not valid JSON: %s", e)
        return None


class ExtractionClient(ABC):
    """Abstract base for one-shot structured extraction from an image."""

    def __init__(self, timeout: float | None = None) -> None:
        self._timeout = timeout

    async def extract(self, payload: ImagePayload, instruction: str) -> ClientResult:
        """Send ``payload`` and ``instruction`` to the provider once."""
        if payload.empty:
            return Err(ClientError("Missing invoice image data.", input_error=True))

        try:
            if self._timeout:
                text = await asyncio.wait_for(
                    self._generate(payload, instruction), self._timeout
                )
            else:
                text = await self._generate(payload, instruction)
        except ImportError:
            raise
        except asyncio.TimeoutError:
            return Err(ClientError(f"Provider call timed out after {self._timeout:g}s"))
        except Exception as e:
            logger.debug("Provider call failed", exc_info=True)
            return Err(ClientError.from_exception(e))

        return Ok(parse_response_text(text))

    @abstractmethod
    async def _generate(self, payload: ImagePayload, instruction: str) -> str:
        """Call the provider and return the raw text of its answer."""
        ...


def create_client(config: ScanConfig) -> ExtractionClient:
    """Create an extraction client based on configuration."""
    backend_name = config.vision.backend

    match backend_name:
        case "claude":
            from .claude import ClaudeExtractionClient

            return ClaudeExtractionClient(
                api_key=config.vision.claude.api_key,
                model=config.vision.claude.model,
                timeout=config.vision.timeout,
            )
        case "gemini":
            from .gemini import GeminiExtractionClient

            return GeminiExtractionClient(
                api_key=config.vision.gemini.api_key,
                model=config.vision.gemini.model,
                timeout=config.vision.timeout,
            )
        case _:
            raise ValueError(
                f"Unknown vision backend: {backend_name!r} "
                f"(choose claude or gemini)"
            )
