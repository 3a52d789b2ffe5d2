"""Generation service: multimodal prompts against an OpenAI-compatible chat API."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Union

import structlog
from openai import AsyncOpenAI

from ..config import settings
from ..exceptions import GenerationError
from ..records import Frame

logger = structlog.get_logger()

NO_FRAMES_SUMMARY = "No frames processed; nothing to summarize."

SUMMARY_PROMPT = (
    "Summarize the video in a detailed description of 3-5 sentences. "
    "Based on all the frames, keep a story line and explain what happened in "
    "the video. Describe the story, not the specific details.\n\nFrames:"
)


@dataclass
class TextPart:
    text: str


@dataclass
class ImagePart:
    data: bytes
    mime_type: str = "image/jpeg"


ContentPart = Union[TextPart, ImagePart]


def _to_openai_content(parts: list[ContentPart]) -> list[dict[str, Any]]:
    content: list[dict[str, Any]] = []
    for part in parts:
        if isinstance(part, ImagePart):
            b64 = base64.b64encode(part.data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{part.mime_type};base64,{b64}"},
            })
        else:
            content.append({"type": "text", "text": part.text})
    return content


def _extract_response_text(response: Any) -> str:
    """Text of the first choice; joins structured content parts."""
    choices = getattr(response, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        texts = []
        for part in content:
            text = part.get("text") if isinstance(part, dict) else getattr(part, "text", None)
            if isinstance(text, str) and text:
                texts.append(text)
        return "\n".join(texts).strip()
    return ""


class GenerationService:
    """Sends text and inline images to a generative model and returns its text."""

    def __init__(
        self,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        client: AsyncOpenAI | None = None,
    ):
        self.model = model or settings.LLM_MODEL
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create the OpenAI-compatible chat client."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.LLM_API_KEY,
                base_url=settings.LLM_API_BASE,
            )
        return self._client

    async def generate(self, parts: list[ContentPart]) -> str:
        """Run one generation over the given parts; raises GenerationError on no text."""
        images = sum(1 for p in parts if isinstance(p, ImagePart))
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": _to_openai_content(parts)}],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error(
                "Generation failed",
                model=self.model,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise GenerationError(f"Generation call failed: {e}") from e

        text = _extract_response_text(response)
        if not text:
            logger.warning("Generation returned no text", model=self.model)
            raise GenerationError("Generation service returned no usable text.")

        logger.info(
            "Generated answer",
            model=self.model,
            parts=len(parts),
            images=images,
            answer_length=len(text),
        )
        return text

    async def summarize(self, frames: list[Frame]) -> str:
        """Short story-line summary built from the frame descriptions only."""
        if not frames:
            return NO_FRAMES_SUMMARY

        lines = [SUMMARY_PROMPT]
        for frame in frames:
            lines.append(f"- [{frame.timestamp:.1f}s] {frame.description}")
        return await self.generate([TextPart("\n".join(lines))])
