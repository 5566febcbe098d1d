"""This module contains classes to manage the OpenAI communication"""

import logging
from collections.abc import AsyncIterator
from typing import Any, BinaryIO

from openai import AsyncOpenAI

from .config import Settings

logger = logging.getLogger(__name__)


def create_openai_client(settings: Settings) -> AsyncOpenAI:
    """Build the shared OpenAI client; failed calls are not retried."""
    return AsyncOpenAI(api_key=settings.openai_api_key, max_retries=0)


class TranscriptionService:
    """Turns an audio file into text with the OpenAI transcription API."""

    def __init__(self, client: AsyncOpenAI, model: str = "whisper-1", language: str = "pt") -> None:
        self.client = client
        self.model = model
        self.language = language

    async def transcribe(self, audio_file: BinaryIO, prompt: str) -> str:
        """Upload the audio stream with the language/prompt hints and return the text."""
        response = await self.client.audio.transcriptions.create(
            file=audio_file,
            model=self.model,
            language=self.language,
            response_format="json",
            temperature=0,
            prompt=prompt,
        )
        return response.text


class CompletionService:
    """Streams chat completions from the OpenAI API."""

    def __init__(self, client: AsyncOpenAI, model: str = "gpt-3.5-turbo-16k") -> None:
        self.client = client
        self.model = model

    async def start_completion(self, content: str, temperature: float) -> AsyncIterator[str]:
        """Open a streaming completion for a single user message.

        The request is sent before returning, so provider errors surface here
        rather than in the middle of the response body.
        """
        stream = await self.client.chat.completions.create(
            model=self.model,
            temperature=temperature,
            messages=[{"role": "user", "content": content}],
            stream=True,
        )
        return self.text_deltas(stream)

    async def text_deltas(self, stream: Any) -> AsyncIterator[str]:
        """Yield the text carried by each chunk of a completion stream.

        The provider stream is closed when the relay ends, including when the
        client goes away and the generator is closed early.
        """
        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta.content
                if delta:
                    yield delta
        finally:
            await stream.close()
