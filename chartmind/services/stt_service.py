"""
Speech-to-Text Service
Uses the OpenAI Whisper transcription endpoint.
"""

import time
from typing import Optional
from openai import AsyncOpenAI, APIConnectionError, APIStatusError

from chartmind.config import settings
from chartmind.core.logging import get_logger, audit_logger
from chartmind.services.openai_client import build_openai_client, describe_upstream_error

logger = get_logger(__name__)

TRANSCRIPTIONS_ENDPOINT = "/audio/transcriptions"


class STTService:
    """Service for Speech-to-Text transcription using OpenAI Whisper."""

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.stt_model

    def _client(self) -> AsyncOpenAI:
        return build_openai_client(settings.stt_timeout)

    async def transcribe(self, request_id: str, file_path: str, filename: str) -> str:
        """
        Sends the staged audio file to the transcription endpoint and returns the text.
        """
        client = self._client()
        logger.info(f"[{request_id}] Starting transcription with model {self.model}")
        start = time.monotonic()

        try:
            with open(file_path, "rb") as audio:
                result = await client.audio.transcriptions.create(
                    model=self.model,
                    file=(filename, audio),
                    response_format="json",
                )
        except (APIStatusError, APIConnectionError) as e:
            error = describe_upstream_error("Transcription failed", e)
            logger.error(f"[{request_id}] OpenAI transcription error: {error}")
            raise error from e
        finally:
            await client.close()

        audit_logger.log_external_api_call(
            request_id=request_id,
            service="openai",
            endpoint=TRANSCRIPTIONS_ENDPOINT,
            response_status=200,
            response_time_ms=int((time.monotonic() - start) * 1000),
            model=self.model,
        )
        text = result.text or ""
        logger.info(f"[{request_id}] Transcription completed: {len(text)} characters")
        return text
