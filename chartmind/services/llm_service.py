"""
LLM Service for SOAP note generation
"""
import time
from typing import Optional
from openai import AsyncOpenAI, APIConnectionError, APIStatusError

from chartmind.config import settings
from chartmind.core.logging import get_logger, audit_logger
from chartmind.services.openai_client import build_openai_client, describe_upstream_error

logger = get_logger(__name__)

CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"

SYSTEM_PROMPT = (
    "You are a medical assistant that creates SOAP notes from patient encounter transcriptions. "
    "Always respond with valid JSON containing subjective, objective, assessment, and plan fields. "
    "Be thorough but concise, and maintain medical accuracy."
)


class LLMService:
    """Service for turning transcriptions into raw SOAP replies using a chat model."""

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.llm_model
        self.temperature = settings.llm_temperature
        self.max_tokens = settings.llm_max_tokens

    def _client(self) -> AsyncOpenAI:
        return build_openai_client(settings.llm_timeout)

    async def generate_soap_reply(self, request_id: str, transcription: str) -> str:
        """
        Ask the model for a SOAP note and return the raw content of the first choice.
        The reply is not parsed here; see note_extractor.extract.
        """
        client = self._client()
        logger.info(f"[{request_id}] Generating SOAP note with model {self.model}")
        start = time.monotonic()

        try:
            completion = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_user_prompt(transcription)},
                ],
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except (APIStatusError, APIConnectionError) as e:
            error = describe_upstream_error("SOAP generation failed", e)
            logger.error(f"[{request_id}] OpenAI SOAP API error: {error}")
            raise error from e
        finally:
            await client.close()

        audit_logger.log_external_api_call(
            request_id=request_id,
            service="openai",
            endpoint=CHAT_COMPLETIONS_ENDPOINT,
            response_status=200,
            response_time_ms=int((time.monotonic() - start) * 1000),
            model=self.model,
        )

        if not completion.choices:
            logger.warning(f"[{request_id}] Model returned no choices")
            return ""
        return completion.choices[0].message.content or ""

    def _build_user_prompt(self, transcription: str) -> str:
        """Builds the user prompt embedding the transcription"""
        return f"""Please analyze the following medical encounter transcription and create a structured SOAP note. Respond with a JSON object containing 'subjective', 'objective', 'assessment', and 'plan' fields. Each field should contain relevant medical information extracted from the transcription.

Transcription: "{transcription}"

Please provide a comprehensive SOAP note based on the medical information in the transcription. If any section lacks information from the transcription, note that appropriately."""
