"""
Sicherheitsmodule: Request-IDs, sichere Dateinamen und Redaktion von Secrets
"""

import os
import re
import secrets
import time
import uuid
from typing import Optional
from chartmind.config import settings

# OpenAI-style secret keys (sk-..., sk-proj-...)
_SECRET_KEY_PATTERN = re.compile(r"sk-[A-Za-z0-9_\-]{8,}")
REDACTED = "[REDACTED]"


class SecurityManager:
    """Zentrale Sicherheitsverwaltung"""

    def generate_request_id(self) -> str:
        """Generiert eine eindeutige Request-ID"""
        return secrets.token_urlsafe(16)

    def generate_audio_filename(self, original_filename: Optional[str]) -> str:
        """Erzeugt einen zufälligen Dateinamen, nur die Endung des Originals bleibt erhalten"""
        _, ext = os.path.splitext(original_filename or "")
        timestamp_ms = int(time.time() * 1000)
        return f"audio_{timestamp_ms}_{uuid.uuid4()}{ext.lower()}"

    def redact_secrets(self, text: Optional[str], api_key: Optional[str] = None) -> str:
        """Entfernt API-Keys aus Texten, bevor sie geloggt oder ausgeliefert werden"""
        if not text:
            return ""
        key = api_key if api_key is not None else settings.openai_api_key
        if key:
            text = text.replace(key, REDACTED)
        return _SECRET_KEY_PATTERN.sub(REDACTED, text)


# Global security manager instance
security_manager = SecurityManager()
