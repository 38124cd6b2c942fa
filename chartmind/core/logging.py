"""
Strukturiertes Logging Setup für ChartMind
"""

import logging
import structlog
from datetime import datetime, timezone
from typing import Optional
from chartmind.config import settings, Environment


def setup_logging():
    """Konfiguriert strukturiertes Logging"""

    # Timestamper für konsistente Zeitstempel
    timestamper = structlog.processors.TimeStamper(fmt="ISO", utc=True)

    # Processor-Chain definieren
    processors = [
        structlog.processors.add_log_level,
        timestamper,
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.environment == Environment.DEVELOPMENT:
        # Development: Colored console output, renders exc_info itself
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Production: JSON output
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    # Structlog konfigurieren
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None):
    """Erstellt einen konfigurierten Logger"""
    return structlog.get_logger(name or __name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLogger:
    """Spezieller Logger für Audit-Events (ohne Patientendaten)"""

    def __init__(self):
        self.logger = get_logger("audit")

    def log_api_request(
        self,
        request_id: str,
        endpoint: str,
        method: str,
        user_agent: Optional[str] = None,
        ip_address: Optional[str] = None,
        **kwargs
    ):
        """Loggt API-Anfragen für Audit-Zwecke"""
        self.logger.info(
            "api_request",
            request_id=request_id,
            endpoint=endpoint,
            method=method,
            user_agent=user_agent,
            ip_address=ip_address,
            timestamp=_utc_now(),
            **kwargs
        )

    def log_audio_processing(
        self,
        request_id: str,
        audio_size_bytes: int,
        content_type: Optional[str],
        audio_duration: Optional[float] = None,
        **kwargs
    ):
        """Loggt Audio-Verarbeitungsevents"""
        self.logger.info(
            "audio_processing",
            request_id=request_id,
            audio_size_bytes=audio_size_bytes,
            content_type=content_type,
            audio_duration=audio_duration,
            timestamp=_utc_now(),
            **kwargs
        )

    def log_external_api_call(
        self,
        request_id: str,
        service: str,
        endpoint: str,
        response_status: int,
        response_time_ms: int,
        **kwargs
    ):
        """Loggt Calls zu externen APIs"""
        self.logger.info(
            "external_api_call",
            request_id=request_id,
            service=service,
            endpoint=endpoint,
            response_status=response_status,
            response_time_ms=response_time_ms,
            timestamp=_utc_now(),
            **kwargs
        )

    def log_error(
        self,
        request_id: str,
        error_type: str,
        error_message: str,
        **kwargs
    ):
        """Loggt Fehler-Events"""
        self.logger.error(
            "error_event",
            request_id=request_id,
            error_type=error_type,
            error_message=error_message,
            timestamp=_utc_now(),
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger()
