"""
Audio upload validation and temp-file staging
"""

import asyncio
import os
import time
from dataclasses import dataclass
from typing import Optional
from mutagen import File as MutagenFile
from fastapi import HTTPException, status, UploadFile
from chartmind.config import settings
from chartmind.core.logging import get_logger
from chartmind.core.security import security_manager

logger = get_logger(__name__)

CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class StagedAudio:
    """An uploaded audio file written to the staging directory."""
    path: str
    original_filename: str
    content_type: Optional[str]
    size_bytes: int
    duration_seconds: Optional[float] = None


class AudioStaging:
    """Stages uploaded audio on disk until it has been sent for transcription."""

    def __init__(self, directory: Optional[str] = None, max_file_size_bytes: Optional[int] = None):
        self.directory = settings.temp_dir if directory is None else directory
        self.max_file_size_bytes = (
            settings.max_file_size_bytes if max_file_size_bytes is None else max_file_size_bytes
        )
        os.makedirs(self.directory, exist_ok=True)

    def is_allowed(self, filename: Optional[str], content_type: Optional[str]) -> bool:
        """Accepts an upload if either its MIME type or its extension is allowed."""
        if content_type in settings.allowed_audio_types:
            return True
        name = (filename or "").lower()
        return any(name.endswith(ext) for ext in settings.allowed_audio_extensions)

    async def stage_upload(self, file: UploadFile) -> StagedAudio:
        """
        Validates the upload and streams it into the staging directory.
        - Rejects unsupported types before reading any data.
        - Enforces the size cap while reading.
        - Returns the staged file descriptor.
        """
        if not self.is_allowed(file.filename, file.content_type):
            logger.warning(f"Rejected upload with content type {file.content_type}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid file type. Only MP3, WAV, and M4A files are allowed.",
            )

        path = os.path.join(self.directory, security_manager.generate_audio_filename(file.filename))
        size = 0
        try:
            with open(path, "wb") as staged:
                while True:
                    chunk = await file.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if size > self.max_file_size_bytes:
                        raise HTTPException(
                            status_code=status.HTTP_400_BAD_REQUEST,
                            detail=f"File too large. Maximum size is {self.max_file_size_bytes // (1024 * 1024)}MB.",
                        )
                    staged.write(chunk)
        except Exception:
            self.cleanup(path)
            raise

        if size == 0:
            self.cleanup(path)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No audio data received.",
            )

        logger.info(f"Staged {size} bytes of audio as {os.path.basename(path)}")
        return StagedAudio(
            path=path,
            original_filename=file.filename or os.path.basename(path),
            content_type=file.content_type,
            size_bytes=size,
            duration_seconds=self._extract_duration(path),
        )

    def _extract_duration(self, file_path: str) -> Optional[float]:
        """Extracts the duration using mutagen, if the container is readable."""
        try:
            audio = MutagenFile(file_path)
        except Exception as e:
            logger.warning(f"Could not extract metadata using mutagen: {e}")
            return None
        if audio is None or not hasattr(audio.info, "length"):
            return None
        return float(audio.info.length)

    def cleanup(self, file_path: Optional[str]) -> bool:
        """Safely delete a staged file."""
        if file_path and os.path.exists(file_path):
            try:
                os.unlink(file_path)
                logger.info(f"Cleaned up temp file: {os.path.basename(file_path)}")
                return True
            except OSError as e:
                logger.error(f"Error cleaning up temp file {os.path.basename(file_path)}: {e}")
        return False

    def sweep(self, max_age_seconds: Optional[int] = None, now: Optional[float] = None) -> int:
        """Deletes staged files whose modification time is older than max_age_seconds."""
        max_age = settings.temp_file_max_age_seconds if max_age_seconds is None else max_age_seconds
        cutoff = (now if now is not None else time.time()) - max_age
        removed = 0
        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            logger.error(f"Error during scheduled cleanup: {e}")
            return 0
        for entry in entries:
            try:
                if entry.is_file() and entry.stat().st_mtime < cutoff:
                    removed += self.cleanup(entry.path)
            except OSError as e:
                logger.error(f"Error inspecting temp file {entry.name}: {e}")
        return removed

    def flush(self) -> int:
        """Deletes every staged file, used on shutdown."""
        logger.info("Cleaning up temp files before shutdown...")
        removed = 0
        try:
            entries = list(os.scandir(self.directory))
        except OSError as e:
            logger.error(f"Error during cleanup: {e}")
            return 0
        for entry in entries:
            if entry.is_file():
                removed += self.cleanup(entry.path)
        return removed

    async def run_periodic_sweep(self, interval_seconds: Optional[float] = None):
        """Sweeps the staging directory forever; cancel the task to stop it."""
        interval = settings.temp_cleanup_interval_seconds if interval_seconds is None else interval_seconds
        while True:
            await asyncio.sleep(interval)
            removed = await asyncio.to_thread(self.sweep)
            if removed:
                logger.info(f"Scheduled cleanup removed {removed} stale temp files")
