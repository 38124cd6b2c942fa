"""
ChartMind - Secure SOAP Note Backend

A FastAPI-based relay that transcribes uploaded clinical audio with OpenAI
Whisper and turns the transcription into a structured SOAP note.
"""

__version__ = "1.0.0"
__author__ = "ChartMind"
