"""
SOAP note extraction from language-model replies.

The model is asked for a JSON object with ``subjective``, ``objective``,
``assessment`` and ``plan`` keys but does not always comply. Extraction is
split into three stages:

1. ``decode_reply`` tries a strict JSON decode and otherwise falls back to a
   line scan of the free text, returning a tagged ``ParsedReply``.
2. ``scan_sections`` is that line scan.
3. ``normalize_sections`` trims every section and substitutes a fixed fallback
   sentence for missing or empty ones.

``extract`` chains the stages and never raises.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from chartmind.models.responses import ClinicalNote


class Section(str, Enum):
    SUBJECTIVE = "subjective"
    OBJECTIVE = "objective"
    ASSESSMENT = "assessment"
    PLAN = "plan"

    @property
    def prefix(self) -> str:
        """Short header form, e.g. ``s:``."""
        return self.value[0] + ":"


# Enum order is the header priority order
SECTION_ORDER = tuple(Section)

FALLBACK_TEXT: Dict[Section, str] = {
    Section.SUBJECTIVE: "No subjective information identified in transcription.",
    Section.OBJECTIVE: "No objective findings documented in transcription.",
    Section.ASSESSMENT: "Assessment not clearly identified in transcription.",
    Section.PLAN: "Treatment plan not specified in transcription.",
}


@dataclass(frozen=True)
class StructuredReply:
    """The reply decoded as a JSON object."""
    sections: Dict[str, Any]


@dataclass(frozen=True)
class HeuristicReply:
    """The reply was free text; sections come from the line scan."""
    sections: Dict[str, str]


ParsedReply = Union[StructuredReply, HeuristicReply]


@dataclass
class _ScanState:
    current: Optional[Section] = None
    buffers: Dict[Section, List[str]] = field(
        default_factory=lambda: {section: [] for section in SECTION_ORDER}
    )


def match_header(line: str) -> Optional[Section]:
    """Return the section a line introduces, first match in priority order."""
    lowered = line.strip().lower()
    for section in SECTION_ORDER:
        if section.value in lowered or lowered.startswith(section.prefix):
            return section
    return None


def _inline_text(line: str, section: Section) -> str:
    """Text after a short ``S:`` marker; full-name header lines carry no body text."""
    stripped = line.strip()
    if not stripped.lower().startswith(section.prefix):
        return ""
    return stripped[len(section.prefix):].strip()


def _scan_line(state: _ScanState, line: str) -> _ScanState:
    header = match_header(line)
    if header is not None:
        state.current = header
        inline = _inline_text(line, header)
        if inline:
            state.buffers[header].append(inline)
    elif state.current is not None and line.strip():
        state.buffers[state.current].append(line.strip())
    return state


def scan_sections(text: str) -> Dict[str, str]:
    """Split free text into SOAP sections using header lines.

    Lines before the first header are dropped. A header line switches the
    current section and is otherwise consumed, except that text after a
    short ``S:``/``O:``/``A:``/``P:`` marker starts the section body.
    """
    state = _ScanState()
    for line in text.split("\n"):
        state = _scan_line(state, line)
    return {section.value: " ".join(state.buffers[section]) for section in SECTION_ORDER}


def decode_reply(text: Optional[str]) -> ParsedReply:
    if not isinstance(text, str):
        text = ""
    try:
        decoded = json.loads(text)
    except (ValueError, RecursionError):
        return HeuristicReply(scan_sections(text))
    if isinstance(decoded, dict):
        return StructuredReply(decoded)
    return HeuristicReply(scan_sections(text))


def _as_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "\n".join(_as_text(item) for item in value if item)
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def normalize_sections(sections: Mapping[str, Any]) -> ClinicalNote:
    values = {}
    for section in SECTION_ORDER:
        value = sections.get(section.value)
        text = _as_text(value).strip() if value else ""
        values[section.value] = text or FALLBACK_TEXT[section]
    return ClinicalNote(**values)


def extract(model_reply_text: Optional[str]) -> ClinicalNote:
    """Build a validated ClinicalNote from a raw model reply."""
    return normalize_sections(decode_reply(model_reply_text).sections)
