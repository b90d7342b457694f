"""
Transcript variants. Built once where a transcript enters the pipeline (transcription output, analysis input)
so later stages read `.text` instead of sniffing shapes again.
"""
import json
import logging
from typing import Any, List, Literal, Union

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Segment(BaseModel):
    """One time-aligned piece of speech, in seconds from the start of the recording."""

    text: str
    start: float = 0.0
    end: float = 0.0


class PlainText(BaseModel):
    kind: Literal["plain"] = "plain"
    content: str = ""

    @property
    def text(self) -> str:
        return self.content


class SegmentedText(BaseModel):
    """Whisper-style output: full text plus segments. `degraded` marks a placeholder produced after an engine error."""

    kind: Literal["segmented"] = "segmented"
    content: str = ""
    segments: List[Segment] = Field(default_factory=list)
    language: str | None = None
    degraded: bool = False

    @property
    def text(self) -> str:
        if self.content:
            return self.content
        return " ".join(s.text.strip() for s in self.segments if s.text and s.text.strip())

    def to_payload(self) -> dict:
        return {
            "text": self.text,
            "segments": [s.model_dump() for s in self.segments],
            "language": self.language,
            "degraded": self.degraded,
        }


class AlternativesText(BaseModel):
    """Recognizer output with ranked alternatives per result (Google Speech style). The first alternative wins."""

    kind: Literal["alternatives"] = "alternatives"
    results: List[List[str]] = Field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join(r[0].strip() for r in self.results if r and r[0].strip())


Transcript = Union[PlainText, SegmentedText, AlternativesText]


def _from_dict(raw: dict) -> Transcript:
    if raw.get("text"):
        segments = raw.get("segments") or []
        return SegmentedText(
            content=str(raw["text"]),
            segments=[_segment(s) for s in segments if isinstance(s, dict)],
            language=raw.get("language"),
            degraded=bool(raw.get("degraded", False)),
        )
    results = raw.get("results")
    if isinstance(results, list):
        alternatives: List[List[str]] = []
        for r in results:
            alts = r.get("alternatives") if isinstance(r, dict) else None
            if isinstance(alts, list):
                alternatives.append([str(a.get("transcript", "")) for a in alts if isinstance(a, dict)])
        return AlternativesText(results=alternatives)
    segments = raw.get("segments")
    if isinstance(segments, list):
        return SegmentedText(segments=[_segment(s) for s in segments if isinstance(s, dict)])
    logger.info("Unknown transcript shape (keys=%s); stringifying", sorted(raw.keys()))
    return PlainText(content=json.dumps(raw, ensure_ascii=False))


def _segment(raw: dict) -> Segment:
    return Segment(
        text=str(raw.get("text") or ""),
        start=float(raw.get("start") or 0.0),
        end=float(raw.get("end") or 0.0),
    )


def to_transcript(raw: Any) -> Transcript:
    """Normalize any accepted transcript input into one of the three variants.
    Strings that look like JSON objects are parsed first; unrecognized shapes are stringified best-effort."""
    if isinstance(raw, (PlainText, SegmentedText, AlternativesText)):
        return raw
    if raw is None:
        return PlainText(content="")
    if isinstance(raw, str):
        stripped = raw.strip()
        if stripped.startswith("{"):
            try:
                parsed = json.loads(stripped)
            except json.JSONDecodeError:
                return PlainText(content=raw)
            if isinstance(parsed, dict):
                return _from_dict(parsed)
        return PlainText(content=raw)
    if isinstance(raw, dict):
        return _from_dict(raw)
    if isinstance(raw, list):
        # bare segment list
        if all(isinstance(s, dict) for s in raw):
            return SegmentedText(segments=[_segment(s) for s in raw])
    return PlainText(content=json.dumps(raw, ensure_ascii=False, default=str))
