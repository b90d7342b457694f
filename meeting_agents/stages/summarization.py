"""Stage 3: executive summary, key points, Q&A and objectives. Extractive locally, generated remotely."""
import logging
from collections import Counter
from typing import Any, List, Optional, Tuple

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InputError, RemoteResponseError
from meeting_agents.models.entities import AnalysisResult, QAPair, Summary
from meeting_agents.models.transcript import to_transcript
from meeting_agents.nlp.text import split_sentences, tokenize
from meeting_agents.services.remote_ai import RemoteAIService
from meeting_agents.stages.base import SUMMARY, StageResult, remote_then_local

logger = logging.getLogger(__name__)

NO_ANSWER = "No answer recorded"


def score_sentences(sentences: List[str]) -> List[float]:
    """Sum of document-level frequencies of each sentence's words (longer than 2 characters), divided by the
    sentence's token count."""
    frequencies = Counter(t for s in sentences for t in tokenize(s) if len(t) > 2)
    scores = []
    for sentence in sentences:
        tokens = tokenize(sentence)
        if not tokens:
            scores.append(0.0)
            continue
        scores.append(sum(frequencies[t] for t in tokens if len(t) > 2) / len(tokens))
    return scores


def top_sentences(sentences: List[str], k: int) -> List[str]:
    """Highest-scoring k sentences, returned in their original order."""
    scores = score_sentences(sentences)
    ranked: List[Tuple[int, float]] = sorted(enumerate(scores), key=lambda pair: -pair[1])[:k]
    return [sentences[i] for i, _ in sorted(ranked, key=lambda pair: pair[0])]


class SummarizationStage:
    def __init__(self, remote: Optional[RemoteAIService] = None, cfg: Optional[Settings] = None):
        self.remote = remote
        self.settings = cfg or default_settings

    def _remote(self, text: str) -> Summary:
        summary = Summary.model_validate(self.remote.summarize(text))
        if not summary.executive.strip():
            raise RemoteResponseError("Remote summary has no executive text")
        return summary

    def _key_points(self, sentences: List[str], analysis: Optional[AnalysisResult]) -> List[str]:
        limit = self.settings.key_points
        if analysis is not None and analysis.key_topics:
            points = []
            for topic in analysis.key_topics[:limit]:
                term = topic.term.lower()
                match = next((s for s in sentences if term in s.lower()), None)
                if match is not None:
                    points.append(match)
            return points
        return top_sentences(sentences, limit)

    def summarize_locally(self, text: str, analysis: Optional[AnalysisResult] = None) -> Summary:
        sentences = split_sentences(text)
        executive = " ".join(top_sentences(sentences, self.settings.summary_sentences))
        qa: List[QAPair] = []
        objectives: List[str] = []
        if analysis is not None:
            qa = [QAPair(question=q.text, answer=q.answer or NO_ANSWER) for q in analysis.questions]
            objectives = [o.text for o in analysis.objectives]
        return Summary(
            executive=executive,
            key_points=self._key_points(sentences, analysis),
            questions_and_answers=qa,
            objectives=objectives,
        )

    async def run(self, transcript: Any, analysis: Optional[AnalysisResult] = None) -> StageResult:
        """Non-fatal stage. A failure carries no payload, unlike tracking and planning."""
        try:
            text = to_transcript(transcript).text.strip()
            if not text:
                raise InputError("Transcript text is empty")

            remote_call = None
            if self.remote is not None and self.remote.is_available():
                remote_call = lambda: self._remote(text)  # noqa: E731

            summary, service = await remote_then_local(
                SUMMARY, remote_call, lambda: self.summarize_locally(text, analysis)
            )
        except Exception as e:
            logger.error("summary: failed: %s", e)
            return StageResult.failed(f"Summarization failed: {e}")
        return StageResult.ok(summary, service)
