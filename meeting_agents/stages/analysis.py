"""Stage 2: structured signals (questions, objectives, tasks, topics, sentiment) from transcript text."""
import logging
from typing import Any, List, Optional

from meeting_agents.core.config import Settings, settings as default_settings
from meeting_agents.core.errors import InputError, RemoteResponseError
from meeting_agents.models.entities import AnalysisResult, QAPair, Question, Sentiment, Statement, Topic
from meeting_agents.models.transcript import to_transcript
from meeting_agents.nlp.intents import OBJECTIVE, QUESTION, TASK, IntentClassifier
from meeting_agents.nlp.sentiment import score_sentiment
from meeting_agents.nlp.text import extract_key_topics, split_sentences
from meeting_agents.services.remote_ai import RemoteAIService
from meeting_agents.stages.base import ANALYSIS, StageResult, remote_then_local

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 10


class AnalysisStage:
    def __init__(
        self,
        classifier: IntentClassifier,
        remote: Optional[RemoteAIService] = None,
        cfg: Optional[Settings] = None,
    ):
        self.classifier = classifier
        self.remote = remote
        self.settings = cfg or default_settings

    def _remote(self, text: str) -> AnalysisResult:
        result = AnalysisResult.model_validate(self.remote.analyze(text))
        if not (result.questions or result.objectives or result.tasks or result.key_topics):
            raise RemoteResponseError("Remote analysis returned no questions, objectives, tasks or topics")
        return result

    def analyze_locally(self, text: str) -> AnalysisResult:
        """
        Sentence-by-sentence intent classification plus topics and sentiment.
        A sentence that follows an unanswered question becomes its answer before being classified itself.
        """
        threshold = self.settings.intent_threshold
        questions: List[Question] = []
        answers: List[QAPair] = []
        objectives: List[Statement] = []
        tasks: List[Statement] = []
        pending: Optional[Question] = None

        for sentence in split_sentences(text):
            if pending is not None and pending.answer is None:
                pending.answer = sentence
                answers.append(QAPair(question=pending.text, answer=sentence))
                pending = None

            intent, confidence = self.classifier.classify(sentence)
            if intent is None or confidence < threshold:
                continue
            confidence = round(float(confidence), 4)
            if intent == QUESTION:
                pending = Question(text=sentence, confidence=confidence)
                questions.append(pending)
            elif intent == OBJECTIVE:
                objectives.append(Statement(text=sentence, confidence=confidence))
            elif intent == TASK:
                tasks.append(Statement(text=sentence, confidence=confidence))

        return AnalysisResult(
            questions=questions,
            answers=answers,
            objectives=objectives,
            tasks=tasks,
            key_topics=[Topic(**t) for t in extract_key_topics(text, self.settings.key_topics)],
            sentiment=Sentiment(**score_sentiment(text)),
        )

    async def run(self, transcript: Any) -> StageResult:
        """Accepts raw text or any transcript shape; the text must have at least 10 characters."""
        try:
            text = to_transcript(transcript).text.strip()
            if len(text) < MIN_TEXT_LENGTH:
                raise InputError(f"Transcript text too short to analyze ({len(text)} characters)")

            remote_call = None
            if self.remote is not None and self.remote.is_available():
                remote_call = lambda: self._remote(text)  # noqa: E731

            result, service = await remote_then_local(ANALYSIS, remote_call, lambda: self.analyze_locally(text))
        except Exception as e:
            logger.error("analysis: failed: %s", e)
            return StageResult.failed(f"Analysis failed: {e}")

        logger.info(
            "analysis: %d questions, %d objectives, %d tasks, %d topics",
            len(result.questions),
            len(result.objectives),
            len(result.tasks),
            len(result.key_topics),
        )
        return StageResult.ok(result, service)
