import asyncio

from conftest import SAMPLE_TEXT, FakeRemote, StubClassifier
from meeting_agents.core.errors import RemoteResponseError
from meeting_agents.stages.analysis import AnalysisStage


def _run(stage, transcript):
    return asyncio.run(stage.run(transcript))


def test_local_analysis_classifies_sentences(cfg):
    result = _run(AnalysisStage(StubClassifier(), None, cfg), SAMPLE_TEXT)
    assert result.success is True
    assert result.metadata["service_used"] == "local"
    analysis = result.payload
    assert [q.text for q in analysis.questions] == ["When is the launch date?"]
    assert [o.text for o in analysis.objectives] == ["Our objective is to launch new product line this year."]
    assert [t.text for t in analysis.tasks] == [
        "Launch new product line website assigned to Maria.",
        "Send the budget proposal 15/03/2025.",
    ]
    assert analysis.key_topics and analysis.key_topics[0].term == "launch"
    assert analysis.sentiment.positive_count >= 1


def test_question_gets_the_next_sentence_as_answer(cfg):
    analysis = _run(AnalysisStage(StubClassifier(), None, cfg), SAMPLE_TEXT).payload
    assert analysis.questions[0].answer == "The launch is planned for next month."
    assert analysis.answers[0].question == "When is the launch date?"


def test_answer_sentence_is_still_classified(cfg):
    text = "Who will send it? Send the report to finance. Thanks."
    analysis = _run(AnalysisStage(StubClassifier(), None, cfg), text).payload
    assert analysis.questions[0].answer == "Send the report to finance."
    assert [t.text for t in analysis.tasks] == ["Send the report to finance."]


def test_low_confidence_sentences_are_unclassified(cfg):
    text = "We maybe should do this later. Nothing else to add here."
    analysis = _run(AnalysisStage(StubClassifier(), None, cfg), text).payload
    assert analysis.tasks == []


def test_segmented_transcript_is_accepted(cfg):
    result = _run(AnalysisStage(StubClassifier(), None, cfg), {"segments": [{"text": "Send the invoice today."}]})
    assert result.success is True
    assert len(result.payload.tasks) == 1


def test_too_short_text_fails(cfg):
    result = _run(AnalysisStage(StubClassifier(), None, cfg), "  Hi.  ")
    assert result.success is False
    assert "too short" in result.error
    assert result.payload is None


def test_remote_analysis_is_used_when_valid(cfg):
    remote = FakeRemote(analyze={"questions": [{"text": "Budget?"}], "tasks": [{"text": "Ship it"}]})
    result = _run(AnalysisStage(StubClassifier(), remote, cfg), SAMPLE_TEXT)
    assert result.metadata["service_used"] == "remote"
    assert [t.text for t in result.payload.tasks] == ["Ship it"]


def test_remote_schema_mismatch_falls_back_to_local(cfg):
    remote = FakeRemote(analyze={"questions": "not a list"})
    result = _run(AnalysisStage(StubClassifier(), remote, cfg), SAMPLE_TEXT)
    assert result.success is True
    assert result.metadata["service_used"] == "local"
    assert remote.calls == ["analyze"]


def test_empty_remote_analysis_falls_back_to_local(cfg):
    remote = FakeRemote(analyze={})
    result = _run(AnalysisStage(StubClassifier(), remote, cfg), SAMPLE_TEXT)
    assert result.success is True
    assert result.metadata["service_used"] == "local"
    assert remote.calls == ["analyze"]
    assert [q.text for q in result.payload.questions] == ["When is the launch date?"]
    assert len(result.payload.tasks) == 2


def test_remote_error_falls_back_to_local(cfg):
    remote = FakeRemote(analyze=RemoteResponseError("not JSON"))
    result = _run(AnalysisStage(StubClassifier(), remote, cfg), SAMPLE_TEXT)
    assert result.metadata["service_used"] == "local"


def test_classifier_crash_fails_the_stage(cfg):
    class Broken:
        def classify(self, sentence):
            raise RuntimeError("model not loaded")

    result = _run(AnalysisStage(Broken(), None, cfg), SAMPLE_TEXT)
    assert result.success is False
    assert "model not loaded" in result.error
