"""Word (.docx) export of a processed meeting."""
import io
from typing import Any, Dict, List

from docx import Document

from meeting_agents.pipeline.jobs import Job
from meeting_agents.stages.base import ANALYSIS, PLANNING, SUMMARY, TRACKING, TRANSCRIPTION

REPORT_TITLE = "Meeting Report"


def _bullets(doc: Any, items: List[str]) -> None:
    for item in items:
        doc.add_paragraph(str(item), style="List Bullet")


def _transcription_section(doc: Any, payload: Dict[str, Any]) -> None:
    doc.add_heading("Transcription", level=1)
    if payload.get("degraded"):
        doc.add_paragraph("Placeholder transcript: the speech engine failed on this recording.")
    doc.add_paragraph(payload.get("text") or "")


def _summary_section(doc: Any, payload: Dict[str, Any]) -> None:
    doc.add_heading("Summary", level=1)
    doc.add_paragraph(payload.get("executive") or "")
    if payload.get("key_points"):
        doc.add_heading("Key points", level=2)
        _bullets(doc, payload["key_points"])
    if payload.get("questions_and_answers"):
        doc.add_heading("Questions and answers", level=2)
        for qa in payload["questions_and_answers"]:
            p = doc.add_paragraph(style="List Bullet")
            p.add_run(qa.get("question", "")).bold = True
            p.add_run(f"\n{qa.get('answer', '')}")
    if payload.get("objectives"):
        doc.add_heading("Objectives", level=2)
        _bullets(doc, payload["objectives"])


def _analysis_section(doc: Any, payload: Dict[str, Any]) -> None:
    doc.add_heading("Analysis", level=1)
    topics = payload.get("key_topics") or []
    if topics:
        doc.add_heading("Key topics", level=2)
        doc.add_paragraph(", ".join(t.get("term", "") for t in topics))
    sentiment = payload.get("sentiment") or {}
    doc.add_heading("Sentiment", level=2)
    doc.add_paragraph(
        f"Score {sentiment.get('score', 0):.2f} "
        f"({sentiment.get('positive_count', 0)} positive / {sentiment.get('negative_count', 0)} negative words)"
    )
    for title, key in (("Questions", "questions"), ("Objectives", "objectives"), ("Tasks", "tasks")):
        items = payload.get(key) or []
        if items:
            doc.add_heading(title, level=2)
            _bullets(doc, [i.get("text", "") for i in items])


def _tracking_section(doc: Any, payload: Dict[str, Any]) -> None:
    tasks = payload.get("tasks") or []
    if not tasks:
        return
    doc.add_heading("Tasks", level=1)
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"
    for cell, label in zip(table.rows[0].cells, ("Task", "Assignee", "Due date", "Status")):
        cell.text = label
    for task in tasks:
        row = table.add_row().cells
        row[0].text = task.get("text", "")
        row[1].text = task.get("assignee", "")
        row[2].text = task.get("due_date") or "-"
        row[3].text = task.get("status", "")


def _plan_section(doc: Any, payload: Dict[str, Any]) -> None:
    doc.add_heading("Action plan", level=1)
    doc.add_paragraph(payload.get("name", ""))
    if payload.get("description"):
        doc.add_paragraph(payload["description"])
    doc.add_paragraph(f"From {payload.get('start_date')} to {payload.get('end_date')}")
    gantt_tasks = (payload.get("gantt_data") or {}).get("tasks") or []
    if not gantt_tasks:
        return
    table = doc.add_table(rows=1, cols=5)
    table.style = "Table Grid"
    for cell, label in zip(table.rows[0].cells, ("Task", "Start", "End", "Progress", "Assignee")):
        cell.text = label
    for task in gantt_tasks:
        row = table.add_row().cells
        row[0].text = task.get("text", "")
        row[1].text = str(task.get("start_date", ""))
        row[2].text = str(task.get("end_date", ""))
        row[3].text = f"{float(task.get('progress', 0)) * 100:.0f}%"
        row[4].text = task.get("assignee", "")


_SECTIONS = (
    (TRANSCRIPTION, _transcription_section),
    (SUMMARY, _summary_section),
    (ANALYSIS, _analysis_section),
    (TRACKING, _tracking_section),
    (PLANNING, _plan_section),
)


def build_meeting_report(job: Job) -> bytes:
    """Render the job's successful stages into a .docx document. Failed stages are listed with their error."""
    data = job.to_dict()
    doc = Document()
    doc.add_heading(REPORT_TITLE, level=0)
    doc.add_paragraph(f"Meeting: {data['job_id']}")
    doc.add_paragraph(f"Date: {data['created_at'][:10]}")
    doc.add_paragraph(f"Audio: {data['audio_file']}")

    failures = []
    for stage, render in _SECTIONS:
        result = data["stages"].get(stage)
        if result is None:
            continue
        if not result["success"]:
            failures.append(f"{stage}: {result.get('error') or 'failed'}")
            continue
        render(doc, result["payload"] or {})

    if failures:
        doc.add_heading("Stages with errors", level=1)
        _bullets(doc, failures)

    buffer = io.BytesIO()
    doc.save(buffer)
    return buffer.getvalue()
