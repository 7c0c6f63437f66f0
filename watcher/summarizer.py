"""
watcher/summarizer.py — Turn two versions of the page into a change report.

THE CORE CONCEPT:
  The detector only knows that some bytes differ. A parent wants to know
  "Math: new worksheet due Friday". The summarizer hands both versions to
  the model and asks for a structured report:

    {
      "hasChanges": true,
      "summary": "Math homework added",
      "subjects": [{"name": "Math", "changes": ["New worksheet due Friday"]}]
    }

  hasChanges=false is a legitimate answer: a rotated footer timestamp is a
  byte change the model can judge as meaningless. The poll loop records
  only hasChanges=true reports.

TOLERANT PARSING:
  Models wrap JSON in prose or markdown fences even when told not to.
  We take everything from the first "{" to the last "}" and parse that.
  Greedy on purpose: nested objects ("subjects": [{...}]) must survive.

  What comes back is untrusted, so it is coerced rather than validated:
    missing "summary"   → ""
    missing "subjects"  → []
    "hasChanges": "true" → True
    subject entries that are not objects → dropped

THREE OUTCOMES:
  1. Parsed JSON           → SummaryRecord with the model's content
  2. No usable JSON        → degraded record: hasChanges=False,
                             "Unable to parse changes", no subjects.
                             A success, not an error — the check happened.
  3. Transport/auth/limit  → SummarizeError. The caller reports it; the
                             poll loop carries on with the next tick.

USAGE:
  from watcher.summarizer import Summarizer, SummarizeError
  from llm.client import LLMClient

  summarizer = Summarizer(client=LLMClient())
  try:
      record = summarizer.summarize(previous, current)
  except SummarizeError as e:
      print(f"Model call failed: {e}")
"""

import json

from llm.client import LLMClient
from prompts.summarizer import CHANGE_SUMMARY_SYSTEM_PROMPT, CHANGE_SUMMARY_USER_PROMPT
from watcher.state import SubjectChange, SummaryRecord


class SummarizeError(Exception):
    """The model provider could not be reached or refused the request."""


class ParseError(ValueError):
    """The model answered, but not with a usable JSON object."""


# ── Summarizer ────────────────────────────────────────────────────────────────

class Summarizer:
    """
    Asks the model what changed between two versions of the page.

    One completion per call. Returns a SummaryRecord or raises SummarizeError.
    """

    def __init__(self, client: LLMClient) -> None:
        self._client = client

    def summarize(self, previous: str, current: str) -> SummaryRecord:
        """
        Summarize the difference between previous and current page content.

        Returns:
            SummaryRecord — possibly the degraded "Unable to parse changes"
            record if the model's answer held no usable JSON.

        Raises:
            SummarizeError on any failure to get an answer from the model.
        """
        user = CHANGE_SUMMARY_USER_PROMPT.format(previous=previous, current=current)

        try:
            text = self._client.complete(system=CHANGE_SUMMARY_SYSTEM_PROMPT, user=user)
        except Exception as e:
            raise SummarizeError(f"{type(e).__name__}: {e}") from e

        try:
            data = parse_change_report(text)
        except ParseError:
            return SummaryRecord.unparseable()

        return coerce_record(data)


# ── Parsing ───────────────────────────────────────────────────────────────────

def extract_json_block(text: str) -> str | None:
    """
    Return the substring from the first "{" to the last "}" inclusive.

    None if there is no "{" or no "}" after it.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    return text[start : end + 1]


def parse_change_report(text: str) -> dict:
    """
    Extract and parse the JSON object in a model response.

    Raises ParseError if there is no JSON block, it does not parse, or it
    is not an object.
    """
    block = extract_json_block(text)
    if block is None:
        raise ParseError("No JSON object in model response")

    try:
        data = json.loads(block)
    except json.JSONDecodeError as e:
        raise ParseError(f"Malformed JSON in model response: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def coerce_record(data: dict) -> SummaryRecord:
    """Coerce a parsed model answer into a SummaryRecord, never failing."""
    summary = data.get("summary")
    return SummaryRecord(
        has_changes=_coerce_bool(data.get("hasChanges")),
        summary="" if summary is None else str(summary),
        subjects=_coerce_subjects(data.get("subjects")),
    )


# ── Private helpers ───────────────────────────────────────────────────────────

def _coerce_bool(value) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _coerce_subjects(value) -> list[SubjectChange]:
    if not isinstance(value, list):
        return []

    subjects = []
    for item in value:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        changes = item.get("changes")
        if isinstance(changes, str):
            changes = [changes]
        elif not isinstance(changes, list):
            changes = []
        subjects.append(
            SubjectChange(
                name="" if name is None else str(name),
                changes=[str(c) for c in changes if c is not None],
            )
        )
    return subjects
