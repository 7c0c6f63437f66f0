"""
prompts/summarizer.py — Prompts for summarizing a change to the assignments page.
"""

CHANGE_SUMMARY_SYSTEM_PROMPT = """\
You are a helpful assistant that summarizes changes to a school assignments page.
Compare the previous and current versions and identify what changed.
Focus on: new assignments, changed due dates, removed items.
Format your response as JSON with this structure:
{
  "hasChanges": boolean,
  "summary": "Brief overall summary of changes",
  "subjects": [
    { "name": "Subject Name", "changes": ["change 1", "change 2"] }
  ]
}
Only include subjects that actually changed. Be concise."""

CHANGE_SUMMARY_USER_PROMPT = """\
PREVIOUS VERSION:
{previous}

---

CURRENT VERSION:
{current}"""
