"""
watcher/guardrails.py — Input validation and target safety checks.

LAYERS COVERED:
  1. Request validation — /api/summarize needs both page versions before
     any model call is made
  2. Target URL safety  — the configured page must be a public http(s) URL

USAGE:
  from watcher.guardrails import validate_content_pair, is_safe_url, ValidationError

  try:
      previous, current = validate_content_pair(body.get("previousContent"), body.get("currentContent"))
  except ValidationError as e:
      return 400, str(e)
"""

import re


MISSING_CONTENT = "Missing content"


class ValidationError(ValueError):
    """A request is missing a required field."""


# ── Request validation ────────────────────────────────────────────────────────

def validate_content_pair(previous, current) -> tuple[str, str]:
    """
    Check that both page versions are present.

    An absent field, a non-string, or an empty string all count as missing:
    summarizing against nothing would only waste a model call.

    Returns (previous, current) unchanged.
    Raises ValidationError("Missing content") otherwise.
    """
    if not isinstance(previous, str) or not isinstance(current, str):
        raise ValidationError(MISSING_CONTENT)
    if not previous or not current:
        raise ValidationError(MISSING_CONTENT)
    return previous, current


# ── URL safety ────────────────────────────────────────────────────────────────

# Patterns that indicate an internal/unsafe URL target
_BLOCKED_HOSTS = re.compile(
    r"^(localhost|127\.\d+\.\d+\.\d+|0\.0\.0\.0"
    r"|10\.\d+\.\d+\.\d+|172\.(1[6-9]|2\d|3[01])\.\d+\.\d+"
    r"|192\.168\.\d+\.\d+|::1)$",
    re.IGNORECASE,
)


def is_safe_url(url: str) -> bool:
    """
    Return True if the URL is safe to poll.

    Blocks:
      - Empty or non-string URLs
      - Non-http/https schemes (file://, ftp://, data://, etc.)
      - Localhost and private IP ranges
    """
    if not url or not isinstance(url, str):
        return False

    url = url.strip()

    if not url.startswith(("http://", "https://")):
        return False

    try:
        without_scheme = url.split("://", 1)[1]
        host = without_scheme.split("/")[0].split(":")[0].lower()
    except (IndexError, AttributeError):
        return False

    if not host:
        return False

    if _BLOCKED_HOSTS.match(host):
        return False

    return True
