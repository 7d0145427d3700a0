"""Session identifier extraction from the automation webhook's response.

The webhook answers with a one-element array whose ``body`` field is a JSON
document serialized as a string. That inner document is sometimes emitted
with a stray doubled quote at the end of a string value, e.g.::

    {"SessionId": "abc123", "foo": "bar""}

Lookup order, first success wins:
1. Non-empty array -> element 0's ``body`` string.
2. Repair stray doubled quotes (see ``repair_body``).
3. Parse the repaired string; look up SessionId, sessionId, session_id, id.
4. If it still does not parse, regex-extract ``"SessionId": "..."`` from the
   unrepaired string.
5. Top-level object -> same key lookup directly on it.
"""

import json
import re
from typing import Any

from intake.logging.logger import Log
from intake.submission.exceptions import ParseError

SESSION_ID_KEYS = ("SessionId", "sessionId", "session_id", "id")

# A doubled quote is stray only when it closes a non-empty string value;
# `""` after a delimiter is a legitimate empty string and must survive.
_STRAY_QUOTE = r'(?<=[^\s:,\[{"\\])""'
_STRAY_QUOTE_BEFORE_NEWLINE = re.compile(_STRAY_QUOTE + r"(?=\r?\n)")
_STRAY_QUOTE_BEFORE_CLOSER = re.compile(_STRAY_QUOTE + r"(?=\s*[}\]])")
_SESSION_ID_PATTERN = re.compile(r'"SessionId":\s*"([^"]+)"')


def repair_body(text: str) -> str:
    """Collapse stray doubled quotes before a line end or a closing brace/bracket.

    Well-formed JSON passes through unchanged, and repairing twice gives the
    same result as repairing once.
    """
    repaired = _STRAY_QUOTE_BEFORE_NEWLINE.sub('"', text)
    return _STRAY_QUOTE_BEFORE_CLOSER.sub('"', repaired)


def find_session_id(data: Any) -> str | None:
    """Return the first usable identifier under the known keys, in priority order."""
    if not isinstance(data, dict):
        return None
    for key in SESSION_ID_KEYS:
        value = data.get(key)
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def extract_session_id(raw_text: str) -> str:
    """Extract the session identifier from a raw webhook response body.

    Raises:
        ParseError: if no identifier can be found by any method.
    """
    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError as exc:
        Log.warning(f"Webhook response is not JSON: {exc}")
        session_id = _regex_session_id(raw_text)
        if session_id is not None:
            return session_id
        raise ParseError(f"Webhook response is not valid JSON: {exc}") from exc

    if isinstance(data, list):
        if not data:
            raise ParseError("Webhook response is an empty array")
        session_id = _from_envelope_element(data[0])
    else:
        session_id = find_session_id(data)

    if session_id is None:
        raise ParseError("No session identifier found in webhook response")
    Log.info(f"Session identifier extracted: {session_id}")
    return session_id


def _from_envelope_element(element: Any) -> str | None:
    if not isinstance(element, dict):
        return None
    body = element.get("body")
    if isinstance(body, dict):
        return find_session_id(body)
    if not isinstance(body, str):
        Log.warning("Webhook envelope element has no string 'body'")
        return None

    try:
        parsed = json.loads(repair_body(body))
    except json.JSONDecodeError as exc:
        Log.warning(f"Repaired body still does not parse ({exc}); trying regex extraction")
        return _regex_session_id(body)
    return find_session_id(parsed)


def _regex_session_id(text: str) -> str | None:
    match = _SESSION_ID_PATTERN.search(text)
    if match is None:
        return None
    Log.debug("Session identifier recovered by regex")
    return match.group(1)
