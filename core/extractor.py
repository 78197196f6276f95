"""Recover structured payloads from free-form, possibly truncated model output.

Strategies are tried in a fixed order and the first structurally valid parse
wins:

    1. direct      parse the whole text
    2. bracket     brace-match the object that opens with the expected key
    3. fence       every fenced code block, in source order
    4. truncation  drop the trailing incomplete entry and close the payload
    5. trim        everything between the first "{" and the last "}"

Every candidate goes through normalize() before json.loads().
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from core.errors import ExtractionError, ExtractionFailure, preview
from core.state import ExtractionResult, OutputFile, guess_language

logger = logging.getLogger(__name__)

_SIMPLE_ESCAPES = '"\\/bfnrt'
_CONTROL_ESCAPES = {"\n": "\\n", "\r": "\\r", "\t": "\\t", "\b": "\\b", "\f": "\\f"}
_HEX_DIGITS = "0123456789abcdefABCDEF"
_WHITESPACE = " \t\r\n"

_FENCE_RE = re.compile(r"```[\w-]*[ \t]*\n?(.*?)```", re.DOTALL)


@dataclass(frozen=True)
class PayloadSchema:
    """Shape of the JSON object a caller expects back from the model."""

    name: str
    opening: re.Pattern                 # where a bracket-matched candidate starts
    accepts: Callable[[Any], bool]      # structural check on the parsed object
    entries_key: Optional[str] = None   # list whose entries truncation repair may drop


def _accepts_files(obj):
    if not isinstance(obj, dict):
        return False
    files = obj.get("files")
    return isinstance(files, list) and all(isinstance(entry, dict) for entry in files)


FILES_SCHEMA = PayloadSchema(
    name="files",
    opening=re.compile(r"""\{\s*["']files["']\s*:\s*\["""),
    accepts=_accepts_files,
    entries_key="files",
)


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------

def normalize(text: str) -> str:
    """Rewrite near-JSON into strict JSON where the intent is unambiguous.

    Outside string literals, single-quoted keys and values become
    double-quoted and trailing commas are dropped. Inside string literals,
    raw control characters are escaped, stray backslashes are doubled and
    double quotes that cannot be the end of the string are escaped.
    Already valid JSON is returned unchanged, and normalize(normalize(s))
    equals normalize(s).
    """
    out = []
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == '"':
            i = _copy_string(text, i, '"', out)
        elif ch == "'" and _at_token_start(out):
            i = _copy_string(text, i, "'", out)
        elif ch == "," and _is_trailing_comma(text, i):
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def _skip_ws(text, i):
    while i < len(text) and text[i] in _WHITESPACE:
        i += 1
    return i


def _at_token_start(out):
    for ch in reversed(out):
        if ch in _WHITESPACE:
            continue
        return ch in "{[,:"
    return False


def _is_trailing_comma(text, i):
    i += 1
    while i < len(text) and (text[i] in _WHITESPACE or text[i] == ","):
        i += 1
    return i < len(text) and text[i] in "}]"


def _closes_string(text, i):
    """True when a quote ending at text[i - 1] is followed by JSON structure."""
    i = _skip_ws(text, i)
    if i >= len(text):
        return True
    ch = text[i]
    if ch in ":}]":
        return True
    if ch != ",":
        return False
    i = _skip_ws(text, i + 1)
    if i >= len(text):
        return True
    ch = text[i]
    if ch in "\"'{[]},-" or ch.isdigit():
        return True
    return text.startswith(("true", "false", "null"), i)


def _is_unicode_escape(text, i):
    digits = text[i:i + 4]
    return len(digits) == 4 and all(d in _HEX_DIGITS for d in digits)


def _copy_string(text, start, quote, out):
    """Copy the string literal opening at text[start] into out as strict JSON.

    Returns the index just past the closing quote, or len(text) when the
    literal is never closed.
    """
    out.append('"')
    i = start + 1
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            nxt = text[i + 1] if i + 1 < n else ""
            if quote == "'" and nxt == "'":
                out.append("'")
                i += 2
            elif nxt == "u" and _is_unicode_escape(text, i + 2):
                out.append(text[i:i + 6])
                i += 6
            elif nxt and nxt in _SIMPLE_ESCAPES:
                out.append(ch + nxt)
                i += 2
            else:
                out.append("\\\\")
                i += 1
            continue
        if ch == quote:
            if _closes_string(text, i + 1):
                out.append('"')
                return i + 1
            out.append('\\"' if quote == '"' else "'")
        elif ch == '"':
            out.append('\\"')
        elif ch in _CONTROL_ESCAPES:
            out.append(_CONTROL_ESCAPES[ch])
        elif ord(ch) < 0x20:
            out.append("\\u%04x" % ord(ch))
        else:
            out.append(ch)
        i += 1
    return n


# ---------------------------------------------------------------------------
# Scanning helpers
# ---------------------------------------------------------------------------

def find_balanced_object(text, start=0):
    """Return the end (exclusive) of the object opening at text[start].

    String literals and escapes are honoured. Returns None when the object is
    never closed.
    """
    depth = 0
    in_string = False
    escape = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def iter_fenced_blocks(text):
    """Yield the trimmed body of every fenced code block, in source order."""
    for match in _FENCE_RE.finditer(text):
        yield match.group(1).strip()


def _scan_structure(text, start):
    """Walk text from start; return (closed, entry_ends, in_string).

    entry_ends holds the index just past every object that closes directly
    inside the root object's first-level array.
    """
    stack = []
    in_string = False
    escape = False
    entry_ends = []
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escape:
                escape = False
            elif ch == "\\":
                escape = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append(ch)
        elif ch in "}]":
            if not stack:
                break
            stack.pop()
            if not stack:
                return True, entry_ends, False
            if ch == "}" and stack == ["{", "["]:
                entry_ends.append(i + 1)
    return False, entry_ends, in_string


def looks_truncated(text):
    """True when the first object in text is never closed."""
    start = text.find("{")
    if start < 0:
        return False
    closed, _, _ = _scan_structure(text, start)
    return not closed


def repair_truncated(text):
    """Cut a truncated payload back to its last complete entry and close it.

    Only removes the trailing incomplete entry; nothing is synthesised.
    Returns None when text is not truncated or has no complete entry.
    """
    start = text.find("{")
    if start < 0:
        return None
    closed, entry_ends, _ = _scan_structure(text, start)
    if closed or not entry_ends:
        return None
    return text[start:entry_ends[-1]] + "]}"


# ---------------------------------------------------------------------------
# Strategies
# ---------------------------------------------------------------------------

def _parse(candidate, schema):
    if not candidate:
        return None
    try:
        obj = json.loads(normalize(candidate))
    except (json.JSONDecodeError, RecursionError):
        return None
    return obj if schema.accepts(obj) else None


def _bracket_candidate(text, schema):
    """Normalized text from the first opening match, or None."""
    match = schema.opening.search(text)
    if not match:
        return None
    return normalize(text[match.start():])


def _direct(text, schema):
    return _parse(text.strip(), schema)


def _bracket(text, schema):
    candidate = _bracket_candidate(text, schema)
    if candidate is None:
        return None
    end = find_balanced_object(candidate)
    if end is None:
        return None
    return _parse(candidate[:end], schema)


def _fence(text, schema):
    for index, block in enumerate(iter_fenced_blocks(text)):
        if not block.startswith("{"):
            continue
        obj = _parse(block, schema)
        if obj is not None:
            logger.debug("Parsed fenced block %d as %s payload", index, schema.name)
            return obj
    return None


def _truncation(text, schema):
    candidate = _bracket_candidate(text, schema)
    if candidate is None:
        candidate = normalize(text)
    if not looks_truncated(candidate):
        return None
    repaired = repair_truncated(candidate)
    if repaired is None:
        return None
    return _parse(repaired, schema)


def _trim(text, schema):
    first = text.find("{")
    last = text.rfind("}")
    if first < 0 or last <= first:
        return None
    return _parse(text[first:last + 1], schema)


STRATEGIES = (
    ("direct", _direct),
    ("bracket", _bracket),
    ("fence", _fence),
    ("truncation", _truncation),
    ("trim", _trim),
)


def _classify_failure(text, schema, repair):
    if "{" not in text:
        return ExtractionFailure.NO_JSON_FOUND, "No JSON object found in response"
    candidate = _bracket_candidate(text, schema) or normalize(text)
    if looks_truncated(candidate):
        if repair:
            return (ExtractionFailure.TRUNCATED_UNRECOVERABLE,
                    "Response was truncated before any complete entry")
        return ExtractionFailure.TRUNCATED_UNRECOVERABLE, "Response was truncated"
    return ExtractionFailure.PARSE_ERROR, f"Could not parse response as a {schema.name} payload"


def extract_payload(text: str, schema: PayloadSchema, repair: bool = False) -> Tuple[Any, str]:
    """Run the strategies in order and return (payload, strategy_name).

    Truncation repair only runs when repair is True and the schema names an
    entries list. Raises ExtractionError when every strategy fails.
    """
    text = text or ""
    logger.debug("Extracting %s payload from %d chars", schema.name, len(text))
    for name, strategy in STRATEGIES:
        if name == "truncation" and not (repair and schema.entries_key):
            continue
        obj = strategy(text, schema)
        if obj is not None:
            logger.info("Extracted %s payload via %s strategy", schema.name, name)
            return obj, name
    kind, message = _classify_failure(text, schema, repair)
    logger.warning("Extraction failed (%s); response preview: %s", kind.value, preview(text, 200))
    raise ExtractionError(kind, message, text)


def _to_output_file(entry):
    path = entry.get("path")
    content = entry.get("content")
    path = path.strip() if isinstance(path, str) else ""
    content = content if isinstance(content, str) else ""
    return OutputFile(path=path, content=content, language=guess_language(path))


def extract_files(text: str) -> ExtractionResult:
    """Turn a "generate files" response into an ExtractionResult."""
    payload, strategy = extract_payload(text, FILES_SCHEMA, repair=True)
    truncated = strategy == "truncation"
    if truncated:
        logger.warning(
            "Response truncated; kept %d complete file(s) [%s]",
            len(payload["files"]), ExtractionFailure.TRUNCATED_RECOVERABLE.value,
        )
    files = [_to_output_file(entry) for entry in payload["files"]]
    return ExtractionResult(files=files, strategy=strategy, truncated=truncated)
