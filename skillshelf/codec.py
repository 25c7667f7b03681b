"""
skillshelf.codec

Parse and write skill documents: a ``---`` delimited YAML frontmatter block
followed by a free-form markdown body.

Only a pragmatic subset of YAML matters here. The block is loaded with
``yaml.safe_load`` and the known keys are coerced into a ``Metadata`` record;
unknown keys are ignored. Writing is hand-rolled so output stays minimal and
stable under version control: defaults are omitted and strings are quoted.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from skillshelf.errors import MalformedMetadata
from skillshelf.models import Metadata

DELIMITER = "---"
_BOM = "\ufeff"

_TRUE_WORDS = {"true", "yes", "1"}
_FALSE_WORDS = {"false", "no", "0"}

# Scalars PyYAML would read as something other than the literal text.
_RESERVED = {"true", "false", "yes", "no", "on", "off", "null", "~"}
_SPECIAL_LEADING = set("{}[]|>&!?@`%*#:-,'\"")


# --- Splitting ---
def _find_closing_delimiter(text: str) -> tuple[int, int] | None:
    """
    function_purpose: Locate the first line that is exactly ``---``.

    Returns (start, end) where ``end`` includes the trailing newline, if any.
    ``---more`` or a ``---`` in the middle of a line does not count.
    """
    search_from = 0
    while True:
        pos = text.find(DELIMITER, search_from)
        if pos == -1:
            return None
        at_line_start = pos == 0 or text[pos - 1] == "\n"
        if at_line_start:
            after = pos + len(DELIMITER)
            if after == len(text):
                return pos, after
            if text[after] == "\n":
                return pos, after + 1
        search_from = pos + 1


def split(content: str) -> tuple[str | None, str]:
    """
    function_purpose: Separate the frontmatter block from the markdown body.

    Returns (block, body). ``block`` is None when the text does not open with a
    delimiter line or never closes it; the whole text is then body.
    """
    normalized = content.replace("\r\n", "\n")
    stripped = normalized[1:] if normalized.startswith(_BOM) else normalized
    if not (stripped.startswith(DELIMITER + "\n") or stripped == DELIMITER):
        return None, normalized

    after_open = stripped[len(DELIMITER) + 1 :]
    closing = _find_closing_delimiter(after_open)
    if closing is None:
        return None, normalized

    start, end = closing
    block = after_open[:start]
    body = after_open[end:]
    if body.startswith("\n"):
        body = body[1:]
    return block, body


# --- Coercion helpers ---
def _as_bool(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_WORDS:
            return True
        if lowered in _FALSE_WORDS:
            return False
    return None


def _as_str(value: Any) -> str | None:
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def _as_tools(value: Any) -> str | None:
    if isinstance(value, list):
        items = [s for s in (_as_str(v) for v in value) if s]
        return ", ".join(items) or None
    return _as_str(value)


def _hooks_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (dict, list)):
        return yaml.safe_dump(
            value, default_flow_style=False, sort_keys=False, allow_unicode=True
        ).rstrip("\n")
    return _as_str(value)


# --- Parsing ---
def parse_metadata(block: str, path: Path | None = None) -> Metadata:
    """
    function_purpose: Turn a frontmatter block into a Metadata record.

    Raises MalformedMetadata if the YAML is invalid or is not a mapping.
    Booleans that cannot be read fall back to their defaults.
    """
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        raise MalformedMetadata(f"invalid YAML: {exc}", path) from exc

    if data is None:
        return Metadata()
    if not isinstance(data, dict):
        raise MalformedMetadata(
            "frontmatter must be a key-value mapping, not a scalar or sequence", path
        )

    disable = _as_bool(data.get("disable-model-invocation"))
    invocable = _as_bool(data.get("user-invocable"))
    return Metadata(
        display_name=_as_str(data.get("name")),
        description=_as_str(data.get("description")),
        argument_hint=_as_str(data.get("argument-hint")),
        disable_auto_invocation=False if disable is None else disable,
        user_invocable=True if invocable is None else invocable,
        allowed_tools=_as_tools(data.get("allowed-tools")),
        model_override=_as_str(data.get("model")),
        context=_as_str(data.get("context")),
        agent=_as_str(data.get("agent")),
        hooks_raw=_hooks_text(data.get("hooks")),
    )


def parse(content: str, path: Path | None = None) -> tuple[Metadata, str]:
    """
    function_purpose: Parse a whole SKILL.md (or legacy command) document.

    Files without frontmatter, or with an empty block, yield default metadata.
    """
    block, body = split(content)
    if block is None or not block.strip():
        return Metadata(), body
    return parse_metadata(block, path), body


# --- Serialization ---
_NAMED_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\x85": "\\N",
    "\u2028": "\\L",
    "\u2029": "\\P",
}

# Named escapes first; then everything PyYAML's reader would reject as non-printable.
_ESCAPE_RE = re.compile(
    r'[\\"\n\r\t\x85\u2028\u2029]'
    r"|[^\x20-\x7E\xA0-\uD7FF\uE000-\uFFFD\U00010000-\U0010FFFF]"
)


def _escape_char(match: re.Match[str]) -> str:
    ch = match.group(0)
    named = _NAMED_ESCAPES.get(ch)
    if named is not None:
        return named
    code = ord(ch)
    return f"\\x{code:02X}" if code <= 0xFF else f"\\u{code:04X}"


def _quote(value: str) -> str:
    return '"' + _ESCAPE_RE.sub(_escape_char, value) + '"'


def needs_quoting(value: str) -> bool:
    """
    function_purpose: Decide whether a plain YAML scalar would be misread.
    """
    if not value or value != value.strip():
        return True
    if value.lower() in _RESERVED or value[0] in _SPECIAL_LEADING:
        return True
    if ": " in value or " #" in value or "\n" in value or value.endswith(":"):
        return True
    try:
        return yaml.safe_load(value) != value
    except yaml.YAMLError:
        return True


def _plain_or_quoted(value: str) -> str:
    return _quote(value) if needs_quoting(value) else value


def serialize(metadata: Metadata, body: str) -> str:
    """
    function_purpose: Render Metadata + body back into a skill document.

    Only non-default fields are written. Free-text fields are always double-quoted;
    ``allowed-tools`` is written plain unless it would be misread. ``hooks`` is
    emitted verbatim as an indented block.
    """
    lines: list[str] = [DELIMITER]

    if metadata.display_name:
        lines.append(f"name: {_quote(metadata.display_name)}")
    if metadata.description:
        lines.append(f"description: {_quote(metadata.description)}")
    if metadata.argument_hint:
        lines.append(f"argument-hint: {_quote(metadata.argument_hint)}")
    if metadata.disable_auto_invocation:
        lines.append("disable-model-invocation: true")
    if not metadata.user_invocable:
        lines.append("user-invocable: false")
    if metadata.allowed_tools:
        lines.append(f"allowed-tools: {_plain_or_quoted(metadata.allowed_tools)}")
    if metadata.model_override:
        lines.append(f"model: {_quote(metadata.model_override)}")
    if metadata.context:
        lines.append(f"context: {_quote(metadata.context)}")
    if metadata.agent:
        lines.append(f"agent: {_quote(metadata.agent)}")
    if metadata.hooks_raw:
        lines.append("hooks:")
        for hook_line in metadata.hooks_raw.strip("\n").split("\n"):
            lines.append(f"  {hook_line}")

    lines.append(DELIMITER)
    lines.append("")

    trimmed_body = body.strip("\n")
    if trimmed_body:
        lines.append(trimmed_body)
        lines.append("")

    return "\n".join(lines)


__all__: list[str] = [
    "DELIMITER",
    "split",
    "parse_metadata",
    "parse",
    "serialize",
    "needs_quoting",
]
