from __future__ import annotations

from pathlib import Path

import pytest

from skillshelf.codec import needs_quoting, parse, parse_metadata, serialize, split
from skillshelf.errors import MalformedMetadata
from skillshelf.models import Metadata


def test_split_basic() -> None:
    block, body = split("---\nname: a\n---\nbody")
    assert block == "name: a\n"
    assert body == "body"


def test_split_drops_one_blank_line_after_closing_delimiter() -> None:
    block, body = split('---\ndescription: "x"\n---\n\nbody\n')
    assert block == 'description: "x"\n'
    assert body == "body\n"


def test_split_stops_at_first_delimiter_line_only() -> None:
    block, body = split("---\na: 1\n---\nintro\n---\nmore")
    assert block == "a: 1\n"
    assert body == "intro\n---\nmore"


def test_split_ignores_delimiter_followed_by_text() -> None:
    block, body = split("---\na: 1\n---more\n---\nbody")
    assert block == "a: 1\n---more\n"
    assert body == "body"


def test_split_without_opening_delimiter_is_all_body() -> None:
    text = "hello\n---\nworld\n"
    assert split(text) == (None, text)


def test_split_without_closing_delimiter_is_all_body() -> None:
    text = "---\na: 1\nno end"
    assert split(text) == (None, text)


def test_split_normalizes_crlf_and_bom() -> None:
    assert split("---\r\na: 1\r\n---\r\nbody\r\n") == ("a: 1\n", "body\n")
    assert split("\ufeff---\na: 1\n---\nbody") == ("a: 1\n", "body")


def test_split_closing_delimiter_at_end_of_text() -> None:
    assert split("---\na: 1\n---") == ("a: 1\n", "")


def test_parse_without_frontmatter_gives_defaults() -> None:
    metadata, body = parse("# Just markdown\n")
    assert metadata == Metadata()
    assert body == "# Just markdown\n"


def test_parse_empty_block_gives_defaults() -> None:
    metadata, body = parse("---\n---\nbody")
    assert metadata == Metadata()
    assert body == "body"


def test_parse_coerces_scalars_and_booleans() -> None:
    metadata = parse_metadata(
        "name: 123\n"
        "description: true\n"
        "disable-model-invocation: YES\n"
        "user-invocable: no\n"
        "model: 4.5\n"
        "unknown-key: ignored\n"
    )
    assert metadata.display_name == "123"
    assert metadata.description == "true"
    assert metadata.disable_auto_invocation is True
    assert metadata.user_invocable is False
    assert metadata.model_override == "4.5"


def test_parse_unreadable_boolean_falls_back_to_default() -> None:
    metadata = parse_metadata("disable-model-invocation: maybe\nuser-invocable: sometimes\n")
    assert metadata.disable_auto_invocation is False
    assert metadata.user_invocable is True


def test_parse_allowed_tools_list_is_joined() -> None:
    metadata = parse_metadata("allowed-tools:\n  - Read\n  - Grep\n")
    assert metadata.allowed_tools == "Read, Grep"


def test_parse_hooks_kept_as_text() -> None:
    metadata = parse_metadata("hooks:\n  PreToolUse:\n    - matcher: Bash\n")
    assert metadata.hooks_raw is not None
    assert metadata.hooks_raw.startswith("PreToolUse:")
    assert "matcher: Bash" in metadata.hooks_raw


@pytest.mark.parametrize(
    "block",
    [
        "just a sentence\n",
        "- a\n- b\n",
        "key: [unclosed\n",
    ],
)
def test_parse_rejects_non_mapping_or_invalid_yaml(block: str) -> None:
    with pytest.raises(MalformedMetadata):
        parse_metadata(block)


def test_malformed_message_names_file(tmp_path: Path) -> None:
    path = tmp_path / "SKILL.md"
    with pytest.raises(MalformedMetadata) as excinfo:
        parse("---\n- x\n---\nbody", path)
    assert str(path) in str(excinfo.value)


def test_serialize_minimal_document() -> None:
    assert serialize(Metadata(description="x"), "body") == '---\ndescription: "x"\n---\n\nbody\n'
    assert serialize(Metadata(), "") == "---\n---\n"


def test_serialize_omits_defaults_and_writes_non_defaults() -> None:
    text = serialize(Metadata(disable_auto_invocation=True, user_invocable=False), "b")
    assert "disable-model-invocation: true\n" in text
    assert "user-invocable: false\n" in text
    assert "description" not in text
    assert "name:" not in text


def test_serialize_allowed_tools_plain_unless_ambiguous() -> None:
    assert "allowed-tools: Read, Grep\n" in serialize(Metadata(allowed_tools="Read, Grep"), "")
    assert 'allowed-tools: "yes"\n' in serialize(Metadata(allowed_tools="yes"), "")


def test_serialize_trims_surrounding_newlines_of_body() -> None:
    text = serialize(Metadata(), "\n\nbody\n\n\n")
    assert text.endswith("---\n\nbody\n")


def test_round_trip_preserves_metadata() -> None:
    metadata = Metadata(
        display_name="Demo Skill",
        description='Say "hi": then\nleave',
        argument_hint="[file]",
        disable_auto_invocation=True,
        user_invocable=False,
        allowed_tools="Read, Write",
        model_override="opus",
        context="fork",
        agent="Explore",
        hooks_raw="PreToolUse:\n- matcher: Bash",
    )
    parsed, body = parse(serialize(metadata, "# Title\n\ntext"))
    assert parsed == metadata
    assert body == "# Title\n\ntext\n"


@pytest.mark.parametrize(
    "value",
    ["", " padded", "true", "Yes", "null", "~", "#tag", "[x]", "a: b", "two\nlines", "123", "key:"],
)
def test_needs_quoting_true(value: str) -> None:
    assert needs_quoting(value)


@pytest.mark.parametrize("value", ["plain text", "Read, Grep", "Bash(git status)"])
def test_needs_quoting_false(value: str) -> None:
    assert not needs_quoting(value)


def test_split_keeps_horizontal_rule_in_body() -> None:
    block, body = split("---\nname: test\n---\n\n# Body\n\n---\n\nMore content")
    assert block == "name: test\n"
    assert body == "# Body\n\n---\n\nMore content"


@pytest.mark.parametrize(
    "value",
    [
        "bell\x07here",
        "esc\x1b[0m",
        "nul\x00byte",
        "del\x7f",
        "c1\x9bcontrol",
        "a b\x85c",
        "line\u2028sep\u2029para",
        "tab\tand\r\nnewline",
        "non-char\ufffe",
    ],
)
def test_round_trip_control_characters(value: str) -> None:
    metadata = Metadata(description=value, allowed_tools=value)
    parsed, _ = parse(serialize(metadata, "b"))
    assert parsed.description == value
    assert parsed.allowed_tools == value


def test_serialize_escapes_unprintable_characters() -> None:
    text = serialize(Metadata(description="bell\x07\x85\u2028\u2029"), "")
    assert 'description: "bell\\x07\\N\\L\\P"\n' in text
    assert "\x07" not in text
