"""Tests for discussions_sync.sync.frontmatter -- metadata block codec."""

import pytest

from discussions_sync.errors import InvalidDateFormat, MalformedDocument
from discussions_sync.sync import frontmatter

ARTICLE = """---
slug: hello-world
published: 01/02/2024
tags:
- go
- systems
---
Hello **world**.
"""


class TestSplit:
    def test_split_keeps_raw_block(self):
        raw, body = frontmatter.split(ARTICLE)
        assert raw.startswith("---\nslug: hello-world\n")
        assert raw.endswith("---\n")
        assert body == "Hello **world**.\n"
        assert raw + body == ARTICLE

    def test_leading_blank_lines_allowed(self):
        raw, body = frontmatter.split("\n\n---\na: 1\n---\nbody")
        assert raw == "---\na: 1\n---\n"
        assert body == "body"

    def test_bom_is_ignored(self):
        _, body = frontmatter.split("\ufeff---\na: 1\n---\nbody")
        assert body == "body"

    def test_crlf_delimiters(self):
        raw, body = frontmatter.split("---\r\na: 1\r\n---\r\nbody\r\n")
        assert raw == "---\r\na: 1\r\n---\r\n"
        assert body == "body\r\n"

    def test_text_before_block_is_malformed(self):
        with pytest.raises(MalformedDocument, match="before the opening"):
            frontmatter.split("intro\n---\na: 1\n---\n")

    def test_single_delimiter_is_malformed(self):
        with pytest.raises(MalformedDocument, match="two '---' lines"):
            frontmatter.split("---\na: 1\nno closing\n")

    def test_no_block_is_malformed(self):
        with pytest.raises(MalformedDocument):
            frontmatter.split("Just text.")

    def test_path_in_error_message(self):
        with pytest.raises(MalformedDocument, match="notes/a.md"):
            frontmatter.split("nothing", "notes/a.md")

    def test_later_delimiters_belong_to_body(self):
        text = "---\na: 1\n---\nbody\n---\nmore\n"
        _, body = frontmatter.split(text)
        assert body == "body\n---\nmore\n"


class TestParse:
    def test_parse_article(self):
        metadata, body = frontmatter.parse(ARTICLE)
        assert metadata == {
            "slug": "hello-world",
            "published": "01/02/2024",
            "tags": ["go", "systems"],
        }
        assert body == "Hello **world**.\n"

    def test_iso_dates_stay_strings(self):
        metadata, _ = frontmatter.parse("---\npublished: 2024-01-02\n---\n")
        assert metadata["published"] == "2024-01-02"

    def test_empty_block(self):
        metadata, body = frontmatter.parse("---\n---\nbody")
        assert metadata == {}
        assert body == "body"

    def test_invalid_yaml(self):
        with pytest.raises(MalformedDocument, match="invalid metadata block"):
            frontmatter.parse("---\nkey: [unclosed\n---\n")

    def test_non_mapping_block(self):
        with pytest.raises(MalformedDocument, match="must be a mapping"):
            frontmatter.parse("---\n- a\n- b\n---\n")

    def test_key_order_preserved(self):
        metadata, _ = frontmatter.parse("---\nz: 1\na: 2\nm: 3\n---\n")
        assert list(metadata) == ["z", "a", "m"]


class TestSerialize:
    def test_serialize_layout(self):
        text = frontmatter.serialize(
            {"slug": "hello-world", "published": "2024-01-02"}, "Body\n"
        )
        assert text == "---\nslug: hello-world\npublished: 2024-01-02\n---\nBody\n"

    def test_empty_metadata(self):
        assert frontmatter.serialize({}, "Body") == "---\n---\nBody"

    def test_parse_of_serialize_is_identity(self):
        metadata = {
            "slug": "s",
            "description": "Ünïcode: yes",
            "tags": ["a", "b"],
            "draft": True,
        }
        parsed, body = frontmatter.parse(frontmatter.serialize(metadata, "x"))
        assert parsed == metadata
        assert list(parsed) == list(metadata)
        assert body == "x"

    def test_unicode_not_escaped(self):
        assert "Ünïcode" in frontmatter.dump_metadata({"d": "Ünïcode"})


class TestReplaceBody:
    def test_block_kept_byte_for_byte(self):
        text = "---\nslug:   spaced   # comment\npublished: '2024-01-02'\n---\nold\n"
        result = frontmatter.replace_body(text, "new\n")
        assert result == "---\nslug:   spaced   # comment\npublished: '2024-01-02'\n---\nnew\n"

    def test_block_without_trailing_newline(self):
        assert frontmatter.replace_body("---\na: 1\n---", "body") == "---\na: 1\n---\nbody"


class TestUpdateMetadata:
    def test_changes_merged_in_order(self):
        text = "---\nslug: s\npublished: 01/02/2024\n---\nbody\n"
        result = frontmatter.update_metadata(
            text, {"published": "02/03/2024", "tags": ["x"]}
        )
        metadata, body = frontmatter.parse(result)
        assert list(metadata) == ["slug", "published", "tags"]
        assert metadata["published"] == "02/03/2024"
        assert body == "body\n"

    def test_removals(self):
        text = "---\nslug: s\nseries: old\ndraft: true\n---\nbody"
        result = frontmatter.update_metadata(text, {}, removals=["series", "draft"])
        metadata, _ = frontmatter.parse(result)
        assert metadata == {"slug": "s"}

    def test_removing_missing_key_is_noop(self):
        text = "---\nslug: s\n---\nbody"
        metadata, _ = frontmatter.parse(
            frontmatter.update_metadata(text, {}, removals=["series"])
        )
        assert metadata == {"slug": "s"}


class TestDates:
    def test_to_remote(self):
        assert frontmatter.to_remote_date("01/02/2024") == "2024-01-02"

    def test_to_local(self):
        assert frontmatter.to_local_date("2024-01-02") == "01/02/2024"

    def test_round_trip(self):
        value = "12/31/1999"
        assert frontmatter.to_local_date(frontmatter.to_remote_date(value)) == value

    def test_components_not_padded(self):
        assert frontmatter.to_remote_date("1/2/2024") == "2024-1-2"

    @pytest.mark.parametrize("value", ["2024-01", "01/02", "a-b-c-d", "--", ""])
    def test_wrong_component_count(self, value):
        with pytest.raises(InvalidDateFormat):
            frontmatter.to_local_date(value)

    def test_wrong_separator(self):
        with pytest.raises(InvalidDateFormat, match="separated by '/'"):
            frontmatter.to_remote_date("2024-01-02")

    def test_non_string(self):
        with pytest.raises(InvalidDateFormat):
            frontmatter.to_remote_date(20240102)

    def test_is_value_error(self):
        with pytest.raises(ValueError):
            frontmatter.to_local_date("bad")
