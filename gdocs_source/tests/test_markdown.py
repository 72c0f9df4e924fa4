"""
Tests for gdocs_source.markdown

Coverage:
    single paragraph → "Hi\\n"; empty / None tree → ""
    blocks joined by one blank line
    headings (clamped levels), lists (ordered, nested), tables, images,
    blockquotes, code fences, horizontal rules
    json2md-style keyed blocks
    inline runs: emphasis, code, links, whitespace outside markers
    unknown blocks; non-list content raises ConversionError
    conversion is deterministic
    front matter rendering
"""

import pytest
import yaml

from gdocs_source.exceptions import ConversionError
from gdocs_source.markdown import MarkdownDocument, convert_to_markdown, render_inline


def md(content) -> str:
    return convert_to_markdown(content).markdown


class TestBasics:
    def test_single_paragraph(self):
        assert md([{"type": "paragraph", "text": "Hi"}]) == "Hi\n"

    def test_empty_and_none(self):
        assert md([]) == ""
        assert md(None) == ""

    def test_plain_string_block_is_paragraph(self):
        assert md(["Hello"]) == "Hello\n"

    def test_blocks_are_separated_by_blank_line(self):
        content = [
            {"type": "heading", "level": 1, "text": "Title"},
            {"type": "paragraph", "text": "Body"},
        ]
        assert md(content) == "# Title\n\nBody\n"

    def test_non_list_content_raises(self):
        with pytest.raises(ConversionError) as exc_info:
            convert_to_markdown("not a tree", {"id": "d1"})
        assert exc_info.value.document_id == "d1"

    def test_unknown_blocks(self):
        content = [
            {"type": "callout", "text": "Note"},
            {"type": "widget", "payload": 1},
        ]
        assert md(content) == "Note\n"

    def test_conversion_is_deterministic(self):
        content = [
            {"type": "heading", "level": 2, "runs": [{"text": "A ", "bold": True}, {"text": "b"}]},
            {"type": "list", "ordered": True, "items": ["one", {"text": "two", "items": ["x"]}]},
            {"type": "table", "rows": [["h1", "h2"], ["a", "b"]]},
        ]
        assert md(content) == md(content)


class TestBlocks:
    def test_heading_levels_are_clamped(self):
        assert md([{"type": "heading", "level": 9, "text": "Deep"}]) == "###### Deep\n"
        assert md([{"type": "heading", "level": 0, "text": "Top"}]) == "# Top\n"

    def test_non_numeric_heading_level_falls_back_to_one(self):
        assert md([{"type": "heading", "level": "two", "text": "T"}]) == "# T\n"
        assert md([{"type": "heading", "level": [2], "text": "T"}]) == "# T\n"
        assert md([{"type": "heading", "level": "3", "text": "T"}]) == "### T\n"

    def test_unordered_list(self):
        assert md([{"type": "list", "items": ["a", "b"]}]) == "- a\n- b\n"

    def test_ordered_list_with_nested_items(self):
        content = [{
            "type": "list",
            "ordered": True,
            "items": [
                {"text": "first", "items": ["inner"], "ordered": False},
                "second",
            ],
        }]
        assert md(content) == "1. first\n   - inner\n2. second\n"

    def test_bare_nested_list_attaches_to_previous_item(self):
        content = [{
            "type": "list",
            "items": ["a", {"type": "list", "ordered": True, "items": ["x", "y"]}, "b"],
        }]
        assert md(content) == "- a\n  1. x\n  2. y\n- b\n"

    def test_styled_list_item(self):
        content = [{"type": "list", "items": [{"runs": [{"text": "bold", "bold": True}]}]}]
        assert md(content) == "- **bold**\n"

    def test_table(self):
        content = [{"type": "table", "rows": [["Name", "Qty"], ["a|b", 2]]}]
        assert md(content) == "| Name | Qty |\n| --- | --- |\n| a\\|b | 2 |\n"

    def test_table_without_header_and_ragged_rows(self):
        content = [{"type": "table", "header": False, "rows": [["a", "b"], ["c"]]}]
        assert md(content) == "|  |  |\n| --- | --- |\n| a | b |\n| c |  |\n"

    def test_image(self):
        content = [{"type": "image", "img": {"source": "/img/abc.png", "alt": "Alt", "title": "T"}}]
        assert md(content) == '![Alt](/img/abc.png "T")\n'

    def test_image_without_source_is_skipped(self):
        assert md([{"type": "image", "img": {"alt": "nothing"}}]) == ""

    def test_blockquote(self):
        assert md([{"type": "blockquote", "text": "a\nb"}]) == "> a\n> b\n"

    def test_code(self):
        content = [{"type": "code", "language": "python", "text": "print(1)\n"}]
        assert md(content) == "```python\nprint(1)\n```\n"

    def test_hr(self):
        assert md([{"type": "hr"}]) == "---\n"


class TestKeyedBlocks:
    def test_json2md_shapes(self):
        content = [
            {"h2": "Title"},
            {"p": "Para"},
            {"ul": ["a", "b"]},
            {"ol": ["c"]},
            {"img": {"source": "x.png", "alt": ""}},
            {"table": {"headers": ["h"], "rows": [["v"]]}},
            {"code": {"language": "sh", "content": "ls"}},
            {"hr": ""},
        ]
        assert md(content) == (
            "## Title\n\n"
            "Para\n\n"
            "- a\n- b\n\n"
            "1. c\n\n"
            "![](x.png)\n\n"
            "| h |\n| --- |\n| v |\n\n"
            "```sh\nls\n```\n\n"
            "---\n"
        )


class TestInline:
    def test_emphasis_keeps_whitespace_outside_markers(self):
        runs = [{"text": "Hello "}, {"text": "bold ", "bold": True}, {"text": "world", "italic": True}]
        assert render_inline(runs) == "Hello **bold** *world*"

    def test_bold_italic_and_strikethrough(self):
        assert render_inline([{"text": "x", "bold": True, "italic": True}]) == "***x***"
        assert render_inline([{"text": "x", "strikethrough": True}]) == "~~x~~"

    def test_code_and_link(self):
        runs = [{"text": "f()", "code": True}, {"text": " see "}, {"text": "docs", "link": "https://d"}]
        assert render_inline(runs) == "`f()` see [docs](https://d)"

    def test_inline_image(self):
        assert render_inline([{"text": "pic: "}, {"img": {"source": "a.png", "alt": "a"}}]) == "pic: ![a](a.png)"

    def test_whitespace_only_run_is_unstyled(self):
        assert render_inline([{"text": "  ", "bold": True}]) == "  "


class TestFrontMatter:
    def test_render_with_front_matter(self):
        doc = convert_to_markdown(
            [{"type": "paragraph", "text": "Hi"}],
            {"id": "d1", "title": "Hello", "tags": ("a", "b"), "content": [], "internal": {}},
        )
        rendered = doc.render()

        assert rendered.startswith("---\n")
        assert rendered.endswith("---\n\nHi\n")
        header = rendered.split("---\n")[1]
        assert yaml.safe_load(header) == {"id": "d1", "title": "Hello", "tags": ["a", "b"]}

    def test_render_without_front_matter(self):
        assert MarkdownDocument("Body\n").render() == "Body\n"

    def test_non_plain_values_are_dropped(self):
        doc = convert_to_markdown([], {"title": "T", "obj": object()})
        assert doc.front_matter == {"title": "T"}

    def test_from_node(self):
        node = {"id": "d1", "title": "T", "markdown": "Hi\n", "internal": {"content": "Hi\n"}}
        doc = MarkdownDocument.from_node(node)
        assert doc.markdown == "Hi\n"
        assert doc.front_matter == {"id": "d1", "title": "T"}
