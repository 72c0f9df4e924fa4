"""
gdocs-source - Markdown Converter

Turns a normalized content tree into Markdown text.

Blocks are mappings in one of two shapes:

    Typed:   {"type": "paragraph", "text": "Hi"}
             {"type": "heading", "level": 2, "runs": [...]}
             {"type": "list", "ordered": False, "items": [...]}
             {"type": "table", "rows": [[...], ...], "header": True}
             {"type": "image", "img": {"source": ..., "alt": ..., "title": ...}}
             {"type": "blockquote" | "code" | "hr", ...}

    Keyed:   {"h1": "Title"}, {"p": "text"}, {"ul": [...]}, {"ol": [...]},
             {"img": {...}}, {"table": {"headers": [...], "rows": [...]}},
             {"blockquote": "..."}, {"code": {"language": ..., "content": ...}},
             {"hr": ""}

Inline text is either a string or a list of runs:
    {"text": "...", "bold": True, "italic": True, "strikethrough": True,
     "code": True, "link": "https://..."}  or  {"img": {...}}

The conversion is pure: no I/O, no shared state, and the same tree always
renders to the same bytes. Unknown block types render as a paragraph when
they carry text and are skipped otherwise.

Usage:
    from gdocs_source.markdown import convert_to_markdown

    doc = convert_to_markdown(content, metadata={"title": "Hello"})
    doc.markdown      # "Hi\\n"
    doc.render()      # YAML front matter + body

Version: 0.1.0
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence

import yaml

from .exceptions import ConversionError

__all__ = ['MarkdownDocument', 'convert_to_markdown', 'render_inline']

_HEADING_KEYS = {f"h{level}": level for level in range(1, 7)}

# metadata keys that never belong in front matter
_EXCLUDED_FRONT_MATTER = frozenset({'content', 'markdown', 'internal'})

_TABLE_PIPE = re.compile(r'(?<!\\)\|')


@dataclass
class MarkdownDocument:
    """
    Result of a conversion.

    Attributes:
        markdown: Markdown body
        front_matter: JSON-like document metadata
    """
    markdown: str
    front_matter: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_node(cls, node: Mapping[str, Any]) -> "MarkdownDocument":
        """Rebuild the document of a registered node."""
        return cls(markdown=node.get('markdown') or '', front_matter=_front_matter(node))

    def render(self) -> str:
        """Body prefixed with YAML front matter (when there is any)."""
        if not self.front_matter:
            return self.markdown
        header = yaml.safe_dump(
            self.front_matter,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
        return f"---\n{header}---\n\n{self.markdown}"


def convert_to_markdown(
    content: Optional[Sequence[Any]],
    metadata: Optional[Mapping[str, Any]] = None,
) -> MarkdownDocument:
    """
    Convert a content tree (plus document metadata) to Markdown.

    Args:
        content: List of blocks; None is treated as empty
        metadata: Document fields used as front matter

    Returns:
        MarkdownDocument with body and front matter

    Raises:
        ConversionError: If content is not a list of blocks
    """
    if content is None:
        content = []
    if isinstance(content, (str, bytes)) or not isinstance(content, Sequence):
        raise ConversionError(
            f"Content tree must be a list of blocks, got {type(content).__name__}",
            document_id=(metadata or {}).get('id'),
        )

    rendered = [_render_block(block) for block in content]
    body = "\n".join(chunk for chunk in rendered if chunk)

    return MarkdownDocument(
        markdown=body,
        front_matter=_front_matter(metadata or {}),
    )


# =============================================================================
# Blocks
# =============================================================================

def _canonical(block: Any) -> Dict[str, Any]:
    """Map a keyed (json2md-style) block onto the typed shape."""
    if isinstance(block, str):
        return {'type': 'paragraph', 'text': block}
    if not isinstance(block, Mapping):
        return {}
    if 'type' in block:
        return dict(block)

    for key, value in block.items():
        if key in _HEADING_KEYS:
            return {'type': 'heading', 'level': _HEADING_KEYS[key], 'runs': value}
        if key == 'p':
            return {'type': 'paragraph', 'runs': value}
        if key in ('ul', 'ol'):
            return {'type': 'list', 'ordered': key == 'ol', 'items': value}
        if key == 'img':
            return {'type': 'image', 'img': value}
        if key == 'table' and isinstance(value, Mapping):
            headers = value.get('headers')
            rows = list(value.get('rows') or [])
            if headers:
                return {'type': 'table', 'rows': [headers] + rows, 'header': True}
            return {'type': 'table', 'rows': rows, 'header': False}
        if key == 'blockquote':
            return {'type': 'blockquote', 'runs': value}
        if key == 'code':
            if isinstance(value, Mapping):
                return {
                    'type': 'code',
                    'language': value.get('language'),
                    'text': value.get('content', ''),
                }
            return {'type': 'code', 'text': value}
        if key == 'hr':
            return {'type': 'hr'}
    return dict(block)


def _render_block(block: Any) -> str:
    block = _canonical(block)
    kind = block.get('type')

    if kind == 'heading':
        level = _heading_level(block.get('level'))
        text = _inline_of(block)
        return f"{'#' * level} {text}\n" if text else ''
    if kind == 'paragraph':
        text = _inline_of(block)
        return f"{text}\n" if text else ''
    if kind == 'list':
        lines = _render_list(block.get('items') or [], bool(block.get('ordered')), 0)
        return "".join(lines)
    if kind == 'table':
        return _render_table(block.get('rows') or [], block.get('header', True))
    if kind == 'image':
        image = block.get('img') if isinstance(block.get('img'), Mapping) else block
        return f"{_render_image(image)}\n" if image.get('source') else ''
    if kind == 'blockquote':
        text = _inline_of(block)
        if not text:
            return ''
        return "".join(f"> {line}\n" if line else ">\n" for line in text.split("\n"))
    if kind == 'code':
        code = str(block.get('text') or '').rstrip("\n")
        language = block.get('language') or ''
        return f"```{language}\n{code}\n```\n"
    if kind == 'hr':
        return "---\n"

    # unknown block: keep its text, if any
    text = _inline_of(block)
    return f"{text}\n" if text else ''


def _heading_level(value: Any) -> int:
    try:
        level = int(value or 1)
    except (TypeError, ValueError):
        return 1
    return min(max(level, 1), 6)


def _inline_of(node: Mapping[str, Any]) -> str:
    """Inline text of a block, list item or cell, styles included."""
    if 'runs' in node:
        return render_inline(node['runs']).strip()
    return _render_run(node).strip()


def _render_list(items: Sequence[Any], ordered: bool, depth: int) -> List[str]:
    lines: List[str] = []
    indent = ' ' * depth
    index = 0
    marker = "1. " if ordered else "- "

    for item in items:
        if isinstance(item, Mapping) and item.get('type') == 'list':
            # a bare nested list attaches to the previous item
            lines.extend(_render_list(
                item.get('items') or [], bool(item.get('ordered')), depth + len(marker)
            ))
            continue

        index += 1
        marker = f"{index}. " if ordered else "- "

        if isinstance(item, Mapping):
            text = _inline_of(item)
            children = item.get('items') or []
            child_ordered = bool(item.get('ordered', ordered))
        else:
            text = render_inline(item).strip()
            children = []
            child_ordered = ordered

        lines.append(f"{indent}{marker}{text}\n")
        if children:
            lines.extend(_render_list(children, child_ordered, depth + len(marker)))

    return lines


def _render_table(rows: Sequence[Any], header: bool) -> str:
    cells = [
        [_table_cell(cell) for cell in row]
        for row in rows
        if isinstance(row, Sequence) and not isinstance(row, str)
    ]
    if not cells:
        return ''

    width = max(len(row) for row in cells)
    cells = [row + [''] * (width - len(row)) for row in cells]

    if header:
        head, body = cells[0], cells[1:]
    else:
        head, body = [''] * width, cells

    lines = [_table_row(head), _table_row(['---'] * width)]
    lines.extend(_table_row(row) for row in body)
    return "".join(lines)


def _table_row(cells: Sequence[str]) -> str:
    return "| " + " | ".join(cells) + " |\n"


def _table_cell(cell: Any) -> str:
    if isinstance(cell, Mapping):
        text = _inline_of(cell)
    else:
        text = render_inline(cell).strip()
    text = " ".join(text.split("\n"))
    return _TABLE_PIPE.sub(r'\\|', text)


# =============================================================================
# Inline
# =============================================================================

def render_inline(value: Any) -> str:
    """Render a string or a list of runs to inline Markdown."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, Mapping):
        return _render_run(value)
    if isinstance(value, Sequence):
        return "".join(render_inline(run) for run in value)
    return ''


def _render_run(run: Mapping[str, Any]) -> str:
    if isinstance(run.get('img'), Mapping):
        return _render_image(run['img'])
    if run.get('type') == 'image':
        return _render_image(run)

    text = render_inline(run.get('text', run.get('runs')))
    if not text.strip():
        return text

    # keep surrounding whitespace outside the markers
    leading = text[:len(text) - len(text.lstrip())]
    trailing = text[len(text.rstrip()):]
    core = text.strip()

    if run.get('code'):
        core = f"`{core}`"
    else:
        if run.get('bold') and run.get('italic'):
            core = f"***{core}***"
        elif run.get('bold'):
            core = f"**{core}**"
        elif run.get('italic'):
            core = f"*{core}*"
        if run.get('strikethrough'):
            core = f"~~{core}~~"

    link = run.get('link')
    if link:
        core = f"[{core}]({link})"

    return f"{leading}{core}{trailing}"


def _render_image(image: Mapping[str, Any]) -> str:
    source = image.get('source') or ''
    alt = image.get('alt') or ''
    title = image.get('title')
    if title:
        escaped = str(title).replace('"', '\\"')
        return f'![{alt}]({source} "{escaped}")'
    return f"![{alt}]({source})"


# =============================================================================
# Front matter
# =============================================================================

def _front_matter(metadata: Mapping[str, Any]) -> Dict[str, Any]:
    front: Dict[str, Any] = {}
    for key, value in metadata.items():
        if key in _EXCLUDED_FRONT_MATTER:
            continue
        if _is_plain(value):
            front[key] = _to_plain(value)
    return front


def _is_plain(value: Any) -> bool:
    """JSON-like values only; yaml.safe_dump rejects anything else."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_plain(item) for item in value)
    if isinstance(value, Mapping):
        return all(isinstance(k, str) and _is_plain(v) for k, v in value.items())
    return False


def _to_plain(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return [_to_plain(item) for item in value]
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    return value
