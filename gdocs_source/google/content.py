"""
gdocs-source - Docs JSON to Content Tree

Flattens the structural elements of a Google Docs API document into the
block list consumed by convert_to_markdown().

Mapping:
    TITLE, HEADING_1..6    → heading blocks
    other paragraphs       → paragraph blocks (runs keep their styling)
    bulleted paragraphs    → one list block per run of consecutive bullets
    image-only paragraphs  → image blocks {img: {source, alt, title}}
    horizontal rules       → hr blocks
    tables                 → table blocks of cell runs

Empty paragraphs, section breaks and tables of contents produce nothing.

Version: 0.1.0
"""

from typing import Any, Dict, List, Mapping, Optional

__all__ = ['docs_to_content']

_HEADING_LEVELS = {
    'TITLE': 1,
    'SUBTITLE': 2,
    'HEADING_1': 1,
    'HEADING_2': 2,
    'HEADING_3': 3,
    'HEADING_4': 4,
    'HEADING_5': 5,
    'HEADING_6': 6,
}

_MONOSPACE_FONTS = {
    'consolas',
    'courier',
    'courier new',
    'inconsolata',
    'roboto mono',
    'source code pro',
    'ubuntu mono',
}

_UNORDERED_GLYPHS = {'GLYPH_TYPE_UNSPECIFIED', 'NONE'}

_STYLE_KEYS = ('bold', 'italic', 'strikethrough', 'code', 'link')


def docs_to_content(document: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Convert a Docs API document into a content tree.

    Args:
        document: Response of documents().get()

    Returns:
        List of typed blocks
    """
    builder = _ContentBuilder(document)
    for element in _body_of(document):
        builder.add(element)
    builder.flush_list()
    return builder.blocks


def _body_of(document: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    body = document.get('body')
    if body is None:
        # documents fetched with includeTabsContent carry the body per tab
        tabs = document.get('tabs') or []
        if tabs:
            body = tabs[0].get('documentTab', {}).get('body')
    return (body or {}).get('content') or []


class _ContentBuilder:

    def __init__(self, document: Mapping[str, Any]):
        self.inline_objects = document.get('inlineObjects') or {}
        self.positioned_objects = document.get('positionedObjects') or {}
        self.lists = document.get('lists') or {}
        self.blocks: List[Dict[str, Any]] = []
        self._list_id: Optional[str] = None
        self._list_stack: List[List[Dict[str, Any]]] = []

    def add(self, element: Mapping[str, Any]) -> None:
        if not isinstance(element, Mapping):
            return
        if 'paragraph' in element:
            self._paragraph(element['paragraph'])
        elif 'table' in element:
            self.flush_list()
            self._table(element['table'])
        elif 'tableOfContents' in element:
            self.flush_list()

    # ==========================================================================
    # PARAGRAPHS
    # ==========================================================================

    def _paragraph(self, paragraph: Mapping[str, Any]) -> None:
        runs = self._runs(paragraph.get('elements') or [])
        has_rule = any('horizontalRule' in e for e in paragraph.get('elements') or [])
        floating = [
            self._embedded_image(self.positioned_objects.get(object_id), 'positionedObjectProperties')
            for object_id in paragraph.get('positionedObjectIds') or []
        ]
        floating = [image for image in floating if image]

        bullet = paragraph.get('bullet')
        if bullet:
            if runs:
                self._list_item(bullet, runs)
        else:
            self.flush_list()
            style = (paragraph.get('paragraphStyle') or {}).get('namedStyleType', 'NORMAL_TEXT')
            self._emit_text(style, runs)

        for image in floating:
            self.blocks.append({'type': 'image', 'img': image})
        if has_rule:
            self.flush_list()
            self.blocks.append({'type': 'hr'})

    def _emit_text(self, style: str, runs: List[Dict[str, Any]]) -> None:
        if not runs:
            return

        if all('img' in run for run in runs):
            for run in runs:
                self.blocks.append({'type': 'image', 'img': run['img']})
            return

        level = _HEADING_LEVELS.get(style)
        if level is not None:
            self.blocks.append({'type': 'heading', 'level': level, 'runs': runs})
        else:
            self.blocks.append({'type': 'paragraph', 'runs': runs})

    def _runs(self, elements: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        runs: List[Dict[str, Any]] = []

        for element in elements:
            if 'textRun' in element:
                text_run = element['textRun']
                text = (text_run.get('content') or '').replace('\u000b', '\n')
                if text:
                    _append_run(runs, _styled_run(text, text_run.get('textStyle') or {}))
            elif 'inlineObjectElement' in element:
                object_id = element['inlineObjectElement'].get('inlineObjectId')
                image = self._embedded_image(
                    self.inline_objects.get(object_id), 'inlineObjectProperties'
                )
                if image:
                    runs.append({'img': image})

        # Docs terminates every paragraph with a newline
        if runs and 'text' in runs[-1]:
            runs[-1]['text'] = runs[-1]['text'].rstrip('\n')
            if not runs[-1]['text']:
                runs.pop()

        if not any('img' in run or run['text'].strip() for run in runs):
            return []
        return runs

    def _embedded_image(
        self,
        obj: Optional[Mapping[str, Any]],
        properties_key: str
    ) -> Optional[Dict[str, Any]]:
        if not obj:
            return None
        embedded = (obj.get(properties_key) or {}).get('embeddedObject') or {}
        source = (embedded.get('imageProperties') or {}).get('contentUri')
        if not source:
            return None
        return {
            'source': source,
            'alt': embedded.get('description') or embedded.get('title') or '',
            'title': embedded.get('title'),
        }

    # ==========================================================================
    # LISTS
    # ==========================================================================

    def _list_item(self, bullet: Mapping[str, Any], runs: List[Dict[str, Any]]) -> None:
        list_id = bullet.get('listId')
        level = int(bullet.get('nestingLevel') or 0)

        if list_id != self._list_id:
            self.flush_list()
            root: List[Dict[str, Any]] = []
            self.blocks.append({'type': 'list', 'ordered': self._is_ordered(list_id, 0), 'items': root})
            self._list_id = list_id
            self._list_stack = [root]

        del self._list_stack[level + 1:]
        while len(self._list_stack) < level + 1:
            depth = len(self._list_stack)
            siblings = self._list_stack[-1]
            if not siblings:
                siblings.append({'runs': []})
            parent = siblings[-1]
            parent.setdefault('items', [])
            parent['ordered'] = self._is_ordered(list_id, depth)
            self._list_stack.append(parent['items'])

        self._list_stack[-1].append({'runs': runs})

    def _is_ordered(self, list_id: Optional[str], level: int) -> bool:
        properties = (self.lists.get(list_id) or {}).get('listProperties') or {}
        levels = properties.get('nestingLevels') or []
        if level >= len(levels):
            return False
        nesting = levels[level]
        if 'glyphSymbol' in nesting:
            return False
        return nesting.get('glyphType', 'GLYPH_TYPE_UNSPECIFIED') not in _UNORDERED_GLYPHS

    def flush_list(self) -> None:
        self._list_id = None
        self._list_stack = []

    # ==========================================================================
    # TABLES
    # ==========================================================================

    def _table(self, table: Mapping[str, Any]) -> None:
        rows = []
        for row in table.get('tableRows') or []:
            rows.append([self._cell(cell) for cell in row.get('tableCells') or []])
        if rows:
            self.blocks.append({'type': 'table', 'rows': rows, 'header': True})

    def _cell(self, cell: Mapping[str, Any]) -> Dict[str, Any]:
        runs: List[Dict[str, Any]] = []
        for element in cell.get('content') or []:
            paragraph = element.get('paragraph')
            if not paragraph:
                continue
            paragraph_runs = self._runs(paragraph.get('elements') or [])
            if not paragraph_runs:
                continue
            if runs:
                runs.append({'text': ' '})
            runs.extend(paragraph_runs)
        return {'runs': runs}


def _styled_run(text: str, style: Mapping[str, Any]) -> Dict[str, Any]:
    run: Dict[str, Any] = {'text': text}
    for key in ('bold', 'italic', 'strikethrough'):
        if style.get(key):
            run[key] = True

    font = ((style.get('weightedFontFamily') or {}).get('fontFamily') or '').lower()
    if font in _MONOSPACE_FONTS:
        run['code'] = True

    url = (style.get('link') or {}).get('url')
    if url:
        run['link'] = url
    return run


def _append_run(runs: List[Dict[str, Any]], run: Dict[str, Any]) -> None:
    """Append, merging into the previous run when the styling is identical."""
    if runs and 'text' in runs[-1]:
        previous = runs[-1]
        if all(previous.get(k) == run.get(k) for k in _STYLE_KEYS):
            previous['text'] += run['text']
            return
    runs.append(run)
