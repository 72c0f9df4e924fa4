"""
gdocs-source - Google Docs Source

Loads Google Docs into a content graph as Markdown nodes.

Pipeline per run:
    1. Validate options (no network or graph activity on failure)
    2. Create the document collection and declare reference fields
    3. Fetch documents (authentication / listing errors are fatal)
    4. Per document: Docs API response → content tree → normalize fields →
       convert content to Markdown → register the node → create placeholder reference nodes
       (a failing document is logged and skipped)

Usage:
    from gdocs_source import GoogleDocsSource, InMemoryContentGraph

    source = GoogleDocsSource({
        "apiKey": "...",
        "clientId": "...",
        "clientSecret": "...",
        "foldersIds": ["1AbC"],
        "refs": {"author": {"typeName": "Author", "create": True}},
    })
    graph = InMemoryContentGraph()
    result = await source.load(graph)
    print(result.summary())

Version: 0.1.0
"""

import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Protocol, Set, Union

from .config import RefConfig, SourceOptions
from .exceptions import ConversionError
from .files import ImageCache
from .google.content import docs_to_content
from .google.fetcher import GoogleDocumentFetcher
from .graph import Collection, ContentGraph
from .markdown import convert_to_markdown
from .models import BatchImportResult, ImportResult
from .normalizer import FieldNormalizer

__all__ = [
    'DocumentFetcher',
    'GoogleDocsSource',
    'MARKDOWN_MIME_TYPE',
    'NODE_ORIGIN',
]

logger = logging.getLogger(__name__)

MARKDOWN_MIME_TYPE = 'text/markdown'
NODE_ORIGIN = 'GoogleDocs'


class DocumentFetcher(Protocol):
    """
    Source of Document dicts.

    ``content`` is either a content tree (list of blocks) or a raw Docs API
    document, which is converted with docs_to_content() during import.
    """

    async def fetch_documents(self, options: SourceOptions) -> List[Dict[str, Any]]:
        ...


class GoogleDocsSource:
    """
    Imports Google Docs as nodes of a content graph.

    Attributes:
        options: Validated source options
        fetcher: Document source (Drive + Docs APIs by default)
        refs: Normalized reference configuration of the last run
    """

    def __init__(
        self,
        options: Union[SourceOptions, Mapping[str, Any], None] = None,
        fetcher: Optional[DocumentFetcher] = None,
        image_cache: Optional[ImageCache] = None,
    ):
        """
        Args:
            options: SourceOptions, or a mapping of option names
            fetcher: Document source; defaults to GoogleDocumentFetcher
            image_cache: Externally owned cache; when None and
                download_images is on, load() creates and closes its own
        """
        if options is None:
            options = self.default_options()
        elif not isinstance(options, SourceOptions):
            options = SourceOptions.from_mapping(options)

        self.options = options
        self.fetcher = fetcher or GoogleDocumentFetcher()
        self.refs: Dict[str, RefConfig] = {}
        self._image_cache = image_cache
        self._graph: Optional[ContentGraph] = None
        self._seen: Set[str] = set()

    @staticmethod
    def default_options() -> SourceOptions:
        return SourceOptions()

    def normalize_refs(self, refs: Mapping[str, Any]) -> Dict[str, RefConfig]:
        """
        Normalize reference declarations.

        A string value names the referenced type; a mapping may carry
        typeName/type_name, create and route. The referenced type
        defaults to this source's own type.
        """
        normalized: Dict[str, RefConfig] = {}

        for field_name, ref in (refs or {}).items():
            if isinstance(ref, RefConfig):
                normalized[field_name] = ref
            elif isinstance(ref, str):
                normalized[field_name] = RefConfig(type_name=ref, create=False)
            else:
                ref = ref or {}
                normalized[field_name] = RefConfig(
                    type_name=ref.get('typeName') or ref.get('type_name') or self.options.type_name,
                    create=bool(ref.get('create')),
                    route=ref.get('route'),
                )

        return normalized

    # =========================================================================
    # Loading
    # =========================================================================

    async def load(self, graph: ContentGraph) -> BatchImportResult:
        """
        Import all documents into *graph*.

        Returns:
            BatchImportResult with one entry per fetched document

        Raises:
            ConfigurationError: If a required option is missing
            AuthenticationError: If Google credentials cannot be obtained
            FetchError: If listing or fetching fails
        """
        self.options.validate()

        self._graph = graph
        self._seen = set()
        self.refs = self.normalize_refs(self.options.refs)

        collection = graph.add_collection(self.options.type_name, self.options.route)
        for field_name, ref in self.refs.items():
            collection.add_reference(field_name, ref.type_name)
            if ref.create:
                graph.add_collection(ref.type_name, ref.route)

        owned_cache = None
        if self._image_cache is None and self.options.download_images:
            owned_cache = ImageCache(self.options.image_directory)
        image_cache = self._image_cache or owned_cache

        try:
            documents = await self.fetcher.fetch_documents(self.options)
            logger.info(f"Importing {len(documents)} documents into {self.options.type_name}")

            batch = BatchImportResult()
            for document in documents:
                result = await self._import_document(collection, document, image_cache)
                batch.add_result(result)
        finally:
            if owned_cache is not None:
                await owned_cache.aclose()

        logger.info(
            f"Imported {batch.imported}/{batch.total} documents "
            f"({batch.failed} failed, {batch.refs_created} reference nodes)"
        )
        return batch

    async def _import_document(
        self,
        collection: Collection,
        document: Mapping[str, Any],
        image_cache: Optional[ImageCache],
    ) -> ImportResult:
        start_time = time.time()
        document_id = str(document.get('id'))
        title = document.get('title')

        try:
            document = self._with_content_tree(document, document_id)
            normalizer = FieldNormalizer(image_cache)
            fields = await normalizer.normalize(document)
            content = fields.pop('content', None)

            converted = convert_to_markdown(content, fields)
            node = collection.add_node({
                **fields,
                'markdown': converted.markdown,
                'internal': {
                    'mimeType': MARKDOWN_MIME_TYPE,
                    'content': converted.markdown,
                    'origin': NODE_ORIGIN,
                },
            })
            refs_created = self.create_node_refs(node)

        except Exception as e:
            logger.error(f"Failed to import document {document_id}: {e}", exc_info=True)
            return ImportResult.failure(
                document_id=document_id,
                title=title,
                error=str(e),
                processing_time_ms=(time.time() - start_time) * 1000,
            )

        logger.info(f"Imported document {document_id} ({title})")
        return ImportResult(
            document_id=document_id,
            success=True,
            title=title,
            node_id=str(node.get('id', document_id)),
            images=list(normalizer.images),
            refs_created=refs_created,
            markdown_length=len(converted.markdown),
            processing_time_ms=(time.time() - start_time) * 1000,
        )

    @staticmethod
    def _with_content_tree(document: Mapping[str, Any], document_id: str) -> Dict[str, Any]:
        fields = dict(document)
        content = fields.get('content')
        if isinstance(content, Mapping):
            try:
                fields['content'] = docs_to_content(content)
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                raise ConversionError(
                    f"Malformed Docs content in {document_id}: {e}", document_id=document_id
                ) from e
        return fields

    # =========================================================================
    # References
    # =========================================================================

    def create_node_refs(self, node: Mapping[str, Any]) -> int:
        """
        Create placeholder nodes for the node's reference values.

        Returns:
            Number of placeholder nodes created
        """
        created = 0

        for field_name, ref in self.refs.items():
            if not ref.create:
                continue
            value = node.get(field_name)
            if not value:
                continue
            values = value if isinstance(value, (list, tuple)) else [value]
            for item in values:
                if self.add_ref_node(ref.type_name, field_name, item):
                    created += 1

        return created

    def add_ref_node(self, type_name: str, field_name: str, value: Any) -> bool:
        """
        Add a {id, title} placeholder once per type/field/value per run.

        Returns:
            True if a node was added
        """
        key = f"{type_name}-{field_name}-{value}"
        if not value or key in self._seen:
            return False

        self._seen.add(key)
        self._graph.get_collection(type_name).add_node({'id': value, 'title': value})
        return True
