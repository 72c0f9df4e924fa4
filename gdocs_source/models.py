"""
gdocs-source - Result Models

Outcome records for an import run.

Data Flow:
    Document (dict from the fetcher)
    → node (dict registered with the content graph)
    → ImportResult (one per document)
    → BatchImportResult (one per run)

Usage:
    from gdocs_source.models import BatchImportResult, ImportResult

    batch = BatchImportResult()
    batch.add_result(ImportResult.failure("d1", "Hello", "boom"))
    print(batch.summary())

Version: 0.1.0
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

__all__ = [
    'ImportResult',
    'BatchImportResult',
]


@dataclass
class ImportResult:
    """
    Result of importing a single document.

    Attributes:
        document_id: Source document id
        title: Document title, when known
        success: Whether the node was registered
        node_id: Id of the registered node
        images: Local image paths referenced by the node
        refs_created: Placeholder reference nodes created for this document
        markdown_length: Length of the generated Markdown
        processing_time_ms: Time spent on this document
        error: Error message if failed
    """
    document_id: str
    success: bool
    title: Optional[str] = None
    node_id: Optional[str] = None
    images: List[str] = field(default_factory=list)
    refs_created: int = 0
    markdown_length: int = 0
    processing_time_ms: float = 0.0
    error: Optional[str] = None

    @classmethod
    def failure(
        cls,
        document_id: str,
        title: Optional[str],
        error: str,
        processing_time_ms: float = 0.0
    ) -> "ImportResult":
        """Create a failure result."""
        return cls(
            document_id=document_id,
            title=title,
            success=False,
            error=error,
            processing_time_ms=processing_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BatchImportResult:
    """
    Aggregated results of one import run.

    Attributes:
        total: Number of documents seen
        imported: Number of nodes registered
        failed: Number of documents skipped after an error
        refs_created: Placeholder reference nodes created
        images: Number of local image references across all nodes
        total_time_ms: Summed per-document processing time
        results: Individual results, in processing order
        errors: Error messages by document id
    """
    total: int = 0
    imported: int = 0
    failed: int = 0
    refs_created: int = 0
    images: int = 0
    total_time_ms: float = 0.0
    results: List[ImportResult] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)

    def add_result(self, result: ImportResult) -> None:
        """Add an individual result to the batch."""
        self.total += 1
        self.results.append(result)
        self.total_time_ms += result.processing_time_ms

        if result.success:
            self.imported += 1
            self.refs_created += result.refs_created
            self.images += len(result.images)
        else:
            self.failed += 1
            if result.error:
                self.errors[result.document_id] = result.error

    @property
    def success_rate(self) -> float:
        """Success rate as a percentage."""
        if self.total == 0:
            return 0.0
        return (self.imported / self.total) * 100

    def summary(self) -> str:
        """Generate human-readable summary."""
        return (
            f"Import Complete\n"
            f"{'=' * 40}\n"
            f"Documents: {self.imported}/{self.total} imported "
            f"({self.success_rate:.1f}%)\n"
            f"Failed: {self.failed}\n"
            f"Reference nodes: {self.refs_created}\n"
            f"Images: {self.images}\n"
            f"Time: {self.total_time_ms:.1f}ms"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "imported": self.imported,
            "failed": self.failed,
            "refs_created": self.refs_created,
            "images": self.images,
            "total_time_ms": round(self.total_time_ms, 2),
            "results": [r.to_dict() for r in self.results],
            "errors": dict(self.errors),
        }
