"""
Collaborator Interfaces
=======================

Protocols for the collaborators the pipeline delegates to. Any object with
the matching methods can be injected into a Rasterizer.
"""

from typing import Any, Awaitable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from rasterizer.models.schemas import ErrorRecord, ScriptExecutionResult


@runtime_checkable
class Canvas(Protocol):
    """A drawing surface. PIL images satisfy this protocol."""

    size: Tuple[int, int]

    def paste(self, *args: Any, **kwargs: Any) -> Any: ...


class Parser(Protocol):
    def parse_html(self, html: str) -> Any: ...


class Loader(Protocol):
    def load_document(self, url: str, options: Dict[str, Any]) -> Awaitable[Any]: ...


class ScriptExecutor(Protocol):
    def execute_javascript(
        self, document: Any, base_url: Optional[str], timeout_ms: int, options: Dict[str, Any]
    ) -> Awaitable[ScriptExecutionResult]: ...


class Inliner(Protocol):
    def inline_references(self, document: Any, options: Dict[str, Any]) -> Awaitable[List[ErrorRecord]]: ...


class Renderer(Protocol):
    def render_document_image(
        self, document: Any, canvas: Optional[Canvas], options: Dict[str, Any]
    ) -> Awaitable[Any]: ...


class Painter(Protocol):
    def paint(self, image: Any, canvas: Canvas) -> None: ...


class FormStatePersister(Protocol):
    def persist(self, document: Any) -> None: ...
