"""
Document Loader
===============

Loads a remote page into an HTMLDocument.
"""

from typing import Any, Dict, Optional

from rasterizer.browser.document import HTMLDocument, MarkupParser
from rasterizer.browser.fetcher import ResourceFetcher, ResourceFetchError
from rasterizer.config.logging import get_logger
from rasterizer.core.errors import DocumentLoadError

logger = get_logger(__name__)


class HTTPDocumentLoader:
    """Loader backed by the resource fetcher."""

    def __init__(self, fetcher: ResourceFetcher, parser: Optional[MarkupParser] = None):
        self.fetcher = fetcher
        self.parser = parser or MarkupParser()
        self.logger: Any = logger.bind(component="document_loader")  # structlog.BoundLoggerBase

    async def load_document(self, url: str, options: Dict[str, Any]) -> HTMLDocument:
        """
        Load the page at ``url``.

        Args:
            url: Page URL
            options: ``cache`` and ``cache_bucket`` as given by the caller

        Raises:
            DocumentLoadError: If the page cannot be fetched
        """
        try:
            resource = await self.fetcher.fetch(
                url, cache=options.get("cache"), cache_bucket=options.get("cache_bucket")
            )
        except ResourceFetchError as e:
            self.logger.warning("Unable to load page", url=url, error=str(e))
            raise DocumentLoadError("Unable to load page", url=url, original_error=e) from e

        self.logger.info("Page loaded", url=url, size=len(resource.content))
        return self.parser.parse_html(resource.text(), base_url=resource.url)
