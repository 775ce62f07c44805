"""
Reference Inliner
=================

Makes a document self-contained. Images (``<img>`` and image inputs) become
data URIs, and linked stylesheets become ``<style>`` blocks. The ``url()``
references of all CSS, linked or embedded in ``<style>`` blocks and
``style`` attributes, are inlined as well. When requested, external scripts
become inline scripts.

Failures never propagate. Every resource that cannot be fetched is reported
as one error record and left as it was.
"""

import asyncio
import base64
import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urljoin, urlsplit

from rasterizer.browser.document import HTMLDocument
from rasterizer.browser.fetcher import FetchedResource, ResourceFetcher, ResourceFetchError
from rasterizer.browser.pool import BrowserPool
from rasterizer.config.logging import get_logger
from rasterizer.models.schemas import ErrorRecord, ResourceType

logger = get_logger(__name__)

# Embedded CSS: <style> blocks and style attributes, their url()s are inlined
STYLE_ELEMENT = "styleElement"
STYLE_ATTRIBUTE = "styleAttribute"

SELECTORS = {
    ResourceType.IMAGE.value: 'img[src], input[type="image" i][src]',
    ResourceType.STYLESHEET.value: 'link[rel~="stylesheet" i][href]',
    ResourceType.SCRIPT.value: "script[src]",
    STYLE_ELEMENT: "style",
    STYLE_ATTRIBUTE: '[style*="url(" i]',
}

COLLECT_REFERENCES_JS = """([selectors, kinds]) => {
    const references = [];
    for (const kind of kinds) {
        document.querySelectorAll(selectors[kind]).forEach((element, index) => {
            if (kind === "styleElement") {
                references.push({kind: kind, index: index, css: element.textContent});
            } else if (kind === "styleAttribute") {
                references.push({kind: kind, index: index, css: element.getAttribute("style")});
            } else {
                const attribute = kind === "stylesheet" ? "href" : "src";
                references.push({kind: kind, index: index, url: element.getAttribute(attribute)});
            }
        });
    }
    return references;
}"""

APPLY_REPLACEMENTS_JS = """([selectors, replacements]) => {
    const elements = {};
    for (const kind of Object.keys(selectors)) {
        elements[kind] = Array.from(document.querySelectorAll(selectors[kind]));
    }
    for (const replacement of replacements) {
        const element = elements[replacement.kind][replacement.index];
        if (replacement.kind === "image") {
            element.setAttribute("src", replacement.data);
        } else if (replacement.kind === "stylesheet") {
            const style = document.createElement("style");
            if (element.getAttribute("media")) {
                style.setAttribute("media", element.getAttribute("media"));
            }
            style.textContent = replacement.data;
            element.replaceWith(style);
        } else if (replacement.kind === "styleElement") {
            element.textContent = replacement.data;
        } else if (replacement.kind === "styleAttribute") {
            element.setAttribute("style", replacement.data);
        } else {
            element.removeAttribute("src");
            element.textContent = replacement.data;
        }
    }
}"""

CSS_URL_PATTERN = re.compile(r"""url\(\s*(['"]?)(?P<url>[^'")]+)\1\s*\)""", re.IGNORECASE)

FONT_EXTENSIONS = (".woff", ".woff2", ".ttf", ".otf", ".eot")


def resolve_url(url: str, base_url: Optional[str]) -> str:
    """Resolve a reference against the base URL, if there is one."""
    return urljoin(base_url, url) if base_url else url


def is_inline(url: str) -> bool:
    """References that need no fetching."""
    stripped = url.strip()
    return not stripped or stripped.startswith(("data:", "#", "about:", "javascript:"))


def data_uri(resource: FetchedResource) -> str:
    encoded = base64.b64encode(resource.content).decode("ascii")
    return f"data:{resource.content_type};base64,{encoded}"


class ReferenceInliner:
    """Inlines the external references of an HTMLDocument."""

    def __init__(self, browser_pool: BrowserPool, fetcher: ResourceFetcher):
        self.browser_pool = browser_pool
        self.fetcher = fetcher
        self.logger: Any = logger.bind(component="reference_inliner")  # structlog.BoundLoggerBase

    async def inline_references(self, document: HTMLDocument, options: Dict[str, Any]) -> List[ErrorRecord]:
        """
        Inline all external references of ``document`` in place.

        Args:
            document: Document to rewrite
            options: Draw options plus ``inline_scripts``

        Returns:
            One error record per resource that could not be inlined
        """
        base_url = options.get("base_url") or document.base_url
        kinds = [ResourceType.IMAGE.value, ResourceType.STYLESHEET.value, STYLE_ELEMENT, STYLE_ATTRIBUTE]
        if options.get("inline_scripts"):
            kinds.append(ResourceType.SCRIPT.value)

        try:
            async with self.browser_pool.new_page(java_script_enabled=False) as page:
                # Sub-resources are fetched here, not by the page
                await page.route("**/*", lambda route: route.abort())
                await page.set_content(document.html, wait_until="domcontentloaded")

                references = await page.evaluate(COLLECT_REFERENCES_JS, [SELECTORS, kinds])
                outcomes = await asyncio.gather(
                    *(self._inline_reference(reference, base_url, options) for reference in references)
                )

                replacements = [replacement for replacement, _ in outcomes if replacement is not None]
                errors = [error for _, record in outcomes for error in record]

                if replacements:
                    await page.evaluate(APPLY_REPLACEMENTS_JS, [SELECTORS, replacements])
                    document.html = await page.content()
        except Exception as e:
            self.logger.error("Reference inlining failed", error=str(e))
            return [ErrorRecord(resource_type=ResourceType.DOCUMENT.value, msg=f"Unable to inline references: {e}")]

        self.logger.debug(
            "References inlined",
            reference_count=len(references),
            inlined=len(replacements),
            error_count=len(errors),
        )
        return errors

    async def _inline_reference(
        self, reference: Dict[str, Any], base_url: Optional[str], options: Dict[str, Any]
    ) -> Tuple[Optional[Dict[str, Any]], List[ErrorRecord]]:
        kind = reference["kind"]
        if kind in (STYLE_ELEMENT, STYLE_ATTRIBUTE):
            css = reference.get("css") or ""
            inlined, errors = await self.inline_css(css, base_url, options)
            if inlined == css:
                return None, errors
            return {"kind": kind, "index": reference["index"], "data": inlined}, errors

        raw_url = reference["url"] or ""
        if is_inline(raw_url):
            return None, []

        url = resolve_url(raw_url, base_url)
        try:
            resource = await self._fetch(url, options)
        except ResourceFetchError:
            return None, [ErrorRecord(resource_type=kind, url=url, msg=f"Unable to load {kind} {url}")]

        if kind == ResourceType.IMAGE.value:
            return {"kind": kind, "index": reference["index"], "data": data_uri(resource)}, []

        if kind == ResourceType.STYLESHEET.value:
            css, errors = await self.inline_css(resource.text(), resource.url, options)
            return {"kind": kind, "index": reference["index"], "data": css}, errors

        return {"kind": kind, "index": reference["index"], "data": resource.text()}, []

    async def inline_css(
        self, css: str, stylesheet_url: Optional[str], options: Dict[str, Any]
    ) -> Tuple[str, List[ErrorRecord]]:
        """
        Replace ``url()`` references of CSS with data URIs.

        References resolve against ``stylesheet_url``; for CSS embedded in the
        document that is the document's base URL.
        """
        urls = {
            match.group("url").strip()
            for match in CSS_URL_PATTERN.finditer(css)
            if not is_inline(match.group("url"))
        }
        if not urls:
            return css, []

        async def fetch_one(raw_url: str) -> Tuple[str, Optional[FetchedResource], str]:
            url = resolve_url(raw_url, stylesheet_url)
            try:
                return raw_url, await self._fetch(url, options), url
            except ResourceFetchError:
                return raw_url, None, url

        fetched = await asyncio.gather(*(fetch_one(raw_url) for raw_url in sorted(urls)))

        inlined: Dict[str, str] = {}
        errors: List[ErrorRecord] = []
        for raw_url, resource, url in fetched:
            if resource is not None:
                inlined[raw_url] = data_uri(resource)
            elif urlsplit(url).path.lower().endswith(FONT_EXTENSIONS):
                errors.append(
                    ErrorRecord(
                        resource_type=ResourceType.FONT_FACE.value, url=url, msg=f"Unable to load font {url}"
                    )
                )
            else:
                errors.append(
                    ErrorRecord(
                        resource_type=ResourceType.BACKGROUND_IMAGE.value,
                        url=url,
                        msg=f"Unable to load background-image {url}",
                    )
                )

        def replace(match: "re.Match[str]") -> str:
            raw_url = match.group("url").strip()
            if raw_url in inlined:
                return f'url("{inlined[raw_url]}")'
            return match.group(0)

        return CSS_URL_PATTERN.sub(replace, css), errors

    async def _fetch(self, url: str, options: Dict[str, Any]) -> FetchedResource:
        return await self.fetcher.fetch(
            url, cache=options.get("cache"), cache_bucket=options.get("cache_bucket")
        )
