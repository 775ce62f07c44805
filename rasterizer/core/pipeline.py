"""
Rendering Pipeline
==================

Orchestrates one draw call: resolves the input to a document, optionally runs
the page scripts, inlines external references, renders the image and
optionally paints it onto a canvas.

Every entry point returns an ``asyncio.Task`` resolving to a RenderResult.
When a legacy callback is given it observes the settlement of that same task:
on success it receives ``(image, errors)``; on a hard failure it receives
``None`` and a single synthetic error record, while the task itself fails
with the original exception.
"""

import asyncio
import uuid
from typing import Any, Callable, Coroutine, List, Optional, Tuple

from rasterizer.config.logging import get_logger
from rasterizer.core.interfaces import (
    Canvas,
    FormStatePersister,
    Inliner,
    Loader,
    Painter,
    Parser,
    Renderer,
    ScriptExecutor,
)
from rasterizer.core.parameters import (
    LegacyCallback,
    cache_options_subset,
    parse_optional_parameters,
    render_options_subset,
)
from rasterizer.models.schemas import ErrorRecord, RenderResult, ResourceType

logger = get_logger(__name__)

RENDER_FAILURE_MESSAGE = "Error rendering page"


def render_failure_record(error: BaseException) -> ErrorRecord:
    """Legacy record for a failure while rendering or painting."""
    return ErrorRecord(resource_type=ResourceType.DOCUMENT.value, msg=RENDER_FAILURE_MESSAGE)


def load_failure_record(url: str, error: BaseException) -> ErrorRecord:
    """Legacy record for a failure while loading the page at ``url``."""
    message = getattr(error, "message", None) or str(error)
    return ErrorRecord(resource_type=ResourceType.PAGE.value, url=url, msg=f"{message} {url}")


class Rasterizer:
    """
    Rendering pipeline with injected collaborators.

    Collaborators left out are taken from the default Playwright/aiohttp/Pillow
    implementations, which share one browser pool and one HTTP session.
    """

    def __init__(
        self,
        parser: Optional[Parser] = None,
        loader: Optional[Loader] = None,
        script_executor: Optional[ScriptExecutor] = None,
        inliner: Optional[Inliner] = None,
        renderer: Optional[Renderer] = None,
        painter: Optional[Painter] = None,
        form_state_persister: Optional[FormStatePersister] = None,
    ):
        self._defaults: Optional[DefaultCollaborators] = None
        if None in (parser, loader, script_executor, inliner, renderer, painter, form_state_persister):
            self._defaults = DefaultCollaborators()

        defaults = self._defaults
        self.parser = parser if parser is not None else defaults.parser
        self.loader = loader if loader is not None else defaults.loader
        self.script_executor = script_executor if script_executor is not None else defaults.script_executor
        self.inliner = inliner if inliner is not None else defaults.inliner
        self.renderer = renderer if renderer is not None else defaults.renderer
        self.painter = painter if painter is not None else defaults.painter
        self.form_state_persister = (
            form_state_persister if form_state_persister is not None else defaults.form_state_persister
        )
        self.logger: Any = logger.bind(component="rasterizer")  # structlog.BoundLoggerBase

    async def close(self) -> None:
        """Release the resources of the default collaborators, if any are in use."""
        if self._defaults is not None:
            await self._defaults.close()

    def draw_document(
        self,
        document: Any,
        *args: Any,
        canvas: Optional[Canvas] = None,
        options: Optional[dict] = None,
        callback: Optional[LegacyCallback] = None,
    ) -> "asyncio.Task[RenderResult]":
        """
        Render a document.

        Optional arguments can be given positionally in any order
        (``canvas``, ``options`` mapping, ``callback``) or by keyword.

        Returns:
            Task resolving to a RenderResult; fails with the original exception
            when rendering or painting fails
        """
        params = parse_optional_parameters(args, canvas=canvas, options=options, callback=callback)
        task = _start(self._draw(document, params.canvas, params.options))

        if params.callback is not None:
            self._observe(task, params.callback, render_failure_record)
        return task

    def draw_html(
        self,
        html: str,
        *args: Any,
        canvas: Optional[Canvas] = None,
        options: Optional[dict] = None,
        callback: Optional[LegacyCallback] = None,
    ) -> "asyncio.Task[RenderResult]":
        """Parse ``html`` and render it, see draw_document."""
        params = parse_optional_parameters(args, canvas=canvas, options=options, callback=callback)
        document = self.parser.parse_html(html)
        return self.draw_document(document, params.canvas, params.options, params.callback)

    def draw_url(
        self,
        url: str,
        *args: Any,
        canvas: Optional[Canvas] = None,
        options: Optional[dict] = None,
        callback: Optional[LegacyCallback] = None,
    ) -> "asyncio.Task[RenderResult]":
        """
        Load the page at ``url`` and render it, see draw_document.

        The ``cache`` and ``cache_bucket`` options are forwarded to the loader.
        A load failure fails the task with the loader's exception; the legacy
        callback receives a ``page`` error record instead.
        """
        params = parse_optional_parameters(args, canvas=canvas, options=options, callback=callback)
        loaded = False

        async def load_and_draw() -> RenderResult:
            nonlocal loaded
            self.logger.debug("Loading document", url=url)
            document = await self.loader.load_document(url, cache_options_subset(params.options))
            loaded = True
            return await self.draw_document(document, params.canvas, params.options)

        task = _start(load_and_draw())

        if params.callback is not None:

            def failure_record(error: BaseException) -> ErrorRecord:
                if loaded:
                    return render_failure_record(error)
                return load_failure_record(url, error)

            self._observe(task, params.callback, failure_record)
        return task

    async def _draw(self, document: Any, canvas: Optional[Canvas], options: dict) -> RenderResult:
        log = self.logger.bind(render_id=uuid.uuid4().hex[:8])
        errors: List[ErrorRecord] = []
        execute_js = bool(options.get("execute_js", False))
        render_options = render_options_subset(options)

        if execute_js:
            log.debug("Executing JavaScript")
            document, script_errors = await self._execute_javascript(document, options, render_options, log)
            errors.extend(script_errors)

        inline_options = dict(options)
        inline_options["inline_scripts"] = execute_js
        log.debug("Inlining references", inline_scripts=execute_js)
        errors.extend(await self._inline_references(document, inline_options, log))

        log.debug("Rendering", **render_options)
        try:
            image = await self.renderer.render_document_image(document, canvas, render_options)
        except Exception as e:
            log.warning("Rendering failed", error=str(e))
            raise

        if canvas is not None:
            log.debug("Painting")
            try:
                self.painter.paint(image, canvas)
            except Exception as e:
                log.warning("Painting failed", error=str(e))
                raise

        log.debug("Done", error_count=len(errors))
        return RenderResult(image=image, errors=errors)

    async def _execute_javascript(
        self, document: Any, options: dict, render_options: dict, log: Any
    ) -> Tuple[Any, List[ErrorRecord]]:
        """Run page scripts; a broken executor degrades to a soft error."""
        timeout_ms = options.get("execute_js_timeout") or 0
        try:
            result = await self.script_executor.execute_javascript(
                document, options.get("base_url"), timeout_ms, render_options
            )
        except Exception as e:
            log.warning("Script execution failed", error=str(e))
            return document, [ErrorRecord(resource_type=ResourceType.SCRIPT_EXECUTION.value, msg=str(e))]

        self.form_state_persister.persist(result.document)
        return result.document, list(result.errors)

    async def _inline_references(self, document: Any, inline_options: dict, log: Any) -> List[ErrorRecord]:
        """Inline references; a broken inliner degrades to a soft error."""
        try:
            return list(await self.inliner.inline_references(document, inline_options))
        except Exception as e:
            log.warning("Inlining failed", error=str(e))
            return [ErrorRecord(resource_type=ResourceType.DOCUMENT.value, msg=f"Unable to inline references: {e}")]

    def _observe(
        self,
        task: "asyncio.Task[RenderResult]",
        callback: LegacyCallback,
        failure_record: Callable[[BaseException], ErrorRecord],
    ) -> None:
        """Report the settlement of ``task`` to a legacy callback, exactly once."""

        def settle(done: "asyncio.Task[RenderResult]") -> None:
            error = asyncio.CancelledError() if done.cancelled() else done.exception()
            if error is None:
                result = done.result()
                image, errors = result.image, result.errors
            else:
                image, errors = None, [failure_record(error)]

            try:
                callback(image, errors)
            except Exception:
                self.logger.exception("Legacy callback raised")

        task.add_done_callback(settle)


def _start(coroutine: Coroutine[Any, Any, RenderResult]) -> "asyncio.Task[RenderResult]":
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        coroutine.close()
        raise RuntimeError("Draw calls need a running event loop") from None
    return loop.create_task(coroutine)


class DefaultCollaborators:
    """The default collaborator set, sharing one browser pool and one HTTP session."""

    def __init__(self) -> None:
        from rasterizer.browser.document import MarkupParser
        from rasterizer.browser.fetcher import ResourceFetcher
        from rasterizer.browser.inliner import ReferenceInliner
        from rasterizer.browser.loader import HTTPDocumentLoader
        from rasterizer.browser.painter import PillowPainter
        from rasterizer.browser.pool import BrowserPool
        from rasterizer.browser.renderer import PlaywrightRenderer
        from rasterizer.browser.scripting import DOMFormStatePersister, PlaywrightScriptExecutor

        self.browser_pool = BrowserPool()
        self.fetcher = ResourceFetcher()
        self.parser = MarkupParser()
        self.loader = HTTPDocumentLoader(self.fetcher, self.parser)
        self.script_executor = PlaywrightScriptExecutor(self.browser_pool)
        self.inliner = ReferenceInliner(self.browser_pool, self.fetcher)
        self.renderer = PlaywrightRenderer(self.browser_pool)
        self.painter = PillowPainter()
        self.form_state_persister = DOMFormStatePersister()

    async def close(self) -> None:
        await self.fetcher.close()
        await self.browser_pool.close()


# Global rasterizer instance and the event loop its collaborators belong to
_default_rasterizer: Optional[Rasterizer] = None
_default_loop: Optional[asyncio.AbstractEventLoop] = None


def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def get_rasterizer() -> Rasterizer:
    """
    Get or create the global rasterizer with the default collaborators.

    The browser pool and HTTP session are bound to the event loop they were
    created on. When called from a different running loop, e.g. a second
    ``asyncio.run()``, a fresh rasterizer is built for that loop and the old
    one is abandoned unclosed, since its loop can no longer run it.
    """
    global _default_rasterizer, _default_loop
    loop = _running_loop()
    if _default_rasterizer is not None and loop is not None and _default_loop not in (None, loop):
        logger.warning("Event loop changed, rebuilding default rasterizer")
        _default_rasterizer = None

    if _default_rasterizer is None:
        _default_rasterizer = Rasterizer()
        _default_loop = loop
    elif _default_loop is None:
        _default_loop = loop
    return _default_rasterizer


async def close_default_collaborators() -> None:
    """Close the global rasterizer's browser pool and HTTP session."""
    global _default_rasterizer, _default_loop
    if _default_rasterizer:
        await _default_rasterizer.close()
        _default_rasterizer = None
        _default_loop = None


def draw_document(document: Any, *args: Any, **kwargs: Any) -> "asyncio.Task[RenderResult]":
    """Render a document with the global rasterizer."""
    return get_rasterizer().draw_document(document, *args, **kwargs)


def draw_html(html: str, *args: Any, **kwargs: Any) -> "asyncio.Task[RenderResult]":
    """Render HTML markup with the global rasterizer."""
    return get_rasterizer().draw_html(html, *args, **kwargs)


def draw_url(url: str, *args: Any, **kwargs: Any) -> "asyncio.Task[RenderResult]":
    """Render the page at a URL with the global rasterizer."""
    return get_rasterizer().draw_url(url, *args, **kwargs)
