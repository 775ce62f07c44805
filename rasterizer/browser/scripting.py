"""
Script Execution
================

Runs page scripts in a headless browser and persists the resulting form
control state so it survives serialization.
"""

from typing import Any, Dict, List, Optional

from playwright.async_api import Error as PlaywrightError

from rasterizer.browser.document import HTMLDocument
from rasterizer.browser.pool import BrowserPool, load_markup, viewport_for
from rasterizer.config.logging import get_logger
from rasterizer.core.errors import ScriptExecutionError
from rasterizer.models.schemas import ErrorRecord, ResourceType, ScriptExecutionResult

logger = get_logger(__name__)

FORM_CONTROLS_SELECTOR = "input, textarea, select"

COLLECT_FORM_STATE_JS = """(selector) => Array.from(document.querySelectorAll(selector)).map(
    (element, index) => ({
        index: index,
        tag: element.tagName.toLowerCase(),
        type: element.type || null,
        value: element.value,
        checked: element.checked === true,
    })
)"""

RESTORE_FORM_STATE_JS = """([selector, state]) => {
    const elements = document.querySelectorAll(selector);
    for (const entry of state) {
        const element = elements[entry.index];
        if (!element || element.tagName.toLowerCase() !== entry.tag) {
            continue;
        }
        if (entry.type === "checkbox" || entry.type === "radio") {
            element.checked = entry.checked;
            if (entry.checked) {
                element.setAttribute("checked", "");
            } else {
                element.removeAttribute("checked");
            }
        } else if (entry.tag === "textarea") {
            element.value = entry.value;
            element.textContent = entry.value;
        } else {
            element.value = entry.value;
            if (entry.tag === "input") {
                element.setAttribute("value", entry.value);
            }
        }
    }
}"""


class PlaywrightScriptExecutor:
    """Executes the scripts of a document in a JavaScript-enabled page."""

    def __init__(self, browser_pool: BrowserPool):
        self.browser_pool = browser_pool
        self.logger: Any = logger.bind(component="script_executor")  # structlog.BoundLoggerBase

    async def execute_javascript(
        self,
        document: HTMLDocument,
        base_url: Optional[str],
        timeout_ms: int,
        options: Dict[str, Any],
    ) -> ScriptExecutionResult:
        """
        Execute the document's scripts.

        Uncaught page errors become ``scriptExecution`` error records. After
        ``timeout_ms`` the live DOM replaces the document markup and the form
        control state is captured into ``document.live_form_state``.

        Args:
            document: Document to execute
            base_url: URL the page is served as, defaults to the document's own
            timeout_ms: Time to let scripts run after load, 0 for none
            options: Render options (width, height, ...)

        Raises:
            ScriptExecutionError: If the page cannot be set up
        """
        errors: List[ErrorRecord] = []

        def on_page_error(error: PlaywrightError) -> None:
            errors.append(ErrorRecord(resource_type=ResourceType.SCRIPT_EXECUTION.value, msg=error.message))

        try:
            async with self.browser_pool.new_page(
                viewport=viewport_for(options), java_script_enabled=True
            ) as page:
                page.on("pageerror", on_page_error)
                await load_markup(page, document.html, base_url or document.base_url)

                if timeout_ms > 0:
                    await page.wait_for_timeout(timeout_ms)

                document.html = await page.content()
                document.live_form_state = await page.evaluate(
                    COLLECT_FORM_STATE_JS, FORM_CONTROLS_SELECTOR
                )
        except PlaywrightError as e:
            self.logger.error("Script execution failed", error=str(e))
            raise ScriptExecutionError(f"Script execution failed: {e}") from e

        self.logger.debug("Scripts executed", timeout_ms=timeout_ms, error_count=len(errors))
        return ScriptExecutionResult(document=document, errors=errors)


class DOMFormStatePersister:
    """Moves captured live form state into the document's persisted state."""

    def persist(self, document: HTMLDocument) -> None:
        state = {entry["index"]: entry for entry in document.form_state}
        for entry in document.live_form_state:
            state[entry["index"]] = entry

        document.form_state = [state[index] for index in sorted(state)]
        document.live_form_state = []
