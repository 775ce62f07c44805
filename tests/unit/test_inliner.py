"""
Unit Tests for Reference Inlining
=================================

Tests for inlining images, stylesheets, embedded CSS and scripts with a stub
fetcher and a mocked browser page.
"""

from unittest.mock import AsyncMock

import pytest

from rasterizer.browser.document import HTMLDocument
from rasterizer.browser.fetcher import FetchedResource, ResourceFetchError
from rasterizer.browser.inliner import (
    APPLY_REPLACEMENTS_JS,
    SELECTORS,
    ReferenceInliner,
    data_uri,
    is_inline,
    resolve_url,
)
from rasterizer.models.schemas import ErrorRecord

from tests.utils.mocks import create_mock_browser_pool, create_mock_page

RESOURCES = {
    "http://example.com/img/logo.png": FetchedResource(
        url="http://example.com/img/logo.png", content=b"PNG", content_type="image/png"
    ),
    "http://example.com/css/site.css": FetchedResource(
        url="http://example.com/css/site.css",
        content=b"body { background: url('../img/logo.png'); }",
        content_type="text/css",
    ),
    "http://example.com/app.js": FetchedResource(
        url="http://example.com/app.js", content=b"console.log(1);", content_type="application/javascript"
    ),
}


async def fake_fetch(url, cache=None, cache_bucket=None):
    if url not in RESOURCES:
        raise ResourceFetchError("Request failed with status 404", url=url, status=404)
    return RESOURCES[url]


@pytest.fixture
def fetcher():
    fetcher = AsyncMock()
    fetcher.fetch.side_effect = fake_fetch
    return fetcher


class TestHelpers:
    """Test URL helpers."""

    def test_resolve_url(self):
        """Test relative references resolve against the base URL."""
        assert resolve_url("a.png", "http://example.com/dir/page.html") == "http://example.com/dir/a.png"
        assert resolve_url("a.png", None) == "a.png"

    @pytest.mark.parametrize("url", ["", "  ", "data:image/png;base64,AAAA", "#anchor", "about:blank"])
    def test_is_inline(self, url):
        """Test references that need no fetching."""
        assert is_inline(url)

    def test_is_not_inline(self):
        """Test a regular reference."""
        assert not is_inline("http://example.com/a.png")

    def test_data_uri(self):
        """Test data URI encoding."""
        resource = FetchedResource(url="x", content=b"PNG", content_type="image/png")

        assert data_uri(resource) == "data:image/png;base64,UE5H"


class TestInlineCSS:
    """Test inlining url() references of stylesheets."""

    @pytest.fixture
    def inliner(self, fetcher):
        return ReferenceInliner(create_mock_browser_pool(create_mock_page()), fetcher)

    @pytest.mark.asyncio
    async def test_inlines_background_image(self, inliner):
        """Test url() references relative to the stylesheet."""
        css, errors = await inliner.inline_css(
            "body { background: url('../img/logo.png'); }", "http://example.com/css/site.css", {}
        )

        assert errors == []
        assert css == 'body { background: url("data:image/png;base64,UE5H"); }'

    @pytest.mark.asyncio
    async def test_keeps_data_uris(self, inliner, fetcher):
        """Test inline references are not fetched."""
        css = "a { background: url(data:image/png;base64,AAAA); }"

        result, errors = await inliner.inline_css(css, "http://example.com/s.css", {})

        assert result == css
        assert errors == []
        fetcher.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_background_image(self, inliner):
        """Test a failed url() reference."""
        css = "a { background: url(missing.png); }"

        result, errors = await inliner.inline_css(css, "http://example.com/s.css", {})

        assert result == css
        assert errors == [
            ErrorRecord(
                resource_type="backgroundImage",
                url="http://example.com/missing.png",
                msg="Unable to load background-image http://example.com/missing.png",
            )
        ]

    @pytest.mark.asyncio
    async def test_missing_font(self, inliner):
        """Test a failed font reference."""
        css = "@font-face { font-family: x; src: url('fonts/x.woff2'); }"

        _, errors = await inliner.inline_css(css, "http://example.com/s.css", {})

        assert errors == [
            ErrorRecord(
                resource_type="fontFace",
                url="http://example.com/fonts/x.woff2",
                msg="Unable to load font http://example.com/fonts/x.woff2",
            )
        ]

    @pytest.mark.asyncio
    async def test_forwards_cache_options(self, inliner, fetcher):
        """Test cache options reach the fetcher."""
        bucket = {}

        await inliner.inline_css(
            "a { background: url(x.png); }", "http://example.com/s.css", {"cache": "none", "cache_bucket": bucket}
        )

        assert fetcher.fetch.await_args.kwargs["cache"] == "none"
        assert fetcher.fetch.await_args.kwargs["cache_bucket"] is bucket


class TestReferenceInliner:
    """Test inlining the references of a document."""

    @pytest.fixture
    def page(self):
        return create_mock_page("<html>inlined</html>")

    @pytest.fixture
    def inliner(self, page, fetcher):
        return ReferenceInliner(create_mock_browser_pool(page), fetcher)

    @pytest.mark.asyncio
    async def test_inlines_images_and_stylesheets(self, inliner, page):
        """Test successful references are replaced."""
        page.evaluate.side_effect = [
            [
                {"kind": "image", "index": 0, "url": "img/logo.png"},
                {"kind": "stylesheet", "index": 0, "url": "css/site.css"},
            ],
            None,
        ]
        document = HTMLDocument("<html>original</html>", base_url="http://example.com/index.html")

        errors = await inliner.inline_references(document, {"inline_scripts": False})

        assert errors == []
        assert document.html == "<html>inlined</html>"
        replacements = page.evaluate.await_args_list[1].args[1][1]
        assert replacements == [
            {"kind": "image", "index": 0, "data": "data:image/png;base64,UE5H"},
            {
                "kind": "stylesheet",
                "index": 0,
                "data": 'body { background: url("data:image/png;base64,UE5H"); }',
            },
        ]
        assert page.evaluate.await_args_list[1].args[0] == APPLY_REPLACEMENTS_JS

    @pytest.mark.asyncio
    async def test_scripts_only_when_requested(self, inliner, page):
        """Test the script selector is only collected with inline_scripts."""
        page.evaluate.side_effect = [[], None]

        await inliner.inline_references(HTMLDocument("<p></p>"), {"inline_scripts": False})
        assert page.evaluate.await_args_list[0].args[1][1] == [
            "image",
            "stylesheet",
            "styleElement",
            "styleAttribute",
        ]

        page.evaluate.side_effect = [[], None]
        await inliner.inline_references(HTMLDocument("<p></p>"), {"inline_scripts": True})
        assert page.evaluate.await_args_list[1].args[1][1][-1] == "script"

    @pytest.mark.asyncio
    async def test_inlines_scripts(self, inliner, page):
        """Test external scripts become inline scripts."""
        page.evaluate.side_effect = [[{"kind": "script", "index": 0, "url": "http://example.com/app.js"}], None]
        document = HTMLDocument("<script src='app.js'></script>")

        errors = await inliner.inline_references(document, {"inline_scripts": True})

        assert errors == []
        replacements = page.evaluate.await_args_list[1].args[1][1]
        assert replacements == [{"kind": "script", "index": 0, "data": "console.log(1);"}]

    @pytest.mark.asyncio
    async def test_reports_each_failed_reference(self, inliner, page):
        """Test one error per resource that cannot be loaded."""
        page.evaluate.side_effect = [
            [
                {"kind": "image", "index": 0, "url": "missing.png"},
                {"kind": "stylesheet", "index": 0, "url": "missing.css"},
            ],
            None,
        ]
        document = HTMLDocument("<html>original</html>")

        errors = await inliner.inline_references(document, {"base_url": "http://example.com/"})

        assert errors == [
            ErrorRecord(
                resource_type="image",
                url="http://example.com/missing.png",
                msg="Unable to load image http://example.com/missing.png",
            ),
            ErrorRecord(
                resource_type="stylesheet",
                url="http://example.com/missing.css",
                msg="Unable to load stylesheet http://example.com/missing.css",
            ),
        ]
        assert document.html == "<html>original</html>"

    @pytest.mark.asyncio
    async def test_base_url_option_wins_over_document(self, inliner, page, fetcher):
        """Test the base_url option overrides the document's own URL."""
        page.evaluate.side_effect = [[{"kind": "image", "index": 0, "url": "logo.png"}], None]
        document = HTMLDocument("<img src='logo.png'>", base_url="http://other.org/")

        await inliner.inline_references(document, {"base_url": "http://example.com/img/"})

        assert fetcher.fetch.await_args.args[0] == "http://example.com/img/logo.png"

    @pytest.mark.asyncio
    async def test_inlines_style_blocks(self, inliner, page):
        """Test url() references of <style> blocks resolve against the document."""
        page.evaluate.side_effect = [
            [{"kind": "styleElement", "index": 0, "css": "body { background: url(img/logo.png); }"}],
            None,
        ]
        document = HTMLDocument("<style>body { background: url(img/logo.png); }</style>")

        errors = await inliner.inline_references(document, {"base_url": "http://example.com/"})

        assert errors == []
        replacements = page.evaluate.await_args_list[1].args[1][1]
        assert replacements == [
            {
                "kind": "styleElement",
                "index": 0,
                "data": 'body { background: url("data:image/png;base64,UE5H"); }',
            }
        ]

    @pytest.mark.asyncio
    async def test_inlines_style_attributes(self, inliner, page):
        """Test url() references of style attributes."""
        page.evaluate.side_effect = [
            [{"kind": "styleAttribute", "index": 0, "css": "background:url('http://example.com/img/logo.png')"}],
            None,
        ]

        errors = await inliner.inline_references(HTMLDocument("<div></div>"), {})

        assert errors == []
        replacements = page.evaluate.await_args_list[1].args[1][1]
        assert replacements == [
            {"kind": "styleAttribute", "index": 0, "data": 'background:url("data:image/png;base64,UE5H")'}
        ]

    @pytest.mark.asyncio
    async def test_reports_failed_embedded_css_references(self, inliner, page):
        """Test embedded CSS references that cannot be loaded are reported."""
        page.evaluate.side_effect = [
            [
                {"kind": "styleElement", "index": 0, "css": "body { background: url(http://x/bg.png); }"},
                {"kind": "styleAttribute", "index": 0, "css": "background: url(missing.png)"},
            ],
            None,
        ]
        document = HTMLDocument("<html>original</html>")

        errors = await inliner.inline_references(document, {"base_url": "http://example.com/"})

        assert errors == [
            ErrorRecord(
                resource_type="backgroundImage",
                url="http://x/bg.png",
                msg="Unable to load background-image http://x/bg.png",
            ),
            ErrorRecord(
                resource_type="backgroundImage",
                url="http://example.com/missing.png",
                msg="Unable to load background-image http://example.com/missing.png",
            ),
        ]
        assert document.html == "<html>original</html>"

    @pytest.mark.asyncio
    async def test_style_without_references_is_left_alone(self, inliner, page, fetcher):
        """Test embedded CSS without url() needs no replacement."""
        page.evaluate.side_effect = [[{"kind": "styleElement", "index": 0, "css": "p { color: red; }"}], None]

        errors = await inliner.inline_references(HTMLDocument("<style>p { color: red; }</style>"), {})

        assert errors == []
        fetcher.fetch.assert_not_called()
        assert page.evaluate.await_count == 1

    def test_image_inputs_are_collected(self):
        """Test image inputs are collected with images."""
        assert 'input[type="image" i][src]' in SELECTORS["image"]
        assert SELECTORS["styleElement"] == "style"
        assert "url(" in SELECTORS["styleAttribute"]

    @pytest.mark.asyncio
    async def test_inlines_image_inputs(self, inliner, page):
        """Test image inputs are inlined like images."""
        page.evaluate.side_effect = [[{"kind": "image", "index": 1, "url": "img/logo.png"}], None]
        document = HTMLDocument('<img src="data:,"><input type="image" src="img/logo.png">')

        await inliner.inline_references(document, {"base_url": "http://example.com/"})

        replacements = page.evaluate.await_args_list[1].args[1][1]
        assert replacements == [{"kind": "image", "index": 1, "data": "data:image/png;base64,UE5H"}]

    @pytest.mark.asyncio
    async def test_browser_failure_is_a_document_error(self, inliner, page):
        """Test a broken page setup is reported, not raised."""
        page.set_content.side_effect = RuntimeError("browser crashed")

        errors = await inliner.inline_references(HTMLDocument("<p></p>"), {})

        assert len(errors) == 1
        assert errors[0].resource_type == "document"
        assert "browser crashed" in errors[0].msg
