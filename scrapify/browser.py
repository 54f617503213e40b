"""Headless browser lifecycle for JavaScript-rendered sources.

Each scrape owns one browser and one page for its whole duration:

1. Launch an isolated headless Chromium (one per call, never pooled)
2. Open a page with a realistic user agent and header set
3. Navigate waiting for "domcontentloaded", falling back once to "load"
   when the first attempt fails because the frame was detached
4. Wait a fixed settle interval for client-side rendering
5. Evaluate an extraction routine in the page that tries prioritized
   selectors and stops at the first that matches

The page and then the browser are closed on every exit path.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import Any

from playwright.async_api import Browser, Page, Response, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scrapify.common.exceptions import (
    NetworkError,
    ParseError,
    RequestTimeoutError,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
    "Upgrade-Insecure-Requests": "1",
}
DEFAULT_VIEWPORT = {"width": 1280, "height": 720}
BROWSER_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--disable-extensions",
    "--no-first-run",
]

BrowserLauncher = Callable[..., AbstractAsyncContextManager[Browser]]

# Runs inside the page. Tries card selectors in priority order, then pulls
# each field from the first of its selectors with non-empty text.
EXTRACT_CARDS_JS = """({selectors, fields, linkSelector}) => {
    let cards = [];
    let matched = null;
    for (const selector of selectors) {
        cards = Array.from(document.querySelectorAll(selector));
        if (cards.length > 0) {
            matched = selector;
            break;
        }
    }
    const firstText = (card, candidates) => {
        for (const candidate of candidates) {
            const el = card.querySelector(candidate);
            const text = el && el.textContent ? el.textContent.trim() : '';
            if (text) return text;
        }
        return '';
    };
    const rows = cards.map((card) => {
        const row = {};
        for (const [name, candidates] of Object.entries(fields)) {
            try {
                row[name] = firstText(card, candidates);
            } catch (e) {
                row[name] = '';
            }
        }
        const link = card.matches(linkSelector) ? card : card.querySelector(linkSelector);
        row.link = link ? (link.getAttribute('href') || '') : '';
        return row;
    });
    return {selector: matched, rows: rows};
}"""


@asynccontextmanager
async def launch_chromium(headless: bool = True) -> AsyncIterator[Browser]:
    """Start Playwright and launch a Chromium browser.

    Only owns the Playwright driver process; closing the browser is left to
    open_page() so page and browser are torn down in order.
    """
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(
            headless=headless, args=BROWSER_ARGS
        )
        yield browser


async def _close_quietly(resource: Any, label: str) -> None:
    try:
        await resource.close()
    except Exception as e:
        logger.warning(f"Error closing {label}: {e}")


@asynccontextmanager
async def open_page(
    launcher: BrowserLauncher | None = None,
    *,
    headless: bool = True,
    user_agent: str = DEFAULT_USER_AGENT,
    headers: Mapping[str, str] | None = None,
    viewport: Mapping[str, int] | None = None,
) -> AsyncIterator[Page]:
    """Open one page in a freshly launched browser.

    Args:
        launcher: Async context manager factory yielding a Browser. Defaults
            to launch_chromium.
        headless: Run the browser without a window.
        user_agent: User agent presented to the site.
        headers: Extra HTTP headers sent with every page request.
        viewport: Page viewport size.

    Yields:
        The open Page. On exit the page is closed, then the browser, each
        exactly once whatever happened inside the block.
    """
    launcher = launcher or launch_chromium
    async with launcher(headless=headless) as browser:
        page: Page | None = None
        try:
            page = await browser.new_page(
                user_agent=user_agent,
                viewport=dict(viewport or DEFAULT_VIEWPORT),
            )
            await page.set_extra_http_headers(dict(headers or DEFAULT_HEADERS))
            yield page
        finally:
            if page is not None:
                await _close_quietly(page, "page")
            await _close_quietly(browser, "browser")


async def navigate(page: Page, url: str, timeout: float) -> Response | None:
    """Navigate to ``url``, retrying once with a slower wait strategy.

    The first attempt waits for "domcontentloaded". If it fails because the
    frame was detached, a single second attempt waits for "load". Any other
    failure, or a second failure, is raised.

    Args:
        page: The page to navigate.
        url: Target URL.
        timeout: Navigation timeout in seconds.

    Returns:
        The navigation response.

    Raises:
        RequestTimeoutError: If navigation times out.
        NetworkError: If navigation fails or the response is not OK.
    """
    timeout_ms = timeout * 1000
    try:
        response = await page.goto(
            url, wait_until="domcontentloaded", timeout=timeout_ms
        )
    except PlaywrightTimeoutError as e:
        raise RequestTimeoutError(url=url, timeout_seconds=timeout) from e
    except PlaywrightError as e:
        if "detached" not in str(e).lower():
            raise NetworkError(f"Navigation to {url} failed: {e}", url=url) from e
        logger.warning(f"Frame detached navigating to {url}, retrying with 'load'")
        try:
            response = await page.goto(url, wait_until="load", timeout=timeout_ms)
        except PlaywrightTimeoutError as retry_error:
            raise RequestTimeoutError(
                url=url, timeout_seconds=timeout
            ) from retry_error
        except PlaywrightError as retry_error:
            raise NetworkError(
                f"Navigation to {url} failed: {retry_error}", url=url
            ) from retry_error

    if response is None:
        raise NetworkError(f"Failed to load page: no response from {url}", url=url)
    if not response.ok:
        raise NetworkError(
            f"Failed to load page: HTTP {response.status}",
            url=url,
            status_code=response.status,
        )
    return response


async def settle(delay: float) -> None:
    """Give client-side rendering a fixed interval to finish.

    There is no completion signal; the delay is a heuristic.
    """
    if delay > 0:
        await asyncio.sleep(delay)


async def evaluate_cards(
    page: Page,
    selectors: Sequence[str],
    fields: Mapping[str, Sequence[str]],
    link_selector: str = "a",
    timeout: float | None = None,
) -> tuple[str | None, list[dict[str, str]]]:
    """Extract raw card fields inside the page.

    Args:
        page: A page that has finished rendering.
        selectors: Card selectors in priority order; the first with matches wins.
        fields: Field name to candidate sub-selectors, in priority order.
        link_selector: Selector for the card's link.
        timeout: Seconds the in-page routine may run; None waits forever.

    Returns:
        The selector that matched (None if none did) and one dict of raw
        strings per card. Missing sub-elements give empty strings.

    Raises:
        RequestTimeoutError: If evaluation runs past ``timeout``.
        ParseError: If the extraction routine fails in the page.
    """
    try:
        result = await asyncio.wait_for(
            page.evaluate(
                EXTRACT_CARDS_JS,
                {
                    "selectors": list(selectors),
                    "fields": {name: list(c) for name, c in fields.items()},
                    "linkSelector": link_selector,
                },
            ),
            timeout,
        )
    except (asyncio.TimeoutError, PlaywrightTimeoutError) as e:
        raise RequestTimeoutError(url=page.url, timeout_seconds=timeout) from e
    except PlaywrightError as e:
        raise ParseError(
            f"In-page extraction failed: {e}", context={"url": page.url}
        ) from e

    if not isinstance(result, dict):
        raise ParseError(
            "In-page extraction returned an unexpected value",
            context={"url": page.url},
        )
    matched = result.get("selector")
    if matched:
        logger.debug(f"Card selector '{matched}' matched on {page.url}")
    return matched, list(result.get("rows") or [])
