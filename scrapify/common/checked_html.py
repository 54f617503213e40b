"""Checked HTML element wrapper for safe XPath/CSS querying.

This module provides CheckedHtmlElement, a wrapper around
lxml.html.HtmlElement that validates selector results against expected
counts, plus the lenient helpers adapters use to pull sub-fields out of
repeating element groups. A count violation means the markup changed and is
raised as ParseError; a missing optional sub-field is just an empty string.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import overload

from lxml import etree, html
from lxml.html import HtmlElement

from scrapify.common.exceptions import ParseError


def parse_html(text: str, url: str = "") -> CheckedHtmlElement:
    """Parse an HTML document or fragment into a CheckedHtmlElement.

    Args:
        text: The HTML source.
        url: URL the HTML came from, for error context.

    Returns:
        The wrapped root element.

    Raises:
        ParseError: If the text is empty or cannot be parsed.
    """
    if not text or not text.strip():
        raise ParseError("Empty HTML document", context={"url": url})
    try:
        root = html.fromstring(text)
    except (etree.ParserError, ValueError) as e:
        raise ParseError(
            f"Could not parse HTML: {e}", context={"url": url}
        ) from e
    return CheckedHtmlElement(root, url)


def html_to_text(fragment: str) -> str:
    """Return the visible text of an HTML fragment, stripped.

    Plain text passes through unchanged.
    """
    if not fragment or "<" not in fragment:
        return (fragment or "").strip()
    try:
        return html.fromstring(fragment).text_content().strip()
    except (etree.ParserError, ValueError):
        return fragment.strip()


class CheckedHtmlElement:
    """Wrapper around HtmlElement with validated selectors.

    checked_xpath() and checked_css() validate the number of results against
    expected min/max counts and raise ParseError with the selector, the
    description and the counts when the page doesn't match.
    """

    def __init__(self, element: HtmlElement, request_url: str = "") -> None:
        """Initialize the checked element wrapper.

        Args:
            element: The lxml HtmlElement to wrap.
            request_url: Optional URL for error context.
        """
        self._element = element
        self._request_url = request_url

    def _check_count(
        self,
        selector: str,
        selector_type: str,
        description: str,
        min_count: int,
        max_count: int | None,
        actual_count: int,
    ) -> None:
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            if max_count is None:
                expected_str = f"at least {min_count}"
            elif min_count == max_count:
                expected_str = f"exactly {min_count}"
            else:
                expected_str = f"between {min_count} and {max_count}"
            raise ParseError(
                f"HTML structure mismatch: Expected {expected_str} "
                f"elements for '{description}', but found {actual_count}",
                selector=selector,
                expected_min=min_count,
                actual_count=actual_count,
                context={
                    "selector_type": selector_type,
                    "url": self._request_url,
                },
            )

    @overload
    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
        *,
        type: type[str],
    ) -> list[str]: ...

    @overload
    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]: ...

    def checked_xpath(
        self,
        xpath: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
        *,
        type: type[str] | None = None,
    ) -> list[CheckedHtmlElement] | list[str]:
        """Execute XPath query with count validation.

        Args:
            xpath: XPath expression to execute.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of results expected (default: 1).
            max_count: Maximum number of results expected (None = unlimited).
            type: Pass `str` to return only string results (text/attributes).

        Returns:
            CheckedHtmlElements by default; strings with type=str.

        Raises:
            ParseError: If count doesn't match expectations.
        """
        results = self._element.xpath(xpath)

        if type is str:
            strings: list[str] = [str(r) for r in results if isinstance(r, str)]
            self._check_count(
                xpath, "xpath", description, min_count, max_count, len(strings)
            )
            return strings

        wrapped = [
            CheckedHtmlElement(r, self._request_url)
            for r in results
            if isinstance(r, HtmlElement)
        ]
        self._check_count(
            xpath, "xpath", description, min_count, max_count, len(wrapped)
        )
        return wrapped

    def checked_css(
        self,
        selector: str,
        description: str,
        min_count: int = 1,
        max_count: int | None = None,
    ) -> list[CheckedHtmlElement]:
        """Execute CSS selector query with count validation.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 1).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching CheckedHtmlElements.

        Raises:
            ParseError: If count doesn't match expectations.

        Example::

            tree = parse_html(page_text)
            rows = tree.checked_css("a.search_result_row", "game rows", min_count=1)
            for row in rows:
                title = row.first_text(["span.title"])
        """
        try:
            results = self._element.cssselect(selector)
        except Exception as e:
            raise ParseError(
                f"Invalid CSS selector for '{description}'",
                selector=selector,
                expected_min=min_count,
                actual_count=0,
                context={"url": self._request_url},
            ) from e

        self._check_count(
            selector, "css", description, min_count, max_count, len(results)
        )
        return [CheckedHtmlElement(r, self._request_url) for r in results]

    def select_first_matching(
        self,
        selectors: Sequence[str],
        description: str,
    ) -> tuple[str | None, list[CheckedHtmlElement]]:
        """Try selectors in priority order and stop at the first with matches.

        Markup drift is absorbed by listing fallbacks after the preferred
        selector. No match at all is not an error here; callers decide.

        Returns:
            The selector that matched (or None) and its elements.
        """
        for selector in selectors:
            matches = self.checked_css(selector, description, min_count=0)
            if matches:
                return selector, matches
        return None, []

    def first_text(self, selectors: Sequence[str]) -> str:
        """Return the stripped text of the first selector yielding non-empty text.

        Missing sub-elements give an empty string, never an exception.
        """
        for selector in selectors:
            for match in self._element.cssselect(selector):
                text = match.text_content().strip()
                if text:
                    return text
        return ""

    def attr(self, name: str, default: str = "") -> str:
        """Return an attribute value, or ``default`` when absent."""
        value = self._element.get(name)
        return value if value is not None else default

    def text(self) -> str:
        """Return the stripped visible text of the element."""
        return self._element.text_content().strip()

    def __getattr__(self, name: str):
        """Delegate all other attributes to the wrapped element."""
        return getattr(self._element, name)
