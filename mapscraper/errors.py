"""Custom exception types for mapscraper."""

from __future__ import annotations

from typing import Optional


class ScraperError(Exception):
    """Base error carrying the URL/query that was being worked on."""

    default_message = "Scraper failure."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        url: Optional[str] = None,
        query: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.url = url
        self.query = query
        super().__init__(self.message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.url:
            context_parts.append(f"url={self.url}")
        if self.query:
            context_parts.append(f"query={self.query}")
        context = ", ".join(context_parts)
        return f"{self.message} ({context})" if context else self.message


class PageLoadError(ScraperError):
    """Raised when a page fails to load or render correctly."""

    default_message = "Failed to load page."


class BatchWriteError(ScraperError):
    """Raised when a batch file could not be written and renamed into place."""

    default_message = "Failed to write batch file."


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""
