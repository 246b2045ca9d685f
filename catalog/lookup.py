"""
External catalog lookup with a provider fallback chain.

ISBN queries try Google Books, then Open Library's ISBN-keyed endpoint, then
Open Library's search endpoint filtered by ISBN. Title queries only use Open
Library search. Each provider request is time-bounded and retried on transport
failures; once a provider's retries are exhausted the chain moves on.
"""

import asyncio
import re
from typing import Any, Dict, List, Optional

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from catalog.models import CanonicalBook, ProviderKind, normalize, parse_record
from tracker.errors import NotFoundError, ServerError, ValidationError
from utilities.config import LookupConfig
from utilities.logger import LookupLogger

logger = structlog.get_logger(__name__)

ISBN_PATTERN = re.compile(r"^[\d-]+$")


class ProviderUnavailable(Exception):
    """A provider could not be reached after every retry."""


def classify_isbn(query: str) -> Optional[str]:
    """
    Return the hyphen-free ISBN if ``query`` is made only of digits and hyphens.

    Returns None for free-text queries.
    """
    stripped = query.strip()
    if not ISBN_PATTERN.match(stripped):
        return None
    isbn = stripped.replace("-", "")
    return isbn or None


class CatalogLookup:
    """
    Resolves book metadata from external providers.

    One instance is shared by all requests; per-lookup state lives in local
    variables and a per-call ``LookupLogger``.
    """

    def __init__(self, config: LookupConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize the lookup client.

        Args:
            config: Provider endpoints, timeout and retry policy
            client: Optional pre-built HTTP client (tests pass one with a mock transport)
        """
        self.config = config
        self.client = client or httpx.AsyncClient(
            timeout=config.request_timeout,
            headers=config.get_headers(),
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def search(self, query: str) -> Dict[str, Any]:
        """
        Search by ISBN or title.

        Returns:
            ``{"query", "count", "books"}``; an empty ``books`` list when nothing is found
        """
        isbn = classify_isbn(query)
        lookup_logger = LookupLogger("catalog.search")
        lookup_logger.log_lookup_start(query, "isbn" if isbn else "title")

        if isbn:
            try:
                book = await self._resolve_isbn(isbn, lookup_logger)
            except ProviderUnavailable:
                book = None
            books = [book] if book else []
        else:
            books = await self._search_titles(query.strip(), lookup_logger)

        lookup_logger.log_lookup_complete(len(books))
        return {"query": query, "count": len(books), "books": books}

    async def lookup_by_isbn(self, isbn: str) -> Dict[str, Any]:
        """
        Resolve exactly one record for an ISBN.

        Raises:
            ValidationError: ``isbn`` is not made of digits and hyphens
            NotFoundError: every provider answered without a record
            ServerError: no provider could be reached
        """
        normalized = classify_isbn(isbn)
        if not normalized:
            raise ValidationError("ISBN must contain only digits and hyphens")

        lookup_logger = LookupLogger("catalog.lookup_by_isbn")
        lookup_logger.log_lookup_start(isbn, "isbn")

        try:
            book = await self._resolve_isbn(normalized, lookup_logger)
        except ProviderUnavailable:
            raise ServerError("Book information providers are currently unavailable")

        if not book:
            raise NotFoundError(f"No book found for ISBN {normalized}")

        lookup_logger.log_lookup_complete(1)
        return {"book": book}

    async def _resolve_isbn(self, isbn: str, lookup_logger: LookupLogger) -> Optional[CanonicalBook]:
        """
        Walk the ISBN chain and return the first usable record.

        Raises ProviderUnavailable only when no provider in the chain could be reached.
        """
        steps = (
            self._from_google_books,
            self._from_open_library_books,
            self._from_open_library_search,
        )
        reachable = False

        for step in steps:
            try:
                book = await step(isbn, lookup_logger)
            except ProviderUnavailable:
                continue
            reachable = True
            if book:
                return book

        if not reachable:
            raise ProviderUnavailable(isbn)
        return None

    async def _from_google_books(self, isbn: str, lookup_logger: LookupLogger) -> Optional[CanonicalBook]:
        params = {"q": f"isbn:{isbn}"}
        if self.config.google_books_api_key:
            params["key"] = self.config.google_books_api_key

        data = await self._fetch_json(self.config.google_books_url, params, lookup_logger)
        items = (data or {}).get("items") or []
        if not items:
            lookup_logger.log_provider_miss(ProviderKind.GOOGLE_BOOKS.value, self.config.google_books_url)
            return None

        record = self._parse(ProviderKind.GOOGLE_BOOKS, items[0].get("volumeInfo") or {})
        if not record.title:
            lookup_logger.log_provider_miss(ProviderKind.GOOGLE_BOOKS.value, self.config.google_books_url)
            return None
        return normalize(record, isbn=isbn)

    async def _from_open_library_books(self, isbn: str, lookup_logger: LookupLogger) -> Optional[CanonicalBook]:
        key = f"ISBN:{isbn}"
        params = {"bibkeys": key, "format": "json", "jscmd": "data"}

        data = await self._fetch_json(self.config.open_library_books_url, params, lookup_logger)
        entry = (data or {}).get(key)
        if not entry:
            lookup_logger.log_provider_miss(ProviderKind.OPEN_LIBRARY_BOOKS.value, self.config.open_library_books_url)
            return None

        return normalize(self._parse(ProviderKind.OPEN_LIBRARY_BOOKS, entry), isbn=isbn)

    async def _from_open_library_search(self, isbn: str, lookup_logger: LookupLogger) -> Optional[CanonicalBook]:
        params = {"isbn": isbn, "limit": 1}

        data = await self._fetch_json(self.config.open_library_search_url, params, lookup_logger)
        docs = (data or {}).get("docs") or []
        if not docs:
            lookup_logger.log_provider_miss(ProviderKind.OPEN_LIBRARY_SEARCH.value, self.config.open_library_search_url)
            return None

        record = self._parse(ProviderKind.OPEN_LIBRARY_SEARCH, docs[0])
        return normalize(record, isbn=isbn, covers_url=self.config.open_library_covers_url)

    async def _search_titles(self, title: str, lookup_logger: LookupLogger) -> List[CanonicalBook]:
        limit = self.config.title_search_limit
        params = {"title": title, "limit": limit}

        try:
            data = await self._fetch_json(self.config.open_library_search_url, params, lookup_logger)
        except ProviderUnavailable:
            return []

        docs = (data or {}).get("docs") or []
        return [
            normalize(
                self._parse(ProviderKind.OPEN_LIBRARY_SEARCH, doc),
                covers_url=self.config.open_library_covers_url,
            )
            for doc in docs[:limit]
        ]

    def _parse(self, kind: ProviderKind, payload: Any):
        try:
            return parse_record(kind, payload)
        except SchemaError as e:
            logger.error("Unexpected provider response shape", provider=kind.value, error=str(e))
            raise ServerError("Unexpected response from book information provider")

    async def _fetch_json(self, url: str, params: Dict[str, Any], lookup_logger: LookupLogger) -> Optional[Dict[str, Any]]:
        """
        GET ``url`` with retry logic and exponential backoff.

        Returns:
            Decoded JSON object, or None when the provider has no such record (4xx)

        Raises:
            ProviderUnavailable: transport errors or 5xx responses outlasted every retry
            ServerError: the body was not a JSON object
        """
        attempts = self.config.retry_attempts + 1
        last_error = None

        for attempt in range(attempts):
            try:
                response = await self.client.get(url, params=params)
            except httpx.TransportError as e:
                last_error = f"{type(e).__name__}: {e}"
            else:
                if response.status_code >= 500:
                    last_error = f"HTTP {response.status_code}"
                elif response.status_code >= 400:
                    if response.status_code != 404:
                        logger.warning("Provider rejected request", url=url, status_code=response.status_code)
                    return None
                else:
                    return self._decode(response, url)

            if attempt < attempts - 1:
                delay = self.config.retry_delay * (2 ** attempt)
                lookup_logger.log_retry(url, attempt + 1, self.config.retry_attempts, delay)
                await asyncio.sleep(delay)

        lookup_logger.log_error(
            f"Provider unavailable after {self.config.retry_attempts} retries: {last_error}",
            url=url,
            retry_count=self.config.retry_attempts,
        )
        raise ProviderUnavailable(url)

    def _decode(self, response: httpx.Response, url: str) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            logger.error("Provider returned invalid JSON", url=url, error=str(e))
            raise ServerError("Unexpected response from book information provider")

        if not isinstance(data, dict):
            logger.error("Provider returned unexpected JSON", url=url, type=type(data).__name__)
            raise ServerError("Unexpected response from book information provider")
        return data
