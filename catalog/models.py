"""
Provider response shapes and the canonical book record they normalize into.

Each provider shape is one member of a tagged union (discriminated on ``kind``)
and knows how to map itself onto ``CanonicalBook``. Missing fields become empty
strings or None; they never raise.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, validator
from pydantic.alias_generators import to_camel

OPEN_LIBRARY_COVERS_URL = "https://covers.openlibrary.org/b/id"


class ProviderKind(str, Enum):
    """Provider response shapes understood by the lookup chain."""
    GOOGLE_BOOKS = "google_books"
    OPEN_LIBRARY_BOOKS = "open_library_books"
    OPEN_LIBRARY_SEARCH = "open_library_search"


class CanonicalBook(BaseModel):
    """Normalized book metadata returned by every lookup."""
    title: str = ""
    author: str = ""
    isbn: str = ""
    publisher: str = ""
    publish_date: str = Field("", alias="publishDate")
    total_pages: Optional[int] = Field(None, alias="totalPages")
    cover_image_url: str = Field("", alias="coverImageUrl")
    description: str = ""

    model_config = {"populate_by_name": True}


class GoogleImageLinks(BaseModel):
    thumbnail: Optional[str] = None
    small_thumbnail: Optional[str] = Field(None, alias="smallThumbnail")


class GoogleIndustryIdentifier(BaseModel):
    type: Optional[str] = None
    identifier: Optional[str] = None


class GoogleBooksVolume(BaseModel):
    """``volumeInfo`` of a Google Books volume (primary ISBN provider)."""
    kind: Literal[ProviderKind.GOOGLE_BOOKS] = ProviderKind.GOOGLE_BOOKS
    title: Optional[str] = None
    subtitle: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    publisher: Optional[str] = None
    published_date: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    image_links: Optional[GoogleImageLinks] = None
    industry_identifiers: List[GoogleIndustryIdentifier] = Field(default_factory=list)

    model_config = {"alias_generator": to_camel, "populate_by_name": True}

    def first_isbn(self) -> str:
        for wanted in ("ISBN_13", "ISBN_10"):
            for identifier in self.industry_identifiers:
                if identifier.type == wanted and identifier.identifier:
                    return identifier.identifier
        return ""

    def to_canonical(self, isbn: Optional[str] = None, covers_url: str = OPEN_LIBRARY_COVERS_URL) -> CanonicalBook:
        cover = ""
        if self.image_links:
            cover = self.image_links.thumbnail or self.image_links.small_thumbnail or ""
        return CanonicalBook(
            title=self.title or "",
            author=", ".join(self.authors),
            isbn=isbn or self.first_isbn(),
            publisher=self.publisher or "",
            publish_date=self.published_date or "",
            total_pages=self.page_count,
            cover_image_url=cover,
            description=self.description or "",
        )


class NamedEntry(BaseModel):
    name: Optional[str] = None


class OpenLibraryCover(BaseModel):
    small: Optional[str] = None
    medium: Optional[str] = None
    large: Optional[str] = None


class OpenLibraryBooksRecord(BaseModel):
    """One entry of the Open Library ``api/books?jscmd=data`` response."""
    kind: Literal[ProviderKind.OPEN_LIBRARY_BOOKS] = ProviderKind.OPEN_LIBRARY_BOOKS
    title: Optional[str] = None
    authors: List[NamedEntry] = Field(default_factory=list)
    publishers: List[NamedEntry] = Field(default_factory=list)
    publish_date: Optional[str] = None
    number_of_pages: Optional[int] = None
    cover: Optional[OpenLibraryCover] = None
    notes: Optional[str] = None

    @validator('notes', pre=True)
    def flatten_text_value(cls, v):
        """Open Library sometimes wraps text as ``{"type": "/type/text", "value": ...}``."""
        if isinstance(v, dict):
            return v.get("value")
        return v

    def to_canonical(self, isbn: Optional[str] = None, covers_url: str = OPEN_LIBRARY_COVERS_URL) -> CanonicalBook:
        cover = ""
        if self.cover:
            cover = self.cover.medium or self.cover.small or ""
        publisher = self.publishers[0].name if self.publishers else None
        return CanonicalBook(
            title=self.title or "",
            author=", ".join(author.name for author in self.authors if author.name),
            isbn=isbn or "",
            publisher=publisher or "",
            publish_date=self.publish_date or "",
            total_pages=self.number_of_pages,
            cover_image_url=cover,
            description=self.notes or "",
        )


class OpenLibrarySearchDoc(BaseModel):
    """One document of the Open Library ``search.json`` response. Carries no description."""
    kind: Literal[ProviderKind.OPEN_LIBRARY_SEARCH] = ProviderKind.OPEN_LIBRARY_SEARCH
    title: Optional[str] = None
    author_name: List[str] = Field(default_factory=list)
    isbn: List[str] = Field(default_factory=list)
    publisher: List[str] = Field(default_factory=list)
    first_publish_year: Optional[int] = None
    number_of_pages_median: Optional[int] = None
    cover_i: Optional[int] = None

    def to_canonical(self, isbn: Optional[str] = None, covers_url: str = OPEN_LIBRARY_COVERS_URL) -> CanonicalBook:
        cover = f"{covers_url}/{self.cover_i}-M.jpg" if self.cover_i else ""
        return CanonicalBook(
            title=self.title or "",
            author=", ".join(self.author_name),
            isbn=isbn or (self.isbn[0] if self.isbn else ""),
            publisher=self.publisher[0] if self.publisher else "",
            publish_date=str(self.first_publish_year) if self.first_publish_year else "",
            total_pages=self.number_of_pages_median,
            cover_image_url=cover,
            description="",
        )


ProviderRecord = Annotated[
    Union[GoogleBooksVolume, OpenLibraryBooksRecord, OpenLibrarySearchDoc],
    Field(discriminator="kind"),
]


def normalize(record: ProviderRecord, isbn: Optional[str] = None, covers_url: str = OPEN_LIBRARY_COVERS_URL) -> CanonicalBook:
    """Map any provider record onto the canonical shape."""
    return record.to_canonical(isbn=isbn, covers_url=covers_url)


def parse_record(kind: ProviderKind, payload: Any) -> ProviderRecord:
    """Validate a raw provider payload as the shape named by ``kind``."""
    shapes = {
        ProviderKind.GOOGLE_BOOKS: GoogleBooksVolume,
        ProviderKind.OPEN_LIBRARY_BOOKS: OpenLibraryBooksRecord,
        ProviderKind.OPEN_LIBRARY_SEARCH: OpenLibrarySearchDoc,
    }
    return shapes[kind].model_validate(payload)
