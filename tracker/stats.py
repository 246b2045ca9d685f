"""
Summary statistics over a user's book collection.
"""

from typing import Iterable

from tracker.models import Book, BookStatus, ReadingStats, round_half_up


def summarize_books(books: Iterable[Book]) -> ReadingStats:
    """
    Count books per status and aggregate reading progress.

    ``average_progress`` only considers books with a positive page count and
    is not clamped, so a current page beyond the last page raises it past 100.
    """
    stats = ReadingStats()
    progress_values = []

    for book in books:
        stats.total_books += 1
        if book.status == BookStatus.READING:
            stats.reading_count += 1
        elif book.status == BookStatus.UNREAD:
            stats.want_count += 1
        elif book.status == BookStatus.FINISHED:
            stats.finished_count += 1

        stats.total_pages_read += book.current_page or 0

        if book.total_pages and book.total_pages > 0:
            progress_values.append((book.current_page or 0) / book.total_pages * 100)

    if progress_values:
        stats.average_progress = round_half_up(sum(progress_values) / len(progress_values))

    return stats
