from app.services.aggregation_service import (
    COMPLETED, IN_PROGRESS, BookFilters, aggregation_service
)
from app.services.identity_service import GuestIdentity
from app.services.progress_service import progress_service


def record(db, identity, book, chapter, played):
    progress_service.record_progress(db, identity, book.id, chapter.id, played)


def test_classify_statuses(db, make_book, make_chapter):
    guest = GuestIdentity("guest-agg")
    untouched = make_book()
    make_chapter(untouched)

    halfway = make_book()
    half_chapters = [make_chapter(halfway) for _ in range(2)]
    record(db, guest, halfway, half_chapters[0], 100)

    finished = make_book()
    finished_chapter = make_chapter(finished)
    record(db, guest, finished, finished_chapter, 100)

    summaries = aggregation_service.classify(db, guest, [untouched.id, halfway.id, finished.id])

    assert summaries[untouched.id].status is None
    assert summaries[halfway.id].status == IN_PROGRESS
    assert summaries[halfway.id].percent == 50.0
    assert summaries[finished.id].status == COMPLETED


def test_started_at_zero_percent_is_in_progress(db, make_book, make_chapter):
    guest = GuestIdentity("guest-zero")
    book = make_book()
    chapter = make_chapter(book)
    record(db, guest, book, chapter, 0)

    summary = aggregation_service.classify(db, guest, [book.id])[book.id]

    assert summary.has_progress is True
    assert summary.status == IN_PROGRESS


def test_book_is_never_in_both_listings(db, make_book, make_chapter):
    guest = GuestIdentity("guest-lists")
    books = []
    for played in (10, 50, 94, 95, 100):
        book = make_book()
        record(db, guest, book, make_chapter(book), played)
        books.append(book)
    make_chapter(make_book())

    in_progress, in_progress_total = aggregation_service.list_in_progress(
        db, guest, BookFilters(), page=1, per_page=50
    )
    completed, completed_total = aggregation_service.list_completed(
        db, guest, BookFilters(), page=1, per_page=50
    )

    in_progress_ids = {book.id for book, _ in in_progress}
    completed_ids = {book.id for book, _ in completed}

    assert in_progress_total == 3
    assert completed_total == 2
    assert not in_progress_ids & completed_ids
    assert in_progress_ids | completed_ids == {b.id for b in books}


def test_listing_paginates_after_classification(db, make_book, make_chapter):
    guest = GuestIdentity("guest-page")
    # completed books interleaved with in-progress ones by creation time
    for i in range(6):
        book = make_book(title=f"Title {i}")
        record(db, guest, book, make_chapter(book), 100 if i % 2 else 20)

    page_one, total = aggregation_service.list_completed(
        db, guest, BookFilters(sort_by="title", sort_order="asc"), page=1, per_page=2
    )
    page_two, _ = aggregation_service.list_completed(
        db, guest, BookFilters(sort_by="title", sort_order="asc"), page=2, per_page=2
    )

    assert total == 3
    assert [b.title for b, _ in page_one] == ["Title 1", "Title 3"]
    assert [b.title for b, _ in page_two] == ["Title 5"]


def test_listing_respects_search_filter(db, make_book, make_chapter):
    guest = GuestIdentity("guest-search")
    stoic = make_book(title="Stoic Mornings")
    other = make_book(title="Deep Work")
    record(db, guest, stoic, make_chapter(stoic), 30)
    record(db, guest, other, make_chapter(other), 30)

    rows, total = aggregation_service.list_in_progress(
        db, guest, BookFilters(search="stoic"), page=1, per_page=10
    )

    assert total == 1
    assert rows[0][0].id == stoic.id


def test_other_identity_sees_nothing(db, make_book, make_chapter):
    book = make_book()
    record(db, GuestIdentity("owner"), book, make_chapter(book), 50)

    rows, total = aggregation_service.list_in_progress(
        db, GuestIdentity("stranger"), BookFilters(), page=1, per_page=10
    )

    assert rows == []
    assert total == 0


def test_classification_uses_unrounded_mean(db, make_book, make_chapter):
    guest = GuestIdentity("guest-edge")
    book = make_book()
    chapters = [make_chapter(book, duration="10000") for _ in range(3)]
    for chapter, played in zip(chapters, (10000, 10000, 8499)):
        record(db, guest, book, chapter, played)

    summary = aggregation_service.classify(db, guest, [book.id])[book.id]

    # 94.9966... displays as 95.0 but is still below the threshold
    assert summary.percent == 95.0
    assert summary.mean_percent < 95
    assert summary.status == IN_PROGRESS

    completed, total = aggregation_service.list_completed(db, guest, BookFilters(), page=1, per_page=10)
    assert total == 0
