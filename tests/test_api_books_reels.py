import uuid

from app.services.identity_service import GuestIdentity, UserIdentity
from app.services.progress_service import progress_service
from app.services.tag_service import tag_service


def titles(response):
    return [item["title"] for item in response.json()["items"]]


def test_related_books_by_tag_query(client, make_book):
    make_book(title="A", tags=["x"], minutes=1)
    make_book(title="B", tags=["y"], minutes=2)
    make_book(title="C", tags=["x"], minutes=3)

    r = client.get("/api/books", params={"type": "related_books", "tag": "x"})

    assert r.status_code == 200
    assert titles(r) == ["C", "A", "B"]
    body = r.json()
    assert body["related_tags"] == ["x"]
    assert body["total"] == 3
    assert body["items"][0]["matched_tags"] == ["x"]


def test_related_books_paginates_after_prioritizing(client, make_book):
    make_book(title="old-match", tags=["x"], minutes=1)
    for i in range(3):
        make_book(title=f"new-{i}", tags=["y"], minutes=10 + i)

    r = client.get("/api/books", params={"type": "related_books", "tag": '["x"]', "per_page": 2})

    assert titles(r) == ["old-match", "new-2"]


def test_related_books_default_to_chosen_tags(client, db, make_user, make_book, auth_headers_for):
    tag = tag_service.get_or_create_tag(db, "Finance")
    db.commit()
    user = make_user(chosen_tags=[str(tag.id)])
    make_book(title="match", tags=["Finance"], minutes=1)
    make_book(title="other", tags=[], minutes=2)

    r = client.get("/api/books", params={"type": "related_books"}, headers=auth_headers_for(user))

    assert titles(r) == ["match", "other"]
    assert r.json()["related_tags"] == ["Finance"]


def test_default_listing_filters_and_sorts(client, make_book):
    make_book(title="Beta", author="Ann", minutes=1)
    make_book(title="Alpha", author="Bob", minutes=2)
    make_book(title="Hidden", author="Ann", minutes=3, active=False)

    r = client.get("/api/books", params={"sort_by": "title", "sort_order": "asc"})
    assert titles(r) == ["Alpha", "Beta"]
    assert r.json()["total"] == 2
    assert "related_tags" not in r.json()

    r = client.get("/api/books", params={"author": "Ann"})
    assert titles(r) == ["Beta"]


def test_progress_listings(client, db, make_book, make_chapter):
    guest = GuestIdentity("guest-lists")
    reading = make_book(title="Reading")
    done = make_book(title="Done")
    make_book(title="Untouched")
    progress_service.record_progress(db, guest, reading.id, make_chapter(reading).id, 40)
    progress_service.record_progress(db, guest, done.id, make_chapter(done).id, 100)
    headers = {"X-Guest-Identifier": "guest-lists"}

    r = client.get("/api/books", params={"type": "book_progress"}, headers=headers)
    assert titles(r) == ["Reading"]
    assert r.json()["items"][0]["progress"]["percent"] == 40.0

    r = client.get("/api/books", params={"type": "completed_books"}, headers=headers)
    assert titles(r) == ["Done"]


def test_progress_listing_requires_identity(client):
    r = client.get("/api/books", params={"type": "book_progress"})

    assert r.status_code == 401


def test_book_detail_with_progress(client, db, make_book, make_chapter):
    book = make_book(title="Detail")
    first = make_chapter(book, duration="1:40")
    make_chapter(book, duration="")
    progress_service.record_progress(db, GuestIdentity("g-detail"), book.id, first.id, 100)

    r = client.get(f"/api/books/{book.id}", headers={"X-Guest-Identifier": "g-detail"})

    assert r.status_code == 200
    body = r.json()
    assert body["chapter_count"] == 2
    assert body["chapters"][0]["duration_display"] == "00:01:40"
    assert body["chapters"][0]["progress"]["completed"] is True
    assert body["chapters"][1]["progress"]["percent"] == 0.0
    assert body["overall_progress"]["percent"] == 50.0


def test_book_detail_not_found(client):
    r = client.get(f"/api/books/{uuid.uuid4()}")

    assert r.status_code == 404


def test_reels_default_priority_tag(client, make_reel):
    make_reel(tags=["reels"], minutes=1)
    make_reel(tags=["other"], minutes=2)
    make_reel(tags=["Reels"], minutes=3, active=False)

    r = client.get("/api/reels")

    assert r.status_code == 200
    body = r.json()
    assert body["priority_tags"] == ["Reels"]
    assert titles(r) == ["Reel 1", "Reel 2"]
    assert body["total"] == 2


def test_reels_use_chosen_tags(client, db, make_user, make_reel, auth_headers_for):
    tag = tag_service.get_or_create_tag(db, "Mindset")
    db.commit()
    user = make_user(chosen_tags=[str(tag.id)])
    make_reel(tags=["mindset"], minutes=1)
    make_reel(tags=["Reels"], minutes=2)

    r = client.get("/api/reels", params={"limit": 1}, headers=auth_headers_for(user))

    body = r.json()
    assert body["priority_tags"] == ["Mindset"]
    assert titles(r) == ["Reel 1"]
    assert body["total_pages"] == 2


def test_user_identity_reads_own_progress_only(db, make_user, make_book, make_chapter):
    user = make_user()
    book = make_book()
    chapter = make_chapter(book)
    progress_service.record_progress(db, GuestIdentity("someone"), book.id, chapter.id, 100)

    view = progress_service.get_book_progress(db, UserIdentity(user.id), book.id)

    assert view.overall.completed_chapters == 0
