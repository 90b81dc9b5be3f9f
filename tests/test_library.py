import pytest

from library_api.cache import BORROWED_BOOKS_KEY
from library_api.models import BorrowedBook, utcnow

from conftest import auth_headers, login_user, register_user


def borrow(client, headers, book_id, reader_id):
    return client.post("/borrowed/borrow", json={"book_id": book_id, "reader_id": reader_id}, headers=headers)


# books

def test_add_book_any_authenticated_role(client, user_headers):
    res = client.post("/books", json={"title": "Dune", "author": "Herbert", "year": 1965, "genre": "SF"},
                      headers=user_headers)
    assert res.status_code == 200
    book = res.json()["book"]
    assert book["id"] > 0
    assert book["title"] == "Dune"


@pytest.mark.parametrize("payload", [
    {"title": "T", "author": "A", "year": -1, "genre": "G"},
    {"title": "T", "author": "A", "genre": "G"},
    {"title": "", "author": "A", "year": 2000, "genre": "G"},
    {"title": "T", "author": "A", "year": "soon", "genre": "G"},
])
def test_add_book_validation(client, user_headers, payload):
    res = client.post("/books", json=payload, headers=user_headers)
    assert res.status_code == 400
    assert res.json()["errors"]


# readers

def test_add_reader_needs_no_token(client):
    res = client.post("/readers", json={"name": "R", "email": "r@x.com", "phone": "1"})
    assert res.status_code == 200
    assert res.json()["reader"]["email"] == "r@x.com"


@pytest.mark.parametrize("email", ["nope", "a@.b.c", "a@b..c", "a@b.c.", "a..b@x.com", "x@-bad-.com"])
def test_add_reader_bad_email(client, email):
    res = client.post("/readers", json={"name": "R", "email": email, "phone": "1"})
    assert res.status_code == 400
    assert res.json()["errors"][0]["path"] == "email"


def test_add_reader_keeps_local_part_case(client):
    res = client.post("/readers", json={"name": "R", "email": "Mixed@X.com", "phone": "1"})
    assert res.status_code == 200
    assert res.json()["reader"]["email"] == "Mixed@x.com"


def test_duplicate_reader_email_is_generic_server_error(client, reader):
    res = client.post("/readers", json={"name": "R2", "email": "r@x.com", "phone": "2"})
    assert res.status_code == 500
    assert res.json() == {"error": "Server error while adding reader"}


# borrowing

def test_borrow_creates_open_loan(client, user_headers, book, reader):
    res = borrow(client, user_headers, book["id"], reader["id"])
    assert res.status_code == 200
    loan = res.json()["borrowedBook"]
    assert loan["book_id"] == book["id"]
    assert loan["reader_id"] == reader["id"]
    assert loan["borrow_date"]
    assert loan["return_date"] is None


def test_borrow_unknown_book(client, user_headers, reader, db_session):
    res = borrow(client, user_headers, 999, reader["id"])
    assert res.status_code == 404
    assert res.json()["error"] == "Book not found"
    assert db_session.query(BorrowedBook).count() == 0


def test_borrow_unknown_reader(client, user_headers, book, db_session):
    res = borrow(client, user_headers, book["id"], 999)
    assert res.status_code == 404
    assert res.json()["error"] == "Reader not found"
    assert db_session.query(BorrowedBook).count() == 0


def test_borrow_checks_book_before_reader(client, user_headers):
    res = borrow(client, user_headers, 999, 999)
    assert res.json()["error"] == "Book not found"


def test_borrow_validation(client, user_headers):
    res = client.post("/borrowed/borrow", json={"book_id": "abc"}, headers=user_headers)
    assert res.status_code == 400
    paths = {err["path"] for err in res.json()["errors"]}
    assert {"book_id", "reader_id"} <= paths


# returning

def test_return_twice(client, user_headers, admin_headers, book, reader, db_session):
    loan_id = borrow(client, user_headers, book["id"], reader["id"]).json()["borrowedBook"]["id"]

    first = client.put(f"/borrowed/return/{loan_id}", headers=admin_headers)
    assert first.status_code == 200
    assert "message" in first.json()
    returned_at = db_session.get(BorrowedBook, loan_id).return_date
    assert returned_at is not None

    for _ in range(2):
        again = client.put(f"/borrowed/return/{loan_id}", headers=admin_headers)
        assert again.status_code == 400
        assert again.json()["error"] == "Book already returned"

    db_session.expire_all()
    assert db_session.get(BorrowedBook, loan_id).return_date == returned_at


def test_return_losing_concurrent_update_conflicts(app, client, monkeypatch, user_headers, admin_headers,
                                                   book, reader, db_session):
    loan_id = borrow(client, user_headers, book["id"], reader["id"]).json()["borrowedBook"]["id"]
    assert client.put(f"/borrowed/return/{loan_id}", headers=admin_headers).status_code == 200
    returned_at = db_session.get(BorrowedBook, loan_id).return_date
    assert client.get("/borrowed", headers=user_headers).json() == []

    # the loaded row still looks open, as it would to a request racing the first return
    monkeypatch.setattr(BorrowedBook, "is_open", property(lambda self: True))
    res = client.put(f"/borrowed/return/{loan_id}", headers=admin_headers)
    assert res.status_code == 400
    assert res.json()["error"] == "Book already returned"

    db_session.expire_all()
    assert db_session.get(BorrowedBook, loan_id).return_date == returned_at
    assert app.state.context.cache.get(BORROWED_BOOKS_KEY) == []


def test_return_unknown_loan(client, admin_headers):
    res = client.put("/borrowed/return/12345", headers=admin_headers)
    assert res.status_code == 404


def test_return_non_integer_id(client, admin_headers):
    res = client.put("/borrowed/return/abc", headers=admin_headers)
    assert res.status_code == 400


# open loans list and its cache

def test_borrowed_list_reflects_borrow_and_return_within_ttl(client, user_headers, admin_headers, book, reader):
    assert client.get("/borrowed", headers=user_headers).json() == []

    loan_id = borrow(client, user_headers, book["id"], reader["id"]).json()["borrowedBook"]["id"]
    listed = client.get("/borrowed", headers=user_headers).json()
    assert [item["id"] for item in listed] == [loan_id]

    client.put(f"/borrowed/return/{loan_id}", headers=admin_headers)
    assert client.get("/borrowed", headers=user_headers).json() == []


def test_borrowed_list_is_served_from_cache(app, client, user_headers, book, reader, db_session):
    assert client.get("/borrowed", headers=user_headers).json() == []

    # written behind the API's back, so nothing invalidates the snapshot
    db_session.add(BorrowedBook(book_id=book["id"], reader_id=reader["id"], borrow_date=utcnow()))
    db_session.commit()
    assert client.get("/borrowed", headers=user_headers).json() == []

    app.state.context.cache.clear()
    assert len(client.get("/borrowed", headers=user_headers).json()) == 1


def test_end_to_end_loan_lifecycle(client):
    assert register_user(client, "boss@x.com", "bosspass", role="admin").status_code == 201
    token = login_user(client, "boss@x.com", "bosspass").json()["token"]
    headers = auth_headers(token)

    book = client.post("/books", json={"title": "T", "author": "A", "year": 2020, "genre": "G"},
                       headers=headers).json()["book"]
    reader = client.post("/readers", json={"name": "R", "email": "r@x.com", "phone": "1"}).json()["reader"]

    loan = borrow(client, headers, book["id"], reader["id"]).json()["borrowedBook"]
    listed = client.get("/borrowed", headers=headers).json()
    assert any(item["id"] == loan["id"] and item["return_date"] is None for item in listed)

    assert client.put(f"/borrowed/return/{loan['id']}", headers=headers).status_code == 200
    listed = client.get("/borrowed", headers=headers).json()
    assert all(item["id"] != loan["id"] for item in listed)
