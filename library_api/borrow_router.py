import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import admin_required, get_current_user
from .cache import BORROWED_BOOKS_KEY, CacheManager
from .context import get_cache, get_db
from .errors import ConflictError, NotFoundError, ServerError
from .models import Book, BorrowedBook, Reader, utcnow
from .security import TokenClaims

logger = logging.getLogger(__name__)


# pydantic schemas
class BorrowRequest(BaseModel):
    book_id: int
    reader_id: int


class BorrowedBookRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    reader_id: int
    borrow_date: datetime
    return_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


borrow_router = APIRouter(prefix="/borrowed", tags=["borrowing"])


def load_open_loans(db: Session) -> List[dict]:
    rows = db.query(BorrowedBook).filter(BorrowedBook.return_date.is_(None)).order_by(BorrowedBook.id).all()
    return [BorrowedBookRead.model_validate(row).model_dump(mode="json") for row in rows]


@borrow_router.get("")
def list_borrowed(
    db: Session = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    user: TokenClaims = Depends(get_current_user),
):
    cached = cache.get(BORROWED_BOOKS_KEY)
    # an empty list is a valid snapshot
    if cached is not None:
        return cached
    try:
        borrowed_books = load_open_loans(db)
    except SQLAlchemyError:
        logger.exception("Error while fetching borrowed books")
        raise ServerError("Server error while fetching borrowed books")
    cache.set(BORROWED_BOOKS_KEY, borrowed_books)
    logger.info(f"Borrowed books list fetched by user {user.id}")
    return borrowed_books


@borrow_router.post("/borrow")
def borrow_book(
    loan: BorrowRequest,
    db: Session = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    user: TokenClaims = Depends(get_current_user),
):
    try:
        # book is checked before reader
        book = db.get(Book, loan.book_id)
        if not book:
            raise NotFoundError("Book not found")
        reader = db.get(Reader, loan.reader_id)
        if not reader:
            raise NotFoundError("Reader not found")
        borrowed_book = BorrowedBook(book_id=book.id, reader_id=reader.id, borrow_date=utcnow())
        db.add(borrowed_book)
        db.commit()
        db.refresh(borrowed_book)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error while borrowing book")
        raise ServerError("Server error while borrowing book")
    cache.delete(BORROWED_BOOKS_KEY)
    logger.info(f"Book borrowed: book_id={book.id}, reader_id={reader.id} by user {user.id}")
    return {"message": "Book borrowed!", "borrowedBook": BorrowedBookRead.model_validate(borrowed_book)}


@borrow_router.put("/return/{id}")
def return_book(
    id: int,
    db: Session = Depends(get_db),
    cache: CacheManager = Depends(get_cache),
    admin: TokenClaims = Depends(admin_required),
):
    try:
        borrowed_book = db.get(BorrowedBook, id)
        if not borrowed_book:
            raise NotFoundError("Borrow record not found")
        if not borrowed_book.is_open:
            raise ConflictError("Book already returned")
        now = utcnow()
        # only closes a loan that is still open, so concurrent returns cannot both win
        result = db.execute(
            update(BorrowedBook)
            .where(BorrowedBook.id == id, BorrowedBook.return_date.is_(None))
            .values(return_date=now, updated_at=now)
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error while returning book")
        raise ServerError("Server error while returning book")
    if result.rowcount == 0:
        raise ConflictError("Book already returned")
    cache.delete(BORROWED_BOOKS_KEY)
    logger.info(f"Book returned: id={id} by admin {admin.id}")
    return {"message": "Book returned!"}
