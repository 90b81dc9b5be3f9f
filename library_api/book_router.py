import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .auth import get_current_user
from .context import get_db
from .errors import ServerError
from .models import Book
from .security import TokenClaims
from .validators import check_not_blank

logger = logging.getLogger(__name__)


# pydantic schemas
class BookCreate(BaseModel):
    title: str
    author: str
    year: int = Field(ge=0)
    genre: str

    @field_validator("title", "author", "genre")
    @classmethod
    def validate_not_blank(cls, v):
        return check_not_blank(v)


class BookRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: str
    year: int
    genre: str
    created_at: datetime
    updated_at: datetime


# router
book_router = APIRouter(prefix="/books", tags=["books"])


@book_router.post("")
def create_book(book: BookCreate, db: Session = Depends(get_db), user: TokenClaims = Depends(get_current_user)):
    db_book = Book(title=book.title, author=book.author, year=book.year, genre=book.genre)
    try:
        db.add(db_book)
        db.commit()
        db.refresh(db_book)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error while adding book")
        raise ServerError("Server error while adding book")
    logger.info(f"Book added: {book.title} ({book.author}) by user {user.id}")
    return {"message": "Book added!", "book": BookRead.model_validate(db_book)}
