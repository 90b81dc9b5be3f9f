import enum
from datetime import datetime, UTC

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow():
    return datetime.now(UTC)


class Role(str, enum.Enum):
    USER = "user"
    ADMIN = "admin"


# created_at / updated_at on every table
class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)


# table for user model
class User(TimestampMixin, Base):
    __tablename__ = 'user'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False) # bcrypt hash, never the plain password
    role = Column(
        Enum(Role, native_enum=False, values_callable=lambda roles: [r.value for r in roles], length=16),
        nullable=False,
        default=Role.USER,
    )


# table for book model
class Book(TimestampMixin, Base):
    __tablename__ = 'book'
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    year = Column(Integer, nullable=False)
    genre = Column(String(255), nullable=False)


# table for reader model
class Reader(TimestampMixin, Base):
    __tablename__ = 'reader'
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(64), nullable=False)


# table for loans; open while return_date is null
class BorrowedBook(TimestampMixin, Base):
    __tablename__ = 'borrowed_book'
    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey('book.id'), nullable=False)
    reader_id = Column(Integer, ForeignKey('reader.id'), nullable=False)
    borrow_date = Column(DateTime(timezone=True), nullable=False)
    return_date = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_open(self):
        return self.return_date is None
