import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .context import get_db
from .errors import ServerError
from .models import Reader
from .validators import check_not_blank

logger = logging.getLogger(__name__)


# pydantic schemas
class ReaderCreate(BaseModel):
    name: str
    email: EmailStr
    phone: str

    @field_validator("name", "phone")
    @classmethod
    def validate_not_blank(cls, v):
        return check_not_blank(v)


class ReaderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: str
    created_at: datetime
    updated_at: datetime


# router; registering readers is open to anonymous callers
reader_router = APIRouter(prefix="/readers", tags=["readers"])


@reader_router.post("")
def create_reader(reader: ReaderCreate, db: Session = Depends(get_db)):
    db_reader = Reader(name=reader.name, email=reader.email, phone=reader.phone)
    try:
        db.add(db_reader)
        db.commit()
        db.refresh(db_reader)
    except SQLAlchemyError:
        # includes the unique email constraint
        db.rollback()
        logger.exception("Error while adding reader")
        raise ServerError("Server error while adding reader")
    logger.info(f"Reader added: {reader.name}")
    return {"message": "Reader added!", "reader": ReaderRead.model_validate(db_reader)}
