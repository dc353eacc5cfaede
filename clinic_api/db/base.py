from datetime import datetime

from sqlalchemy import DateTime
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Scheduling datetimes are naive clinic-local wall-clock values.
    """
    type_annotation_map = {
        datetime: DateTime(timezone=False),
    }
