"""
Module: kardex_kernel.db.base
Responsibility: Declarative base class for all SQLAlchemy ORM models.  Provides
    the surrogate primary key convention and the type annotation map that keeps
    column types consistent across the schema.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, engines or domain/.

Invariants enforced:
    - Surrogate primary keys: every model inherits a uuid4-generated ``id``.
      Business identifiers (movement ids, item ids) live in their own unique
      columns.
    - Quantity precision: Decimal maps to Numeric(18, 4), matching
      QUANTITY_PLACES.  NEVER use float for quantities.
    - Timestamps are timezone-aware.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import uuid4

from sqlalchemy import Date, DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from kardex_kernel.domain.values import QUANTITY_PLACES


def _new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is always a uuid4 string stored as String(36).
        - Decimal maps to Numeric(18, QUANTITY_PLACES).
        - datetime maps to DateTime(timezone=True).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, QUANTITY_PLACES),
        datetime: DateTime(timezone=True),
        date: Date,
        str: String(255),
    }

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=_new_id,
    )
