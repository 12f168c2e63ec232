"""SQLAlchemy base metadata and declarative registry."""

from __future__ import annotations

from sqlalchemy import BigInteger, Integer, MetaData
from sqlalchemy.orm import DeclarativeBase

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """Declarative base for ledger tables.

    Fixed-point shares and cents exceed 32 bits, so plain ``int`` columns map
    to BIGINT (SQLite INTEGER is already 64-bit and keeps rowid keys).
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)
    type_annotation_map = {int: BigInteger().with_variant(Integer, "sqlite")}
