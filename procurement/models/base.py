"""
Declarative base shared by every procurement model.

Index, unique, foreign-key and primary-key constraints get deterministic
names so migrations generated against PostgreSQL and SQLite agree. CHECK
constraints are named explicitly on each table.
"""

from sqlalchemy import MetaData
from sqlalchemy.orm import declarative_base

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

Base = declarative_base(metadata=MetaData(naming_convention=NAMING_CONVENTION))
