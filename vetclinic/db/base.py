"""
Declarative base for all ORM models.

Import models through vetclinic.models so they register on Base.metadata.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class every SQLAlchemy model inherits from."""
    pass
