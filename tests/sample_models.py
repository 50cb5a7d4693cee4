"""Searchable models shared by the test modules."""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from search_sync.documents.searchable import Searchable


class Base(DeclarativeBase):
    pass


class Post(Base, Searchable):
    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    search_index = "posts"
    search_fields = ("title", "body")
    search_properties = {
        "title": {
            "type": "text",
            "analyzer": "autocomplete_index",
            "search_analyzer": "autocomplete_search",
        },
        "body": {"type": "text", "analyzer": "fulltext"},
    }


class Invoice(Base, Searchable):
    """Decimal primary key."""

    __tablename__ = "invoices"

    number: Mapped[Decimal] = mapped_column(Numeric(12, 0), primary_key=True)
    customer: Mapped[str] = mapped_column(String(200), nullable=False)

    search_index = "invoices"
    search_fields = ("customer",)
    search_properties = {"customer": {"type": "text"}}


class Note(Searchable):
    """Plain object, not mapped by SQLAlchemy."""

    search_index = "notes"
    search_fields = ("title", "tags")
    search_properties = {
        "title": {"type": "text", "analyzer": "standard"},
        "tags": {"type": "keyword"},
    }

    def __init__(self, **attrs):
        for key, value in attrs.items():
            setattr(self, key, value)
