"""Pydantic request/response schemas for the Catalogue API."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

# --- Book Request Schemas ---


class CreateBookRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "title": "Domain-Driven Design",
                    "author": "Eric Evans",
                    "isbn": "9780321125217",
                    "published_date": "2003-08-30",
                    "price": 54.99,
                    "genre": "Software",
                    "publisher": "Addison-Wesley",
                    "created_by": "librarian",
                }
            ]
        }
    }

    title: str = Field(..., min_length=1, max_length=255)
    author: str = Field(..., min_length=1, max_length=255)
    isbn: str | None = Field(None, max_length=20)
    published_date: date | None = None
    price: float | None = Field(None, ge=0)
    genre: str | None = Field(None, max_length=100)
    publisher: str | None = Field(None, max_length=255)
    description: str | None = None
    created_by: str | None = Field(None, max_length=100)


class UpdateBookRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "price": 49.99,
                    "updated_by": "librarian",
                }
            ]
        }
    }

    title: str | None = Field(None, min_length=1, max_length=255)
    author: str | None = Field(None, min_length=1, max_length=255)
    isbn: str | None = Field(None, max_length=20)
    published_date: date | None = None
    price: float | None = Field(None, ge=0)
    genre: str | None = Field(None, max_length=100)
    publisher: str | None = Field(None, max_length=255)
    description: str | None = None
    updated_by: str | None = Field(None, max_length=100)


# --- Response Schemas ---


class BookResponse(BaseModel):
    book_id: str
    title: str | None = None
    author: str | None = None
    isbn: str | None = None
    published_date: date | None = None
    price: Decimal | None = None
    genre: str | None = None
    publisher: str | None = None


class BookMutationResponse(BaseModel):
    book: BookResponse
    correlation_id: str
    event_published: bool
    previous_values: dict[str, Any] | None = None
