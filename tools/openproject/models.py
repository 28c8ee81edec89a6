"""Pydantic models for the OpenProject API v3 (HAL+JSON) resources Arki reads."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Formattable(_ApiModel):
    format: str | None = None
    raw: str | None = None
    html: str | None = None


class HalResource(_ApiModel):
    links: dict[str, Any] = Field(default_factory=dict, alias="_links")

    def link(self, name: str) -> dict[str, Any] | None:
        value = self.links.get(name)
        if isinstance(value, dict) and value.get("href"):
            return value
        return None

    def link_title(self, name: str) -> str | None:
        value = self.link(name)
        return value.get("title") if value else None


class Project(HalResource):
    id: int
    identifier: str = ""
    name: str = ""
    description: Formattable | None = None
    homepage: str | None = None
    public: bool = False
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None


class User(HalResource):
    id: int
    login: str = ""
    first_name: str = ""
    last_name: str = ""
    name: str = ""
    email: str | None = None
    admin: bool = False
    avatar: str | None = None
    status: str | None = None
    language: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WorkPackage(HalResource):
    id: int
    lock_version: int = 0
    subject: str = ""
    description: Formattable | None = None
    start_date: str | None = None
    due_date: str | None = None
    estimated_time: str | None = None
    spent_time: str | None = None
    percentage_done: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WorkPackageType(HalResource):
    id: int
    name: str = ""
    color: str | None = None
    position: int | None = None
    is_default: bool = False
    is_milestone: bool = False


class Status(HalResource):
    id: int
    name: str = ""
    is_closed: bool = False
    color: str | None = None
    is_default: bool = False


class Priority(HalResource):
    id: int
    name: str = ""
    color: str | None = None
    is_default: bool = False
    is_active: bool = True


class _Embedded(_ApiModel, Generic[T]):
    elements: list[T] = Field(default_factory=list)


class Collection(_ApiModel, Generic[T]):
    """HAL collection wrapper: ``_embedded.elements`` plus paging counters."""

    total: int = 0
    count: int = 0
    embedded: _Embedded[T] = Field(default_factory=_Embedded, alias="_embedded")

    @property
    def elements(self) -> list[T]:
        return self.embedded.elements
