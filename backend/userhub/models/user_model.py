"""Request bodies for the users API.

Field values are typed loosely on purpose: the user service validates them
and reports every broken rule in one response.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCreate(BaseModel):
    # unknown keys reach the validator, which names them in the error list
    model_config = ConfigDict(extra="allow")

    name: Optional[Any] = Field(None, examples=["Nguyễn Minh Anh"])
    email: Optional[Any] = Field(None, examples=["minhanh@example.com"])
    age: Optional[Any] = Field(None, examples=[22], description="In-memory storage only")


class UserUpdate(UserCreate):
    """Partial update: only the fields present in the body are changed."""


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: Optional[Any] = None
    name: Optional[Any] = None
    age: Optional[Any] = None
    cursor: Optional[Any] = None
    limit: Optional[Any] = None


class QueryRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    where: Optional[Dict[str, Any]] = Field(None, examples=[{"age": {"gt": 20, "lt": 35}}])
    select: Optional[List[Any]] = Field(None, examples=[["id", "name"]])
    sort: Optional[Dict[str, Any]] = Field(None, examples=[{"field": "name", "direction": "asc"}])
    limit: Optional[Any] = Field(None, examples=[10])
    offset: Optional[Any] = Field(None, examples=[0])
