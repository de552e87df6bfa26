"""Pydantic response models for the API."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response model for GET /health."""

    model_config = ConfigDict(extra="forbid")
    status: Literal["ok"]
    uptime_seconds: float
    started_at: str
    total_tasks: int
    total_bids: int


class ErrorResponse(BaseModel):
    """Standard error response model."""

    model_config = ConfigDict(extra="forbid")
    error: str
    message: str
    details: dict[str, object]


class TaskResponse(BaseModel):
    """Public task shape."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    id: str = Field(alias="_id")
    title: str
    category: str
    description: str
    deadline: str
    budget: int | float
    user_email: str = Field(alias="userEmail")
    user_name: str = Field(alias="userName")
    bids_count: int = Field(alias="bidsCount", ge=0)
    created_at: str = Field(alias="createdAt")


class BidResponse(BaseModel):
    """Public bid shape."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    id: str = Field(alias="_id")
    task_id: str = Field(alias="taskId")
    user_email: str = Field(alias="userEmail")
    user_name: str | None = Field(alias="userName")
    amount: int | float
    message: str | None
    date: str


class TaskUpdatedResponse(BaseModel):
    """Response model for PUT /tasks/{task_id}."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)
    message: str
    updated_task: TaskResponse = Field(alias="updatedTask")
