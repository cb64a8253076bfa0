"""Pydantic schemas for follow-up tasks."""

from datetime import datetime
from uuid import UUID
from typing import Optional
from pydantic import BaseModel
from prospectflow.models.task import TaskPriority, TaskStatus


class TaskOut(BaseModel):
    id: UUID
    lead_id: Optional[UUID] = None
    title: str
    description: Optional[str] = None
    task_type: str
    priority: TaskPriority
    status: TaskStatus
    due_date: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
