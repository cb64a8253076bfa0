"""Follow-up tasks created by interest detection."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from prospectflow.core.database import get_db
from prospectflow.core.deps import get_tenant_id
from prospectflow.core.exceptions import TaskNotFoundError
from prospectflow.models.task import Task, TaskStatus
from prospectflow.schemas.task import TaskOut, TaskStatusUpdate
from prospectflow.services.lead_store import commit

router = APIRouter()


@router.get("/", response_model=List[TaskOut])
async def list_tasks(
    status: Optional[TaskStatus] = None,
    lead_id: Optional[UUID] = None,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    query = select(Task).where(Task.tenant_id == tenant_id)
    if status:
        query = query.where(Task.status == status)
    if lead_id:
        query = query.where(Task.lead_id == lead_id)
    result = await db.execute(query.order_by(Task.due_date, Task.created_at))
    return result.scalars().all()


@router.patch("/{task_id}", response_model=TaskOut)
async def update_task_status(
    task_id: UUID,
    update: TaskStatusUpdate,
    tenant_id: UUID = Depends(get_tenant_id),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError(f"Task not found: {task_id}")

    task.status = update.status
    task.completed_at = datetime.utcnow() if update.status == TaskStatus.DONE else None
    await commit(db, "update task")
    await db.refresh(task)
    return task
