from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..errors import ValidationError
from ..filters import filter_tasks, parse_filter
from ..repositories import Repository
from ..schemas import (
    CompletedTasksDeleted,
    ErrorOut,
    TaskCreate,
    TaskDeleted,
    TaskOut,
    TaskStatsOut,
    TaskUpdate,
)

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
)


def _get_repo(request: Request) -> Repository:
    """
    Dependency returning the repository wired into the application state.
    """
    return request.app.state.repository


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TaskOut],
    summary="List Tasks",
    description=(
        "List tasks in insertion order.\n\n"
        "Query parameters:\n"
        "- status: one of all (default), completed, pending"
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"model": ErrorOut, "description": "Unknown status filter"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def list_tasks(
    status_filter: Optional[str] = Query(
        None, alias="status", description="Filter by status: all, completed or pending"
    ),
    repo: Repository = Depends(_get_repo),
) -> List[TaskOut]:
    """
    List tasks, optionally restricted to completed or pending ones.
    """
    selector = parse_filter(status_filter)
    snapshot = repo.list_tasks()
    return [TaskOut.from_entity(t) for t in filter_tasks(snapshot, selector)]


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=TaskStatsOut,
    summary="Task Counters",
    description="Return total, completed and pending counts from one consistent snapshot.",
    responses={500: {"model": ErrorOut, "description": "Storage failure"}},
)
def task_stats(repo: Repository = Depends(_get_repo)) -> TaskStatsOut:
    return TaskStatsOut.from_stats(repo.stats())


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    description="Get a single task by ID.",
    responses={
        200: {"description": "Task found"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def get_task(task_id: int, repo: Repository = Depends(_get_repo)) -> TaskOut:
    """
    Retrieve a single task by its ID.
    """
    return TaskOut.from_entity(repo.get(task_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a new task and return the created resource.",
    responses={
        201: {"description": "Task created successfully"},
        400: {"model": ErrorOut, "description": "Validation error"},
    },
)
def create_task(payload: TaskCreate, repo: Repository = Depends(_get_repo)) -> TaskOut:
    """
    Create a new task.
    """
    return TaskOut.from_entity(repo.create(payload.text, completed=payload.completed))


def _apply_update(task_id: int, payload: TaskUpdate, repo: Repository) -> TaskOut:
    updated = repo.update(task_id, text=payload.text, completed=payload.completed)
    return TaskOut.from_entity(updated)


_UPDATE_RESPONSES = {
    200: {"description": "Task updated"},
    400: {"model": ErrorOut, "description": "Validation error"},
    404: {"model": ErrorOut, "description": "Task not found"},
}


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description="Update the text and/or completion flag of a task. Omitted fields are left unchanged.",
    responses=_UPDATE_RESPONSES,
)
def put_task(task_id: int, payload: TaskUpdate, repo: Repository = Depends(_get_repo)) -> TaskOut:
    return _apply_update(task_id, payload, repo)


# PUBLIC_INTERFACE
@router.patch(
    "/{task_id}",
    response_model=TaskOut,
    summary="Patch Task",
    description="Same partial update semantics as PUT.",
    responses=_UPDATE_RESPONSES,
)
def patch_task(task_id: int, payload: TaskUpdate, repo: Repository = Depends(_get_repo)) -> TaskOut:
    return _apply_update(task_id, payload, repo)


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    response_model=TaskDeleted,
    summary="Delete Task",
    description="Delete a task by ID and return it for confirmation.",
    responses={
        200: {"description": "Task deleted"},
        404: {"model": ErrorOut, "description": "Task not found"},
    },
)
def delete_task(task_id: int, repo: Repository = Depends(_get_repo)) -> TaskDeleted:
    removed = repo.delete(task_id)
    return TaskDeleted(message="Task deleted successfully", task=TaskOut.from_entity(removed))


# PUBLIC_INTERFACE
@router.delete(
    "",
    response_model=CompletedTasksDeleted,
    summary="Delete Completed Tasks",
    description="Remove every completed task. Requires completed=true.",
    responses={
        200: {"description": "Completed tasks deleted"},
        400: {"model": ErrorOut, "description": "completed=true missing"},
        500: {"model": ErrorOut, "description": "Storage failure"},
    },
)
def delete_completed_tasks(
    completed: Optional[bool] = Query(None, description="Must be true"),
    repo: Repository = Depends(_get_repo),
) -> CompletedTasksDeleted:
    """
    Bulk delete of completed tasks. Deleting every task at once is not supported.
    """
    if completed is not True:
        raise ValidationError("Bulk deletion requires completed=true")
    count = repo.delete_completed()
    noun = "task" if count == 1 else "tasks"
    return CompletedTasksDeleted(message=f"{count} completed {noun} deleted", count=count)
