"""Pydantic schemas for tasks, subtasks, steps, comments and task history"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any
from datetime import datetime

from teamdesk.models.task import TaskStatus, TaskPriority
from teamdesk.schemas.user import UserBrief


# ==================== Children ====================

class SubtaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    completed: bool = False


class StepCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=0)


class SubtaskResponse(BaseModel):
    id: str
    title: str
    completed: bool
    task_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class StepResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    order: int
    completed: bool
    task_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompletionUpdate(BaseModel):
    """Body of the subtask/step status toggles; `completed` is checked by hand for a 400"""
    completed: Optional[bool] = None


# ==================== Task ====================

class TaskCreate(BaseModel):
    """New tasks always start as todo, whatever status the client sends"""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    responsible_id: Optional[str] = None
    workflow_id: Optional[str] = None
    stage_id: Optional[str] = None
    participant_ids: List[str] = []
    subtasks: List[SubtaskCreate] = []
    steps: List[StepCreate] = []


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None
    due_date: Optional[datetime] = None
    responsible_id: Optional[str] = None
    participant_ids: Optional[List[str]] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class WorkflowRef(BaseModel):
    id: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class StageRef(BaseModel):
    id: str
    name: str
    order: int
    color: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    due_date: Optional[datetime] = None
    creator_id: str
    responsible_id: Optional[str] = None
    workflow_id: Optional[str] = None
    stage_id: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    subtasks: List[SubtaskResponse] = []
    steps: List[StepResponse] = []
    participants: List[UserBrief] = []
    responsible: Optional[UserBrief] = None
    workflow: Optional[WorkflowRef] = None
    stage: Optional[StageRef] = None


class TaskHistoryResponse(BaseModel):
    id: str
    task_id: str
    user_id: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Comments ====================

class CommentCreate(BaseModel):
    task_id: str
    content: str = Field(..., min_length=1, max_length=10000)


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class CommentResponse(BaseModel):
    id: str
    content: str
    task_id: str
    user_id: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)
