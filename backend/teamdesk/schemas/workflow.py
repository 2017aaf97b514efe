"""Pydantic schemas for workflows, stages and transitions"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any
from datetime import datetime


class WorkflowCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    is_default: bool = False
    metadata: Optional[Dict[str, Any]] = None


class WorkflowUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_default: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None


class WorkflowResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    creator_id: str
    is_default: bool
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_data")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class StageCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=0, description="Defaults to the next position")
    color: Optional[str] = Field(None, max_length=32)
    metadata: Optional[Dict[str, Any]] = None


class StageResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    workflow_id: str
    order: int
    color: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_data")
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransitionCreate(BaseModel):
    from_stage_id: str
    to_stage_id: str
    conditions: Optional[Dict[str, Any]] = None


class TransitionResponse(BaseModel):
    id: str
    from_stage_id: str
    to_stage_id: str
    conditions: Optional[Dict[str, Any]] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TaskStageUpdate(BaseModel):
    stage_id: Optional[str] = None
