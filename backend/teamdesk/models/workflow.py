"""Workflow pipelines: workflows, their ordered stages and allowed transitions"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    creator_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    # "metadata" is reserved on declarative classes
    extra_data = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    creator = relationship("User")
    stages = relationship(
        "WorkflowStage",
        back_populates="workflow",
        cascade="all, delete-orphan",
        order_by="WorkflowStage.order",
    )

    def __repr__(self):
        return f"<Workflow {self.name}>"


class WorkflowStage(Base):
    __tablename__ = "workflow_stages"

    __table_args__ = (
        Index('ix_workflow_stages_workflow_order', 'workflow_id', 'order'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    workflow_id = Column(GUID, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False)
    order = Column(Integer, nullable=False)
    color = Column(String(32), nullable=True)
    extra_data = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    workflow = relationship("Workflow", back_populates="stages")

    def __repr__(self):
        return f"<WorkflowStage {self.name} #{self.order}>"


class WorkflowTransition(Base):
    __tablename__ = "workflow_transitions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    from_stage_id = Column(GUID, ForeignKey("workflow_stages.id", ondelete="CASCADE"), nullable=False)
    to_stage_id = Column(GUID, ForeignKey("workflow_stages.id", ondelete="CASCADE"), nullable=False)
    conditions = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    from_stage = relationship("WorkflowStage", foreign_keys=[from_stage_id])
    to_stage = relationship("WorkflowStage", foreign_keys=[to_stage_id])

    def __repr__(self):
        return f"<WorkflowTransition {self.from_stage_id} -> {self.to_stage_id}>"
