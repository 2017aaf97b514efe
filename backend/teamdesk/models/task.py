"""Tasks and everything hanging off them: subtasks, steps, participants, comments, history"""
from sqlalchemy import Column, String, Integer, Text, Boolean, DateTime, ForeignKey, JSON, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
import enum

from teamdesk.core.database import Base
from teamdesk.core.types import GUID, generate_uuid, utcnow, enum_values


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Task(Base):
    """A unit of work, optionally placed on a workflow stage"""
    __tablename__ = "tasks"

    __table_args__ = (
        Index('ix_tasks_status', 'status'),
        Index('ix_tasks_responsible_id', 'responsible_id'),
        Index('ix_tasks_due_date', 'due_date'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        SQLEnum(TaskStatus, values_callable=enum_values, name="task_status"),
        default=TaskStatus.TODO,
        nullable=False,
    )
    priority = Column(
        SQLEnum(TaskPriority, values_callable=enum_values, name="task_priority"),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    due_date = Column(DateTime, nullable=True)

    creator_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    responsible_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    workflow_id = Column(GUID, ForeignKey("workflows.id", ondelete="SET NULL"), nullable=True)
    stage_id = Column(GUID, ForeignKey("workflow_stages.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    # Relationships
    creator = relationship("User", back_populates="created_tasks", foreign_keys=[creator_id])
    responsible = relationship("User", foreign_keys=[responsible_id])
    workflow = relationship("Workflow")
    stage = relationship("WorkflowStage")
    subtasks = relationship("Subtask", back_populates="task", cascade="all, delete-orphan",
                            order_by="Subtask.created_at")
    steps = relationship("TaskStep", back_populates="task", cascade="all, delete-orphan",
                         order_by="TaskStep.order")
    participants = relationship("TaskParticipant", back_populates="task", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="task", cascade="all, delete-orphan")
    history = relationship("TaskHistory", back_populates="task", cascade="all, delete-orphan")

    @property
    def participant_ids(self):
        return [p.user_id for p in self.participants]

    def __repr__(self):
        return f"<Task {self.title} ({self.status})>"


class Subtask(Base):
    __tablename__ = "subtasks"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    task_id = Column(GUID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="subtasks")


class TaskStep(Base):
    __tablename__ = "task_steps"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    order = Column(Integer, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    task_id = Column(GUID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="steps")


class TaskParticipant(Base):
    __tablename__ = "task_participants"

    task_id = Column(GUID, ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)

    task = relationship("Task", back_populates="participants")
    user = relationship("User")


class Comment(Base):
    __tablename__ = "comments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    content = Column(Text, nullable=False)
    task_id = Column(GUID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    task = relationship("Task", back_populates="comments")
    user = relationship("User")

    def __repr__(self):
        return f"<Comment {self.id} on {self.task_id}>"


class TaskHistory(Base):
    """Audit trail of changes made to a task"""
    __tablename__ = "task_history"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    task_id = Column(GUID, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)  # created, updated, status_changed, stage_changed
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    task = relationship("Task", back_populates="history")
    user = relationship("User")
