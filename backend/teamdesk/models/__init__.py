# Re-export all models for convenient imports
from teamdesk.models.user import User, DEFAULT_NOTIFICATION_PREFERENCES
from teamdesk.models.workflow import Workflow, WorkflowStage, WorkflowTransition
from teamdesk.models.task import (
    Task, TaskStatus, TaskPriority, Subtask, TaskStep, TaskParticipant, Comment, TaskHistory,
)
from teamdesk.models.message import PrivateMessage, GroupChannel, ChannelMember, GroupMessage, MessageAttachment
from teamdesk.models.stock import StockItem, StockMovement, UserStockPermission
from teamdesk.models.client import (
    Client, ClientType, Service, ServiceType, ServiceCharacteristic, BillingFrequency,
    ClientService, UserClientPermission,
)
from teamdesk.models.estimation import Company, Estimation, EstimationItem
from teamdesk.models.finance import (
    Proforma, ProformaStatus, Expense, ExpenseFrequency, ExpenseStatus, ExpenseReceipt,
    UserProformaPermission, UserExpensePermission,
)
from teamdesk.models.calendar import CalendarEvent
from teamdesk.models.notification import EmailNotification, NotificationStatus, NotificationType

__all__ = [
    "User",
    "DEFAULT_NOTIFICATION_PREFERENCES",
    "Workflow",
    "WorkflowStage",
    "WorkflowTransition",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "Subtask",
    "TaskStep",
    "TaskParticipant",
    "Comment",
    "TaskHistory",
    "PrivateMessage",
    "GroupChannel",
    "ChannelMember",
    "GroupMessage",
    "MessageAttachment",
    "StockItem",
    "StockMovement",
    "UserStockPermission",
    "Client",
    "ClientType",
    "Service",
    "ServiceType",
    "ServiceCharacteristic",
    "BillingFrequency",
    "ClientService",
    "UserClientPermission",
    "Company",
    "Estimation",
    "EstimationItem",
    "Proforma",
    "ProformaStatus",
    "Expense",
    "ExpenseFrequency",
    "ExpenseStatus",
    "ExpenseReceipt",
    "UserProformaPermission",
    "UserExpensePermission",
    "CalendarEvent",
    "EmailNotification",
    "NotificationStatus",
    "NotificationType",
]
