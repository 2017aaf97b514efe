# API endpoints
from . import (
    auth, users, tasks, comments, messages, channels, workflows, stock, clients,
    service_catalog, client_services, proformas, expenses, estimations, companies,
    calendar, uploads, email, websocket,
)

__all__ = [
    "auth", "users", "tasks", "comments", "messages", "channels", "workflows", "stock", "clients",
    "service_catalog", "client_services", "proformas", "expenses", "estimations", "companies",
    "calendar", "uploads", "email", "websocket",
]
