from fastapi import APIRouter
from teamdesk.api.v1.endpoints import (
    auth, users, tasks, comments, messages, channels, workflows, stock, clients,
    service_catalog, client_services, proformas, expenses, estimations, companies,
    calendar, uploads, email, websocket,
)

api_router = APIRouter()

# Team collaboration
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["Tasks"])
api_router.include_router(comments.router, prefix="/comments", tags=["Comments"])
api_router.include_router(workflows.router, prefix="/workflows", tags=["Workflows"])
api_router.include_router(workflows.stages_router, prefix="/stages", tags=["Workflows"])
api_router.include_router(messages.router, prefix="/messages", tags=["Messages"])
api_router.include_router(channels.router, prefix="/channels", tags=["Channels"])
api_router.include_router(uploads.router, prefix="/uploads", tags=["Uploads"])
api_router.include_router(calendar.router, prefix="/calendar", tags=["Calendar"])

# Back office
api_router.include_router(stock.router, prefix="/stock", tags=["Stock"])
api_router.include_router(clients.router, prefix="/clients", tags=["Clients"])
api_router.include_router(service_catalog.router, prefix="/services", tags=["Services"])
api_router.include_router(client_services.router, prefix="/client-services", tags=["Client Services"])
api_router.include_router(estimations.router, prefix="/estimations", tags=["Estimations"])
api_router.include_router(companies.router, prefix="/companies", tags=["Companies"])
api_router.include_router(proformas.router, prefix="/proformas", tags=["Proformas"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["Expenses"])

# Notifications and real-time
api_router.include_router(email.router, prefix="/email", tags=["Email"])
api_router.include_router(websocket.router, tags=["WebSocket"])
