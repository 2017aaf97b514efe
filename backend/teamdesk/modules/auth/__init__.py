# Authentication module

from teamdesk.modules.auth.dependencies import (
    get_current_user,
    get_current_admin,
    get_user_from_token,
)

from teamdesk.modules.auth.permissions import (
    require_stock_permission,
    require_client_permission,
    require_proforma_permission,
    require_expense_permission,
    has_permission,
    CLIENT_PERMISSIONS,
    PROFORMA_PERMISSIONS,
    EXPENSE_PERMISSIONS,
)

__all__ = [
    # User authentication
    "get_current_user",
    "get_current_admin",
    "get_user_from_token",
    # Permission gates
    "require_stock_permission",
    "require_client_permission",
    "require_proforma_permission",
    "require_expense_permission",
    "has_permission",
    "CLIENT_PERMISSIONS",
    "PROFORMA_PERMISSIONS",
    "EXPENSE_PERMISSIONS",
]
