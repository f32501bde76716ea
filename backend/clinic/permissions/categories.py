# Overview: Module and action constants that make up a permission key.


class PermissionModule:
    """Functional areas a grant can cover."""
    DASHBOARD = "dashboard"
    USERS = "users"
    CLIENTS = "clients"
    APPOINTMENTS = "appointments"
    FINANCIAL = "financial"
    REPORTS = "reports"
    SETTINGS = "settings"
    CRM = "crm"
    INVENTORY = "inventory"


class PermissionAction:
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXPORT = "export"
