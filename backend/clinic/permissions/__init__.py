# Overview: Permission system package.
# Re-exports all public APIs for convenient imports.

from .categories import PermissionModule, PermissionAction
from .definitions import (
    PERMISSION_DEFINITIONS,
    DASHBOARD_PERMISSIONS,
    USER_PERMISSIONS,
    CLIENT_PERMISSIONS,
    APPOINTMENT_PERMISSIONS,
    FINANCIAL_PERMISSIONS,
    REPORT_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    CRM_PERMISSIONS,
    INVENTORY_PERMISSIONS,
)
from .roles import GlobalRole, ClinicRole, DEFAULT_ROLE_PERMISSIONS
from .helpers import (
    get_all_permission_keys,
    get_permissions_by_module,
    get_permission_definition,
    validate_permission,
)

__all__ = [
    "PermissionModule",
    "PermissionAction",
    "PERMISSION_DEFINITIONS",
    "DASHBOARD_PERMISSIONS",
    "USER_PERMISSIONS",
    "CLIENT_PERMISSIONS",
    "APPOINTMENT_PERMISSIONS",
    "FINANCIAL_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "CRM_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "GlobalRole",
    "ClinicRole",
    "DEFAULT_ROLE_PERMISSIONS",
    "get_all_permission_keys",
    "get_permissions_by_module",
    "get_permission_definition",
    "validate_permission",
]
