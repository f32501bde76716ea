# Overview: All permission definitions organized by module.
# Each permission is defined as: (module, action, name, description)

from .categories import PermissionAction as A, PermissionModule as M


DASHBOARD_PERMISSIONS = [
    (M.DASHBOARD, A.READ, "View Dashboard", "View the clinic dashboard"),
]


USER_PERMISSIONS = [
    (M.USERS, A.READ, "View Team", "View clinic members and professionals"),
    (M.USERS, A.CREATE, "Add Team Members", "Register professionals"),
    (M.USERS, A.UPDATE, "Edit Team Members", "Edit professionals and commission rates"),
    (M.USERS, A.DELETE, "Remove Team Members", "Deactivate professionals"),
]


CLIENT_PERMISSIONS = [
    (M.CLIENTS, A.READ, "View Clients", "View client records"),
    (M.CLIENTS, A.CREATE, "Create Clients", "Register new clients"),
    (M.CLIENTS, A.UPDATE, "Edit Clients", "Edit client records"),
    (M.CLIENTS, A.DELETE, "Delete Clients", "Delete client records"),
]


APPOINTMENT_PERMISSIONS = [
    (M.APPOINTMENTS, A.READ, "View Appointments", "View the appointment book"),
    (M.APPOINTMENTS, A.CREATE, "Book Appointments", "Create appointments"),
    (M.APPOINTMENTS, A.UPDATE, "Edit Appointments", "Reschedule or change appointments"),
    (M.APPOINTMENTS, A.DELETE, "Cancel Appointments", "Delete appointments"),
]


FINANCIAL_PERMISSIONS = [
    (M.FINANCIAL, A.READ, "View Financial", "View expenses, accounts, transactions, payments and reports"),
    (M.FINANCIAL, A.CREATE, "Create Financial Records", "Create expenses, accounts, transactions and payments"),
    (M.FINANCIAL, A.UPDATE, "Edit Financial Records", "Edit records, pay expenses, confirm and refund payments"),
    (M.FINANCIAL, A.DELETE, "Delete Financial Records", "Delete financial records"),
]


REPORT_PERMISSIONS = [
    (M.REPORTS, A.READ, "View Reports", "View clinic reports"),
    (M.REPORTS, A.EXPORT, "Export Reports", "Export report data"),
]


SETTINGS_PERMISSIONS = [
    (M.SETTINGS, A.READ, "View Settings", "View clinic settings"),
    (M.SETTINGS, A.UPDATE, "Edit Settings", "Edit clinic profile and settings"),
]


CRM_PERMISSIONS = [
    (M.CRM, A.READ, "View CRM", "View leads and campaigns"),
    (M.CRM, A.CREATE, "Create Leads", "Create leads and campaigns"),
    (M.CRM, A.UPDATE, "Edit Leads", "Edit leads and campaigns"),
    (M.CRM, A.DELETE, "Delete Leads", "Delete leads and campaigns"),
]


INVENTORY_PERMISSIONS = [
    (M.INVENTORY, A.READ, "View Inventory", "View stock levels"),
    (M.INVENTORY, A.CREATE, "Add Inventory", "Add products and stock"),
    (M.INVENTORY, A.UPDATE, "Edit Inventory", "Adjust stock"),
    (M.INVENTORY, A.DELETE, "Delete Inventory", "Remove products"),
]


PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + USER_PERMISSIONS
    + CLIENT_PERMISSIONS
    + APPOINTMENT_PERMISSIONS
    + FINANCIAL_PERMISSIONS
    + REPORT_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + CRM_PERMISSIONS
    + INVENTORY_PERMISSIONS
)
