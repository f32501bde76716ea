# Overview: Global and clinic role constants plus default permission sets per clinic role.

from .categories import PermissionAction as A, PermissionModule as M


class GlobalRole:
    """Account-wide roles stored on User.role."""
    SUPER_ADMIN = "SUPER_ADMIN"
    CLINIC_OWNER = "CLINIC_OWNER"
    CLINIC_MANAGER = "CLINIC_MANAGER"
    DOCTOR = "DOCTOR"
    RECEPTIONIST = "RECEPTIONIST"
    FINANCIAL = "FINANCIAL"
    MARKETING = "MARKETING"
    STAFF = "STAFF"

    ALL = (
        SUPER_ADMIN, CLINIC_OWNER, CLINIC_MANAGER, DOCTOR,
        RECEPTIONIST, FINANCIAL, MARKETING, STAFF,
    )


class ClinicRole:
    """Roles stored on ClinicMembership.role."""
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    PROFESSIONAL = "PROFESSIONAL"
    RECEPTIONIST = "RECEPTIONIST"
    FINANCIAL = "FINANCIAL"
    MARKETING = "MARKETING"
    STAFF = "STAFF"

    ALL = (OWNER, MANAGER, PROFESSIONAL, RECEPTIONIST, FINANCIAL, MARKETING, STAFF)

    # Roles that bypass the Permission table entirely
    MANAGEMENT = (OWNER, MANAGER)


# OWNER and MANAGER are omitted: they short-circuit every check.
DEFAULT_ROLE_PERMISSIONS = {
    ClinicRole.PROFESSIONAL: [
        (M.DASHBOARD, A.READ),
        (M.CLIENTS, A.READ), (M.CLIENTS, A.CREATE), (M.CLIENTS, A.UPDATE),
        (M.APPOINTMENTS, A.READ), (M.APPOINTMENTS, A.CREATE), (M.APPOINTMENTS, A.UPDATE),
    ],
    ClinicRole.RECEPTIONIST: [
        (M.DASHBOARD, A.READ),
        (M.CLIENTS, A.READ), (M.CLIENTS, A.CREATE), (M.CLIENTS, A.UPDATE),
        (M.APPOINTMENTS, A.READ), (M.APPOINTMENTS, A.CREATE),
        (M.APPOINTMENTS, A.UPDATE), (M.APPOINTMENTS, A.DELETE),
    ],
    ClinicRole.FINANCIAL: [
        (M.DASHBOARD, A.READ),
        (M.CLIENTS, A.READ),
        (M.FINANCIAL, A.READ), (M.FINANCIAL, A.CREATE),
        (M.FINANCIAL, A.UPDATE), (M.FINANCIAL, A.DELETE),
        (M.REPORTS, A.READ), (M.REPORTS, A.EXPORT),
    ],
    ClinicRole.MARKETING: [
        (M.DASHBOARD, A.READ),
        (M.CLIENTS, A.READ),
        (M.REPORTS, A.READ), (M.REPORTS, A.EXPORT),
        (M.CRM, A.READ), (M.CRM, A.CREATE), (M.CRM, A.UPDATE),
    ],
    ClinicRole.STAFF: [
        (M.DASHBOARD, A.READ),
        (M.CLIENTS, A.READ),
        (M.APPOINTMENTS, A.READ),
    ],
}
