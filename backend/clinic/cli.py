# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/clinic/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create tables and seed a SUPER_ADMIN plus a demo clinic (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Ana" --email ana@clinic.local --password "Password123!" --role STAFF
#
# Clinics:
# - python -m flask clinics list
# - python -m flask clinics create --name "Clinica Centro" --owner-email ana@clinic.local
#
# Permissions:
# - python -m flask perms list [--module financial]
# - python -m flask perms grant 3 financial read
# - python -m flask perms revoke 3 financial read
# - python -m flask perms defaults 3
#
# Maintenance:
# - python -m flask maintenance cleanup-security-events --retention-days 90
# - python -m flask maintenance cleanup-sessions
# - python -m flask maintenance purge-invitations

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Clinic, ClinicMembership, User
from .permissions import ClinicRole, GlobalRole, PERMISSION_DEFINITIONS
from .services.auth_service import create_user, PasswordValidationError
from .services import clinic_service
from .services import maintenance_service
from .services import permission_service
from .services import session_service
from .validation import ValidationError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--clinic', 'clinic_name', default='Demo Clinic', help='Name of the seeded clinic')
@with_appcontext
def init_system(clinic_name):
    """
    Initialize the database with a SUPER_ADMIN and a demo clinic.

    Creates:
    - All tables (if missing)
    - admin@clinic.local (SUPER_ADMIN, password "Password123!")
    - A clinic owned by the admin

    SECURITY: Change the password immediately in production!
    """
    click.echo("START Initializing clinic backend...")
    db.create_all()

    admin = db.session.query(User).filter_by(email="admin@clinic.local").first()
    if not admin:
        admin = create_user(
            name="Administrator",
            email="admin@clinic.local",
            password="Password123!",
            role=GlobalRole.SUPER_ADMIN,
        )
        click.echo(f"PASS Created admin user (ID: {admin.id})")
    else:
        click.echo(f"PASS Using existing admin user (ID: {admin.id})")

    membership = db.session.query(ClinicMembership).filter_by(user_id=admin.id).first()
    if not membership:
        clinic = clinic_service.create_clinic(admin.id, {"name": clinic_name})
        click.echo(f"PASS Created clinic: {clinic.name} (ID: {clinic.id})")
    else:
        click.echo(f"PASS Admin already belongs to clinic ID {membership.clinic_id}")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo("   admin@clinic.local / Password123!")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


# =============================================================================
# USERS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(GlobalRole.ALL), default=GlobalRole.STAFF, help='Global role')
@with_appcontext
def create_user_cli(name, email, password, role):
    """Create a user account."""
    try:
        user = create_user(name=name, email=email, password=password, role=role)
    except (ValueError, PasswordValidationError) as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their clinic memberships."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<30} {'Role':<15} {'Active':<8} {'Clinics'}")
    click.echo("="*100)

    for user in users:
        clinics = ", ".join(f"{m.clinic_id}:{m.role}" for m in user.memberships) or "none"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name[:20]:<20} {user.email[:30]:<30} {user.role:<15} {active_str:<8} {clinics}")

    click.echo("="*100 + "\n")


# =============================================================================
# CLINICS
# =============================================================================

@click.group('clinics')
def clinics_group():
    """Clinic (tenant) management commands."""


@clinics_group.command('list')
@with_appcontext
def list_clinics():
    clinics = db.session.query(Clinic).order_by(Clinic.id.asc()).all()
    if not clinics:
        click.echo("No clinics found.")
        return

    for clinic in clinics:
        members = db.session.query(ClinicMembership).filter_by(clinic_id=clinic.id).count()
        click.echo(f"{clinic.id:<5} {clinic.name:<40} members={members}")


@clinics_group.command('create')
@click.option('--name', required=True, help='Clinic name')
@click.option('--owner-email', required=True, help='Email of the user who becomes OWNER')
@with_appcontext
def create_clinic_cli(name, owner_email):
    owner = db.session.query(User).filter_by(email=owner_email.strip().lower()).first()
    if not owner:
        raise click.ClickException(f"No user with email {owner_email}")
    try:
        clinic = clinic_service.create_clinic(owner.id, {"name": name})
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Created clinic {clinic.name} (ID: {clinic.id}) owned by {owner.email}")


# =============================================================================
# PERMISSIONS
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection and repair commands."""


@perms_group.command('list')
@click.option('--module', help='Only show one module')
@with_appcontext
def list_perms(module):
    """List the permission catalogue."""
    for perm_module, action, name, description in PERMISSION_DEFINITIONS:
        if module and perm_module != module:
            continue
        click.echo(f"{perm_module + ':' + action:<24} {name:<28} {description}")


def _membership_or_fail(membership_id: int) -> ClinicMembership:
    membership = db.session.get(ClinicMembership, membership_id)
    if not membership:
        raise click.ClickException(f"Membership {membership_id} not found")
    return membership


@perms_group.command('grant')
@click.argument('membership_id', type=int)
@click.argument('module')
@click.argument('action')
@with_appcontext
def grant_perm(membership_id, module, action):
    membership = _membership_or_fail(membership_id)
    try:
        permission_service.grant_permission(membership.id, module, action)
    except ValidationError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Granted {module}:{action} to membership {membership.id}")


@perms_group.command('revoke')
@click.argument('membership_id', type=int)
@click.argument('module')
@click.argument('action')
@with_appcontext
def revoke_perm(membership_id, module, action):
    membership = _membership_or_fail(membership_id)
    if permission_service.revoke_permission_key(membership.id, module, action):
        click.echo(f"PASS Revoked {module}:{action} from membership {membership.id}")
    else:
        click.echo(f"WARN Membership {membership.id} did not have {module}:{action}")


@perms_group.command('defaults')
@click.argument('membership_id', type=int)
@with_appcontext
def apply_defaults(membership_id):
    """Replace a membership's grants with its role defaults."""
    membership = _membership_or_fail(membership_id)
    if membership.role in ClinicRole.MANAGEMENT:
        click.echo(f"WARN {membership.role} bypasses permission checks; defaults are empty")
    permissions = permission_service.apply_role_defaults(membership)
    click.echo(f"PASS Membership {membership.id} now has {len(permissions)} permissions")


# =============================================================================
# MAINTENANCE
# =============================================================================

@click.group('maintenance')
def maintenance_group():
    """Retention and cleanup commands."""


@maintenance_group.command('cleanup-security-events')
@click.option('--retention-days', type=int, default=90, show_default=True)
@with_appcontext
def cleanup_security_events(retention_days):
    deleted = maintenance_service.cleanup_security_events(retention_days=retention_days)
    click.echo(f"PASS Deleted {deleted} security events older than {retention_days} days")


@maintenance_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} expired or revoked sessions")


@maintenance_group.command('purge-invitations')
@with_appcontext
def purge_invitations():
    deleted = maintenance_service.purge_expired_invitations()
    click.echo(f"PASS Deleted {deleted} expired invitations")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(clinics_group)
    app.cli.add_command(perms_group)
    app.cli.add_command(maintenance_group)
