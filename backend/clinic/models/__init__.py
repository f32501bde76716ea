from .auth import User, SessionToken
from .tenancy import Clinic, ClinicMembership, Permission, Invitation
from .security import SecurityEvent
from .directory import Client, Professional, Appointment
from .financial import Expense, Account, FinancialTransaction, Budget, FinancialGoal
from .payments import Payment, Commission

__all__ = [
    'User', 'SessionToken',
    'Clinic', 'ClinicMembership', 'Permission', 'Invitation',
    'SecurityEvent',
    'Client', 'Professional', 'Appointment',
    'Expense', 'Account', 'FinancialTransaction', 'Budget', 'FinancialGoal',
    'Payment', 'Commission',
]
