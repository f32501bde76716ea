# Overview: Utility functions for permission lookups and validation.

from .definitions import PERMISSION_DEFINITIONS


def get_all_permission_keys():
    """Get list of all (module, action) pairs."""
    return [(perm[0], perm[1]) for perm in PERMISSION_DEFINITIONS]


def get_permissions_by_module(module):
    """Get all permissions for a module."""
    return [perm for perm in PERMISSION_DEFINITIONS if perm[0] == module]


def get_permission_definition(module, action):
    """Get full definition for a (module, action) pair."""
    for perm in PERMISSION_DEFINITIONS:
        if perm[0] == module and perm[1] == action:
            return {
                "module": perm[0],
                "action": perm[1],
                "name": perm[2],
                "description": perm[3],
            }
    return None


def validate_permission(module, action):
    """Check if a (module, action) pair is in the catalogue."""
    return (module, action) in get_all_permission_keys()
