"""Staff and citizen roles."""

import enum


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    CAJERO = "CAJERO"
    REGISTRO = "REGISTRO"
    AUDITOR = "AUDITOR"
    ALCALDE = "ALCALDE"
    SECRETARIA = "SECRETARIA"
    CONTRIBUYENTE = "CONTRIBUYENTE"


# Roles that resolve administrative requests
SUPERVISOR_ROLES = frozenset({Role.ADMIN})

# Roles that raise administrative requests and wait for the outcome
REQUESTER_ROLES = frozenset({Role.CAJERO, Role.REGISTRO})
