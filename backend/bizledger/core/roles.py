from enum import Enum
from typing import Union


class Role(str, Enum):
    employee = "employee"
    manager = "manager"
    admin = "admin"


ROLE_RANKS = {
    Role.employee: 1,
    Role.manager: 2,
    Role.admin: 3,
}


def role_rank(role: Union[Role, str, None]) -> int:
    """Rank of a role; unknown roles rank 0 so they satisfy no check."""
    try:
        return ROLE_RANKS[Role(role)]
    except ValueError:
        return 0


def role_satisfies(role: Union[Role, str, None], required: Union[Role, str]) -> bool:
    return role_rank(role) >= role_rank(required) > 0
