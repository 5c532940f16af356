from dataclasses import dataclass
from typing import Optional

from bizledger.core.roles import Role


@dataclass(frozen=True)
class Principal:
    user_id: int
    username: str
    role: Role


class PrincipalSession:
    """
    Request-scoped holder of the authenticated principal.

    The HTTP layer builds one per request from the bearer token; services
    receive it (or the principal itself) explicitly.
    """

    def __init__(self, principal: Optional[Principal] = None):
        self._principal = principal

    def current_principal(self) -> Optional[Principal]:
        return self._principal

    def set_principal(self, principal: Principal) -> None:
        self._principal = principal

    def clear(self) -> None:
        self._principal = None

    @property
    def is_logged_in(self) -> bool:
        return self._principal is not None
