"""
Identity of the caller, as asserted by the upstream authentication layer.

Lifecycle operations receive it as an explicit argument; nothing in the core
reads the caller from request or global state.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Identity:
    user_id: int
    is_admin: bool = False

    def can_administer(self) -> bool:
        return self.is_admin

    def owns(self, booking) -> bool:
        return booking.user_id == self.user_id
