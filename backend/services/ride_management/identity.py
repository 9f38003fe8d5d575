"""Caller identity handed to the lifecycle layer by the auth collaborator."""

from dataclasses import dataclass

from accounts.models import User


@dataclass(frozen=True)
class Caller:
    caller_id: int
    role: User.Role

    @classmethod
    def from_user(cls, user) -> "Caller":
        return cls(caller_id=user.id, role=User.Role(user.role))

    @property
    def is_rider(self) -> bool:
        return self.role == User.Role.RIDER

    @property
    def is_driver(self) -> bool:
        return self.role == User.Role.DRIVER
