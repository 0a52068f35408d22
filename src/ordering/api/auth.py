"""Authenticated principal for API requests.

Authentication happens upstream; the gateway in front of this service
forwards the principal in request headers.
"""

from dataclasses import dataclass

from fastapi import Header, HTTPException

from ordering.access import Role


@dataclass(frozen=True)
class Principal:
    user_id: str
    university_id: str | None
    role: str


def get_principal(
    x_user_id: str | None = Header(default=None),
    x_university_id: str | None = Header(default=None),
    x_user_role: str = Header(default=Role.STUDENT.value),
) -> Principal:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing authenticated user")
    role = x_user_role.upper()
    if role not in {r.value for r in Role}:
        raise HTTPException(status_code=401, detail=f"Unknown role {x_user_role}")
    return Principal(user_id=x_user_id, university_id=x_university_id, role=role)
