from fastapi import Depends, HTTPException, status

from app.auth.dependencies import get_current_user
from app.auth.schemas import CurrentUser

# Roles that manage every timetable of their school without per-module grants.
ADMIN_ROLES = ("SUPER_ADMIN", "ADMIN")


def has_permission(user: CurrentUser, module: str, action: str) -> bool:
    if user.role in ADMIN_ROLES:
        return True
    return bool((user.permissions or {}).get(module, {}).get(action, False))


def check_permission(module: str, action: str):
    """
    Dependency factory guarding a route with a (module, action) grant from the token.

    Example:
        Depends(check_permission("timetable", "create"))
    """

    async def _checker(current_user: CurrentUser = Depends(get_current_user)) -> None:
        if not has_permission(current_user, module, action):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker
