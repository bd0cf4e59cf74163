from fastapi import Depends
from salesdesk.core.exceptions import PermissionDenied
from salesdesk.utils.get_user import get_current_user
from salesdesk.models.users.user_models import User


def require_role(roles: list[str]):
    async def role_checker(user: User = Depends(get_current_user)):
        if user.role.lower() not in [str(getattr(r, "value", r)).lower() for r in roles]:
            raise PermissionDenied(user.role, "access this resource")
        return user
    return role_checker
