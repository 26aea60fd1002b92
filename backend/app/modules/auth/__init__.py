# Authentication module

from app.modules.auth.dependencies import get_current_user, get_current_student
from app.modules.auth.access_control import (
    Permission,
    ROLE_PERMISSIONS,
    has_permission,
    require_permission,
    require_roles,
    college_scope,
)

__all__ = [
    "get_current_user",
    "get_current_student",
    "Permission",
    "ROLE_PERMISSIONS",
    "has_permission",
    "require_permission",
    "require_roles",
    "college_scope",
]
