# Security module
from hotelpms.security.auth import (
    get_password_hash, verify_password, create_access_token,
    get_current_user, get_current_branch_id, require_permission
)

__all__ = [
    'get_password_hash', 'verify_password', 'create_access_token',
    'get_current_user', 'get_current_branch_id', 'require_permission'
]
