from .access_token import AccessToken  # noqa: F401
from .candidate import Candidate  # noqa: F401
from .admin_user import AdminUser  # noqa: F401
from .token_blocklist import TokenBlocklist  # noqa: F401
from .audit_log import AuditLog  # noqa: F401

# Import ALL models so SQLAlchemy registers them

__all__ = [
    "AccessToken",
    "Candidate",
    "AdminUser",
    "TokenBlocklist",
    "AuditLog",
]
