from .side_effect import SideEffect  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
