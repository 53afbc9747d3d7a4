"""ORM models. Importing this package registers every table on ``Base.metadata``."""

from .base import Base
from .provision import ProvisionLink
from .session import AuthSession

__all__ = ["AuthSession", "Base", "ProvisionLink"]
