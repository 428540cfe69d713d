from .page_visit import PageVisit
from .user_role import UserRole

__all__ = ['PageVisit', 'UserRole']
