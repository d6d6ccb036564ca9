"""ORM models; importing this package registers every table with ``Base``."""

from .category import Category, event_categories
from .event import Event
from .photo import Photo
from .registration import Registration
from .user import User

__all__ = ["Category", "Event", "Photo", "Registration", "User", "event_categories"]
