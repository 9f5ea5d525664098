from .database import Database
from .models import WorkSession
from .repository import Repository

__all__ = ["Database", "WorkSession", "Repository"]
