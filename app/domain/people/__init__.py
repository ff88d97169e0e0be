"""People Domain - profiles and collaborator suggestions"""

from .router import router

__all__ = ["router"]
