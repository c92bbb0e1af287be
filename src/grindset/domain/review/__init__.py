# Domain Review Package
from .models import Flashcard, ReviewState

__all__ = ["Flashcard", "ReviewState"]
