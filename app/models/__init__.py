from .question import Question
from .quiz import Quiz

__all__ = ['Question', 'Quiz']
