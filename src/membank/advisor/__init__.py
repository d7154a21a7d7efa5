"""Stack advisor - questionnaire-driven stack recommendations."""
from .questionnaire import (
    Choice,
    Question,
    Questionnaire,
    Recommendation,
    StackRule,
    recommend,
)
from .stacks import QUESTIONS, RULES

__all__ = [
    "Choice",
    "Question",
    "Questionnaire",
    "Recommendation",
    "StackRule",
    "recommend",
    "QUESTIONS",
    "RULES",
]
