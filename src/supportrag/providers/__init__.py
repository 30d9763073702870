"""
Answer generator providers.
"""

from supportrag.providers.base import AnswerGenerator
from supportrag.providers.openai import OpenAIAnswerGenerator

__all__ = [
    "AnswerGenerator",
    "OpenAIAnswerGenerator",
]
