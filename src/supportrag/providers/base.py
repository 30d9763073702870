"""
Base answer generator interface.
"""

from abc import ABC, abstractmethod


class AnswerGenerator(ABC):
    """
    Abstract base class for answer generators.

    An answer generator takes one prompt and returns one text response.
    Failures propagate to the caller; no retry is attempted here.
    """

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Generate a response for a prompt.

        Args:
            prompt: Complete prompt, including context and question

        Returns:
            Generated text
        """
        pass
