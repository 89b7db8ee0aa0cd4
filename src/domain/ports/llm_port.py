"""
Port (interface) for language model providers.
Infrastructure adapters (e.g. OpenAIChatAdapter) must implement this interface.
"""

from abc import ABC, abstractmethod


class ILanguageModel(ABC):
    @abstractmethod
    async def complete(self, prompt: str) -> str:
        """Send a single user *prompt* and return the assistant's text.

        Raises:
            LanguageModelError: on transport failure, non-OK status, or an
                                empty completion.
        """
        ...
