"""Interface for interacting with the user (input/output).

Defines the contract for displaying results, errors, warnings and
getting input from the user, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List, Optional

from zestislam.domain.models.common import PromptText, ProcessedOutput


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: ProcessedOutput, **kwargs: Any) -> None:
        """Displays standard (Markdown) output to the user.

        Args:
            output: The text to display.
            **kwargs: Formatting options, e.g. title.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        pass

    @abc.abstractmethod
    def display_table(self, title: str, columns: List[str], rows: List[List[Any]]) -> None:
        """Displays tabular data such as prayer times or the surah list."""
        pass

    @abc.abstractmethod
    def get_prompt(self, prompt_message: str = "Input: ") -> PromptText:
        """Gets input from the user synchronously.

        Note: For async contexts, the caller should wrap this in asyncio.to_thread.
        """
        pass

    def display_record(self, title: str, record: Dict[str, Any]) -> None:
        """Displays a single structured record (e.g. a dua or dhikr suggestion)."""
        lines = [f"**{key}**: {value}" for key, value in record.items()]
        self.display_output(ProcessedOutput("\n\n".join(lines)), title=title)
