import logging
import time
from datetime import datetime
from typing import Any, List, Optional

from rich.align import Align
from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from zestislam.domain.interfaces.user_interface import UserInterface
from zestislam.domain.models.common import PromptText, ProcessedOutput
from zestislam.domain.models.content import Message

logger = logging.getLogger(__name__)

SCHOLAR_TITLE = "Scholar"


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()
        self.session_start_time = time.time()
        self.message_count = 0
        self.last_sender: Optional[str] = None

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_output(self, output: ProcessedOutput, **kwargs: Any) -> None:
        """Displays output text to the user, rendering Markdown.

        Args:
            output: The processed output string to display.
            **kwargs: Additional arguments including:
                - title: The title/sender of the message (default: "Scholar")
                - subtitle: Optional footer line, e.g. a source reference
        """
        title = kwargs.get("title", SCHOLAR_TITLE)
        subtitle = kwargs.get("subtitle")
        self.message_count += 1

        is_continuation = self.last_sender == title
        self.last_sender = title
        timestamp = datetime.now().strftime("%H:%M:%S")

        if title.lower() == "you":
            box_style, style = SIMPLE, "green"
        else:
            box_style, style = ROUNDED, "cyan"
        header = f"[bold white]{title}[/bold white] [dim]·[/dim] [dim white]{timestamp}[/dim white]"

        if not is_continuation:
            self.console.print("")

        output_str = str(output)
        try:
            self.console.print(Panel(
                Markdown(output_str),
                title=header,
                title_align="left",
                subtitle=subtitle,
                subtitle_align="right",
                border_style=style,
                box=box_style,
                padding=(0, 1),
            ))
        except Exception as e:
            logger.error(f"Error displaying formatted message: {e}")
            self.console.print(f"\n{title} ({timestamp}):\n{output_str}\n")

    def get_prompt(self, prompt_message: str = "> ") -> PromptText:
        """Gets input from the user.

        Args:
            prompt_message: The message to display before the input cursor.

        Returns:
            The text input by the user.
        """
        self.last_sender = None
        self.console.print("")
        user_input = self.console.input(f"[bold green]{prompt_message}[/bold green] ")
        self.message_count += 1
        return PromptText(user_input)

    def _print_notice(self, message: str, title: str, colour: str, box: Any) -> None:
        self.console.print(Panel(
            Text(message, style="white"),
            title=f"[bold {colour}]{title}[/bold {colour}]",
            border_style=colour,
            box=box,
            padding=(0, 1),
        ))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        self._print_notice(error_message, "Error", "red", HEAVY)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self._print_notice(info_message, "Info", "blue", SIMPLE)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.warning(f"Display warning: {warning_message}")
        self._print_notice(warning_message, "Warning", "yellow", HEAVY)

    def display_table(self, title: str, columns: List[str], rows: List[List[Any]]) -> None:
        """Displays rows under the given column headers."""
        table = Table(title=title, box=ROUNDED, border_style="cyan", padding=(0, 1))
        for column in columns:
            table.add_column(column)
        for row in rows:
            table.add_row(*[str(cell) for cell in row])
        self.console.print(table)

    def display_session_header(self, provider_name: str, conversation_title: str) -> None:
        """Displays a header for a new chat session."""
        table = Table(show_header=False, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("Content", style="cyan")
        table.add_row("[bold cyan]ZestIslam Scholar Chat[/bold cyan]")
        table.add_row(f"Conversation: [bold]{conversation_title}[/bold]")
        table.add_row(f"AI Provider: [bold]{provider_name}[/bold]")
        table.add_row("Type 'exit' or 'quit' to end the session, '/history' to review it")
        self.console.print("")
        self.console.print(Align.center(table))
        self.console.print("")

    def display_session_footer(self, message_count: int, session_duration_secs: float) -> None:
        minutes, seconds = divmod(int(session_duration_secs), 60)
        hours, minutes = divmod(minutes, 60)
        duration_str = f"{hours}h {minutes}m {seconds}s" if hours else f"{minutes}m {seconds}s"
        table = Table(show_header=False, box=SIMPLE, border_style="cyan", padding=(0, 1))
        table.add_column("Content", style="cyan")
        table.add_row("[bold cyan]Session Summary[/bold cyan]")
        table.add_row(f"Messages exchanged: [bold]{message_count}[/bold]")
        table.add_row(f"Session duration: [bold]{duration_str}[/bold]")
        self.console.print(Align.center(table))

    def display_chat_history(self, history: List[Message]) -> None:
        """Displays stored messages as a table, truncating long ones."""
        table = Table(show_header=True, box=ROUNDED, border_style="cyan", padding=(0, 1))
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Time", style="dim")
        table.add_column("Role", style="bold")
        table.add_column("Message", style="white")
        for i, message in enumerate(history, 1):
            content = str(message.content)
            if len(content) > 100:
                content = content[:97] + "..."
            role = "You" if message.role == "user" else SCHOLAR_TITLE
            role_style = "bold green" if role == "You" else "bold blue"
            table.add_row(
                str(i),
                message.timestamp.strftime("%H:%M:%S"),
                f"[{role_style}]{role}[/{role_style}]",
                content,
            )
        self.console.print(table)

    def display_thinking(self, message: str = "Reflecting...") -> None:
        self.console.print(f"[dim cyan]{message}[/dim cyan]")
