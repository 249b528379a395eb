import json
import logging
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.panel import Panel
from rich.box import HEAVY, SIMPLE, ROUNDED
from rich.text import Text
from rich.table import Table

from subsweep.domain.interfaces.user_interface import UserInterface
from subsweep.domain.models.common import ChannelId
from subsweep.domain.models.scan import ResultEntry, ScanStatus, ScanSummary

logger = logging.getLogger(__name__)

# Badge text and colour per status, as shown next to each channel
STATUS_STYLES = {
    ScanStatus.NO_UPLOADS: ("No uploads", "dim"),
    ScanStatus.API_ERROR: ("API error", "red"),
    ScanStatus.QUOTA_EXCEEDED: ("Quota exceeded", "bold red"),
}


def format_days(days: int) -> str:
    """Human readable age: '3 days', '5 months', '2 years'."""
    if days < 1:
        return "today"
    if days < 60:
        return f"{days} day{'s' if days != 1 else ''}"
    if days < 730:
        return f"{days // 30} months"
    return f"{days // 365} years"


def badge_for(result: ResultEntry) -> Text:
    if result.status is ScanStatus.OK:
        label = f"{format_days(result.days_ago)} ago"
        return Text(label, style="bold yellow" if result.is_inactive else "green")
    label, style = STATUS_STYLES[result.status]
    return Text(label, style=style)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_results(self, results: Mapping[ChannelId, ResultEntry], **kwargs: Any) -> None:
        """Renders scan results as a table, or as JSON when as_json=True.

        Args:
            results: Result map as returned by the scan pipeline.
            **kwargs: inactive_only (bool) hides channels that are not inactive;
                as_json (bool) prints a JSON object keyed by channel id.
        """
        inactive_only = kwargs.get("inactive_only", False)
        shown = {cid: r for cid, r in results.items() if r.is_inactive or not inactive_only}

        if kwargs.get("as_json", False):
            payload = {cid: r.to_dict() for cid, r in shown.items()}
            self.console.print_json(json.dumps(payload))
            return

        if not shown:
            self.display_info("No inactive channels found." if inactive_only else "No channels scanned.")
            return

        table = Table(box=ROUNDED, title="Last upload per channel", title_justify="left")
        table.add_column("Channel", style="cyan", no_wrap=True)
        table.add_column("Last upload", no_wrap=True)
        table.add_column("Age")
        table.add_column("Note", style="dim")

        for channel_id, result in shown.items():
            last_upload = result.last_upload_at.strftime("%Y-%m-%d") if result.last_upload_at else "-"
            note = result.error or ("inactive" if result.is_inactive else "")
            table.add_row(channel_id, last_upload, badge_for(result), note)

        self.console.print(table)

        quota_hit = any(r.status is ScanStatus.QUOTA_EXCEEDED for r in results.values())
        if quota_hit:
            self.display_warning("YouTube API quota exceeded. Results are partial; try again after the daily reset.")

    def display_summary(self, summary: Optional[ScanSummary], **kwargs: Any) -> None:
        if summary is None:
            self.display_info("No scan has been run yet.")
            return
        table = Table(box=SIMPLE, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        table.add_row("Last scan", summary.time.astimezone().strftime("%Y-%m-%d %H:%M"))
        table.add_row("Channels", str(summary.total))
        table.add_row("Inactive", Text(str(summary.inactive), style="yellow" if summary.inactive else "green"))
        self.console.print(table)

    def display_settings(self, settings: Dict[str, Any], **kwargs: Any) -> None:
        table = Table(box=SIMPLE, show_header=False, title="Settings", title_justify="left")
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        for key, value in settings.items():
            table.add_row(key, str(value))
        self.console.print(table)

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message with enhanced styling.

        Args:
            info_message: The informational message to display.
        """
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.debug(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
