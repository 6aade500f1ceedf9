"""
Progress bar for batch playlist export, built on the Rich library.

Single playlist exports are quick enough to go without a bar; the
--all export aggregates every playlist in turn and shows one bar
with succeeded/failed counters.

Usage:
    from spot_exporter.core.progress import ExportProgressBar

    with ExportProgressBar(total=len(playlists)) as progress:
        for playlist in playlists:
            progress.set_current(playlist.name)
            ...
            progress.update(success=True)
"""

from typing import Optional

from rich import get_console
from rich.console import JustifyMethod, OverflowMethod
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
)
from rich.style import StyleType
from rich.text import Text
from rich.theme import Theme


PROGRESS_THEME = Theme({
    "bar.back": "grey23",
    "bar.complete": "rgb(30,215,96)",  # Spotify green
    "bar.finished": "rgb(114,156,31)",
    "bar.pulse": "rgb(30,215,96)",
    "progress.percentage": "white",
})


class SizedTextColumn(ProgressColumn):
    """
    Text column truncated with an ellipsis to a fixed width.

    Keeps the bar from jumping around while long playlist names scroll by.
    """

    def __init__(
        self,
        text_format: str,
        style: StyleType = "none",
        justify: JustifyMethod = "left",
        overflow: Optional[OverflowMethod] = "ellipsis",
        width: int = 20,
    ) -> None:
        self.text_format = text_format
        self.justify: JustifyMethod = justify
        self.style = style
        self.overflow: Optional[OverflowMethod] = overflow
        self.width = width
        super().__init__()

    def render(self, task: Task) -> Text:
        text = Text.from_markup(
            self.text_format.format(task=task), style=self.style, justify=self.justify
        )
        text.truncate(max_width=self.width, overflow=self.overflow, pad=True)
        return text


class ExportProgressBar:
    """
    Progress bar for exporting all playlists.

    Displays:
    - Current playlist name
    - Status: ✓ exported, ✗ failed
    - Progress bar and M/N counter

    Example:
        Road Trip           ✓ 12  ✗ 1        ━━━━━━━━━━━━━━━━━  13/40
    """

    def __init__(self, total: int, description: str = "Exporting", status_width: int = 20):
        self.total = total
        self.description = description
        self.completed = 0
        self.succeeded = 0
        self.failed = 0

        self.console = get_console()
        self.console.push_theme(PROGRESS_THEME)

        self.progress = Progress(
            SizedTextColumn("[white]{task.description}", width=25),
            SizedTextColumn("{task.fields[status]}", width=status_width, style="white"),
            BarColumn(bar_width=40, finished_style="green"),
            MofNCompleteColumn(),
            console=self.console,
            transient=False,
            refresh_per_second=10,
        )

        self.task_id: Optional[TaskID] = None
        self._started = False

    def __enter__(self) -> "ExportProgressBar":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def start(self) -> None:
        if not self._started:
            self.progress.start()
            self.task_id = self.progress.add_task(
                description=self.description,
                total=self.total,
                status=self._get_status_text(),
            )
            self._started = True

    def stop(self) -> None:
        if self._started:
            self.progress.stop()
            self.console.pop_theme()
            self._started = False

    def set_current(self, name: str) -> None:
        """Show the playlist currently being aggregated."""
        if self.task_id is not None:
            self.progress.update(self.task_id, description=name)

    def update(self, success: bool) -> None:
        """Record one finished playlist."""
        self.completed += 1
        if success:
            self.succeeded += 1
        else:
            self.failed += 1

        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                completed=self.completed,
                status=self._get_status_text(),
            )

    def _get_status_text(self) -> str:
        return f"[green]✓ {self.succeeded}[/green]  [red]✗ {self.failed}[/red]"
