"""Interactive front-end for promecieus.

Philosophy: TUI = a window into the session state. Nothing more.
- Render what the controller hands over; never touch the state directly
- User intents (typing, submit, delete) go to the controller
- Connection recovery is the controller's business; the TUI only shows it
"""

from __future__ import annotations

from rich.style import Style
from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, VerticalScroll
from textual.css.query import NoMatches
from textual.reactive import reactive
from textual.widgets import Button, Footer, Input, Label, ProgressBar, Static

from promecieus.config import Config, VariantColors
from promecieus.controller import SessionController
from promecieus.formatting import entry_variant, format_quota, format_retry, quota_fraction
from promecieus.protocol import LINK, PROGRESS, Quota, StatusEvent
from promecieus.session import SessionState


def render_entry(event: StatusEvent, colors: VariantColors) -> Text | None:
    """Render one status feed entry, or None for kinds that show nothing."""
    variant = entry_variant(event.kind)
    if variant is None:
        return None
    color = getattr(colors, variant)
    message = event.payload.strip()

    if event.kind == PROGRESS:
        return Text.assemble(("◌ ", f"bold {color}"), (message, color))
    if event.kind == LINK:
        return Text(message, style=Style(color=color, underline=True, link=event.payload))
    return Text(message, style=color)


class SearchBar(Static):
    """Input line with the Generate button, or Delete while a job is active."""

    DEFAULT_CSS = """
    SearchBar {
        height: 3;
    }

    SearchBar Horizontal {
        height: 3;
    }

    SearchBar Input {
        width: 1fr;
    }

    SearchBar Button {
        width: auto;
        min-width: 14;
    }
    """

    job_id: reactive[str | None] = reactive(None)

    def compose(self) -> ComposeResult:
        """Create input and buttons."""
        yield Horizontal(
            Input(placeholder=self.app.config.tui.placeholder, id="search-input"),
            Button("Generate", id="generate", variant="primary"),
            Button("Delete", id="delete", variant="warning"),
        )

    def on_mount(self) -> None:
        self._update_buttons()

    def watch_job_id(self, job_id: str | None) -> None:
        self._update_buttons()

    def _update_buttons(self) -> None:
        try:
            generate = self.query_one("#generate", Button)
            delete = self.query_one("#delete", Button)
        except NoMatches:
            return
        generate.display = self.job_id is None
        delete.display = self.job_id is not None
        if self.job_id is not None:
            delete.label = f"Delete {self.job_id}"


class QuotaStatus(Static):
    """Resource quota bar labelled ``used/hard``."""

    DEFAULT_CSS = """
    QuotaStatus {
        height: 3;
        align-horizontal: center;
    }

    QuotaStatus Horizontal {
        height: 1;
        width: auto;
    }
    """

    def compose(self) -> ComposeResult:
        """Create title, bar and label."""
        yield Label("Current resource quota")
        yield Horizontal(
            ProgressBar(total=None, show_eta=False, show_percentage=False, id="quota-bar"),
            Label("", id="quota-label"),
        )

    def update_quota(self, quota: Quota) -> None:
        """Show new quota numbers."""
        try:
            bar = self.query_one("#quota-bar", ProgressBar)
            label = self.query_one("#quota-label", Label)
        except NoMatches:
            return
        bar.update(total=100, progress=quota_fraction(quota) * 100)
        label.update(f" {format_quota(quota)}")


class StatusFeed(Static):
    """Status entries of the active job, oldest first."""

    DEFAULT_CSS = """
    StatusFeed {
        height: 1fr;
        border: solid $primary;
        border-title-align: left;
    }

    StatusFeed .entry {
        height: auto;
        padding: 0 1;
    }
    """

    def compose(self) -> ComposeResult:
        yield VerticalScroll(id="feed")

    def on_mount(self) -> None:
        self.border_title = "STATUS"

    def update_log(self, entries: tuple[StatusEvent, ...]) -> None:
        """Replace the rendered entries with ``entries``."""
        try:
            feed = self.query_one("#feed", VerticalScroll)
        except NoMatches:
            return
        colors = self.app.config.tui.colors.variants
        feed.remove_children()
        widgets = []
        for event in entries:
            text = render_entry(event, colors)
            if text is not None:
                widgets.append(Static(text, classes="entry"))
        if widgets:
            feed.mount(*widgets)
            feed.scroll_end(animate=False)


class PromeCIeusApp(App):
    """Submit a Prow job URL and follow its status feed."""

    CSS = """
    Screen {
        layout: vertical;
        padding: 1 2;
    }

    #title {
        text-style: bold;
        height: 1;
    }
    """

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+d", "delete_active", "Delete job"),
    ]

    def __init__(self, config: Config | None = None):
        super().__init__()
        self.config = config or Config.load()
        # Create config file with defaults if it doesn't exist
        if not self.config.config_path.exists():
            self.config.save()
        self.controller: SessionController | None = None
        # Log and job last pushed into the feed
        self._rendered_feed: tuple | None = None

    def compose(self) -> ComposeResult:
        """Create the TUI layout."""
        yield Label("PromeCIeus", id="title")
        yield SearchBar(id="search")
        yield QuotaStatus(id="quota")
        yield StatusFeed(id="status")
        yield Footer()

    def on_mount(self) -> None:
        """Start the session once the loop is running."""
        self.title = "promecieus"
        self.sub_title = "connecting..."
        self.controller = SessionController(
            self.config,
            on_change=self._render_state,
            on_connection=self._set_connection,
        )
        self._render_state(self.controller.state)

    async def on_unmount(self) -> None:
        """Close the connection on shutdown."""
        if self.controller is not None:
            await self.controller.close()

    def on_input_changed(self, event: Input.Changed) -> None:
        if self.controller is not None:
            self.controller.set_input(event.value)

    async def on_input_submitted(self, event: Input.Submitted) -> None:
        await self._submit(event.value)

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "generate":
            await self._submit(None)
        elif event.button.id == "delete":
            await self.action_delete_active()

    async def action_delete_active(self) -> None:
        """Delete the active job, if any."""
        if self.controller is None or not self.controller.state.has_active_job:
            return
        if not await self.controller.delete_active():
            self.notify("Not connected, delete not sent", severity="warning")

    async def _submit(self, text: str | None) -> None:
        if self.controller is None:
            return
        # One job at a time: the Generate button is hidden while a job is active
        if self.controller.state.has_active_job:
            self.notify("Delete the current job first", severity="warning")
            return
        state = self.controller.state
        if not (text if text is not None else state.pending_input):
            return
        if not await self.controller.submit(text):
            self.notify("Not connected, submission dropped", severity="warning")

    def _set_connection(self, connected: bool, retry_in_ms: int | None = None) -> None:
        """Show connection liveness in the subtitle."""
        if connected:
            self.sub_title = "live"
        else:
            self.sub_title = f"disconnected ({format_retry(retry_in_ms)})"

    def _render_state(self, state: SessionState) -> None:
        """Push a state snapshot into the widgets."""
        try:
            self.query_one("#search", SearchBar).job_id = state.active_job_id
        except NoMatches:
            pass
        try:
            self.query_one("#quota", QuotaStatus).update_quota(state.quota)
        except NoMatches:
            pass
        feed_key = (state.log, state.active_job_id)
        if feed_key == self._rendered_feed:
            return
        try:
            feed = self.query_one("#status", StatusFeed)
        except NoMatches:
            return
        # The feed is only shown while a job is tracked
        feed.display = state.has_active_job
        feed.update_log(state.log if state.has_active_job else ())
        self._rendered_feed = feed_key


def run_tui(config: Config | None = None) -> None:
    """Run the TUI application."""
    app = PromeCIeusApp(config)
    app.run()
