"""Tests for the TUI."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from rich.text import Text

from promecieus.config import Config, VariantColors
from promecieus.protocol import Quota, StatusEvent
from promecieus.session import SessionState
from promecieus.tui.app import PromeCIeusApp, QuotaStatus, render_entry


def test_tui_app_starts_without_crash():
    """TUI app initializes and writes a default config file."""
    config = Config()
    app = PromeCIeusApp(config=config)
    assert app.controller is None
    assert config.config_path.exists()


class TestRenderEntry:
    """Feed entries are colored by display variant."""

    def test_status_uses_info_color(self):
        text = render_entry(StatusEvent("status", "  Checking archive \n"), VariantColors())
        assert isinstance(text, Text)
        assert text.plain == "Checking archive"
        assert str(text.style) == "#8be9fd"

    def test_progress_has_spinner(self):
        text = render_entry(StatusEvent("progress", "50%"), VariantColors())
        assert text.plain == "◌ 50%"

    def test_failure_and_done(self):
        colors = VariantColors(danger="red", success="green")
        assert str(render_entry(StatusEvent("failure", "boom"), colors).style) == "red"
        assert str(render_entry(StatusEvent("done", "ok"), colors).style) == "green"

    def test_link_is_clickable(self):
        text = render_entry(StatusEvent("link", "https://prom.example"), VariantColors())
        assert text.style.link == "https://prom.example"
        assert text.style.underline is True

    @pytest.mark.parametrize("kind", ["app-label", "rquota", "heartbeat"])
    def test_hidden_kinds(self, kind):
        assert render_entry(StatusEvent(kind, "x"), VariantColors()) is None


def test_connection_subtitle():
    app = PromeCIeusApp(config=Config())

    app._set_connection(True)
    assert app.sub_title == "live"

    app._set_connection(False, 500)
    assert app.sub_title == "disconnected (reconnecting in 0.5s...)"


@pytest.fixture
def mock_controller():
    """A SessionController stand-in."""
    controller = MagicMock()
    controller.state = SessionState()
    controller.submit = AsyncMock(return_value=True)
    controller.delete_active = AsyncMock(return_value=True)
    controller.close = AsyncMock()
    return controller


@pytest.fixture
def widgets():
    """Mock widgets keyed by selector."""
    return {"#search": MagicMock(), "#quota": MagicMock(), "#status": MagicMock()}


@pytest.fixture
def app(mock_controller, widgets):
    """App with mocked widgets and controller, no event loop needed."""
    app = PromeCIeusApp(config=Config())
    app.controller = mock_controller

    def mock_query_one(selector, widget_type=None):
        return widgets[selector]

    app.query_one = mock_query_one
    app.notify = MagicMock()
    return app


class TestRenderState:
    """State snapshots are pushed into the widgets."""

    def test_without_job_hides_feed(self, app, widgets):
        app._render_state(SessionState(log=(StatusEvent("status", "stale"),)))

        assert widgets["#search"].job_id is None
        widgets["#quota"].update_quota.assert_called_once_with(Quota())
        assert widgets["#status"].display is False
        widgets["#status"].update_log.assert_called_once_with(())

    def test_with_job_shows_feed(self, app, widgets):
        log = (StatusEvent("app-label", "j1"), StatusEvent("status", "running"))
        app._render_state(SessionState(log=log, active_job_id="j1", quota=Quota(3, 10)))

        assert widgets["#search"].job_id == "j1"
        widgets["#quota"].update_quota.assert_called_once_with(Quota(3, 10))
        assert widgets["#status"].display is True
        widgets["#status"].update_log.assert_called_once_with(log)

    def test_typing_does_not_rebuild_feed(self, app, widgets):
        """Input-only changes leave the rendered feed alone."""
        log = (StatusEvent("app-label", "j1"),)
        app._render_state(SessionState(log=log, active_job_id="j1"))
        app._render_state(SessionState(pending_input="h", log=log, active_job_id="j1"))
        app._render_state(SessionState(pending_input="ht", log=log, active_job_id="j1"))

        widgets["#status"].update_log.assert_called_once_with(log)

        done = log + (StatusEvent("done", "ok"),)
        app._render_state(SessionState(log=done, active_job_id="j1"))
        assert widgets["#status"].update_log.call_count == 2


def test_quota_bar_shows_fraction():
    """The bar tracks used/hard as a percentage; the label shows the raw numbers."""
    bar = MagicMock()
    label = MagicMock()
    widgets = {"#quota-bar": bar, "#quota-label": label}
    quota = QuotaStatus()
    quota.query_one = lambda selector, widget_type=None: widgets[selector]

    quota.update_quota(Quota(used=3, hard=10))

    kwargs = bar.update.call_args.kwargs
    assert kwargs["total"] == 100
    assert kwargs["progress"] == pytest.approx(30)
    label.update.assert_called_once_with(" 3/10")


class TestLifecycle:
    """Controller creation and shutdown."""

    @pytest.mark.asyncio
    async def test_mount_creates_controller_and_unmount_closes_it(self, widgets):
        app = PromeCIeusApp(config=Config())
        app.query_one = lambda selector, widget_type=None: widgets[selector]
        controller = MagicMock(state=SessionState(), close=AsyncMock())

        with patch("promecieus.tui.app.SessionController", return_value=controller) as mock_cls:
            app.on_mount()

        assert app.controller is controller
        assert mock_cls.call_args.kwargs["on_change"] == app._render_state
        assert app.sub_title == "connecting..."

        await app.on_unmount()
        controller.close.assert_awaited_once()


class TestIntents:
    """User intents go to the controller."""

    @pytest.mark.asyncio
    async def test_submit_goes_to_controller(self, app, mock_controller):
        await app._submit("https://prow/view/1")
        mock_controller.submit.assert_awaited_once_with("https://prow/view/1")
        app.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_empty_input_ignored(self, app, mock_controller):
        await app._submit(None)
        mock_controller.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_submit_rejected_while_job_active(self, app, mock_controller):
        mock_controller.state = SessionState(active_job_id="j1")
        await app._submit("https://prow/view/2")

        mock_controller.submit.assert_not_called()
        app.notify.assert_called_once()

    @pytest.mark.asyncio
    async def test_dropped_submit_notifies(self, app, mock_controller):
        mock_controller.submit = AsyncMock(return_value=False)
        await app._submit("https://prow/view/1")

        assert "dropped" in app.notify.call_args[0][0]

    @pytest.mark.asyncio
    async def test_delete_action(self, app, mock_controller):
        mock_controller.state = SessionState(active_job_id="j1")
        await app.action_delete_active()
        mock_controller.delete_active.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_delete_without_job_does_nothing(self, app, mock_controller):
        await app.action_delete_active()
        mock_controller.delete_active.assert_not_called()

    def test_input_changes_recorded(self, app, mock_controller):
        event = MagicMock(value="https://prow/")
        app.on_input_changed(event)
        mock_controller.set_input.assert_called_once_with("https://prow/")
