"""Main TUI application for cluster monitoring."""

from functools import partial

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.message import Message
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Header, Input, Static

from cluster_monitor.api import ClusterApiClient
from cluster_monitor.config import MonitorConfig
from cluster_monitor.dashboard import Completion, Dashboard
from cluster_monitor.logging_config import get_logger
from cluster_monitor.scheduler import RefreshScheduler
from cluster_monitor.session import SessionState, SessionManager
from cluster_monitor.tokens import TokenStore
from cluster_monitor.tui.render import COLUMNS, cluster_header_text, row_cells
from cluster_monitor.tui.screens import InstanceDetailScreen, LoginScreen
from cluster_monitor.view import ViewMode

logger = get_logger(__name__)

# How often the timer asks the scheduler whether a poll is due
TICK_SECONDS = 0.25


class JobFinished(Message):
    """A background job finished; carries its completion to the UI loop."""

    def __init__(self, completion: Completion) -> None:
        super().__init__()
        self.completion = completion


class ClusterTUI(App):
    """Terminal UI for cluster topology monitoring."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-container {
        height: 100%;
    }

    #header-container {
        height: auto;
        min-height: 5;
        border: solid $primary;
        margin: 0 1;
    }

    #rows-container {
        height: 1fr;
        border: solid $primary;
        margin: 0 1;
    }

    #filter-input {
        display: none;
        margin: 0 1;
    }

    #filter-input.visible {
        display: block;
    }

    DataTable {
        height: 100%;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
        Binding("r", "refresh", "Refresh"),
        Binding("question_mark", "help", "Help"),
        Binding("escape", "escape", "Back", show=False),
        Binding("up,k", "select_previous", "Up", show=False),
        Binding("down,j", "select_next", "Down", show=False),
        Binding("home", "select_first", "First", show=False),
        Binding("end", "select_last", "Last", show=False),
        Binding("right,l", "expand", "Expand", show=False),
        Binding("left,h", "collapse", "Collapse", show=False),
        Binding("enter", "details", "Details"),
        Binding("g", "cycle_view", "View"),
        Binding("1", "view('tiers')", "Tiers", show=False),
        Binding("2", "view('replicasets')", "Replicasets", show=False),
        Binding("3", "view('instances')", "Instances", show=False),
        Binding("s", "cycle_sort", "Sort", show=False),
        Binding("S,shift+s", "toggle_sort_order", "Order", show=False),
        Binding("slash", "filter", "Filter", show=False),
        Binding("X,shift+x", "logout", "Logout", show=False),
    ]

    def __init__(self, config: MonitorConfig | None = None, dashboard: Dashboard | None = None):
        """Initialize the TUI.

        Args:
            config: Dashboard configuration
            dashboard: Optional pre-built controller (mainly for tests)
        """
        super().__init__()
        self.monitor_config = config or MonitorConfig()
        self.refresh_interval = self.monitor_config.refresh_interval
        self.dashboard = dashboard or self._build_dashboard()
        self._tick_timer: Timer | None = None
        self._login_screen: LoginScreen | None = None
        self._detail_screen: InstanceDetailScreen | None = None
        self._columns_mode: ViewMode | None = None

    def _build_dashboard(self) -> Dashboard:
        client = ClusterApiClient(
            self.monitor_config.url, timeout=self.monitor_config.request_timeout
        )
        session = SessionManager(client, TokenStore(self.monitor_config.token_file))
        scheduler = RefreshScheduler(self.monitor_config.refresh_interval)
        return Dashboard(client, session, scheduler, self._launch)

    @property
    def view_engine(self):
        return self.dashboard.view

    def compose(self) -> ComposeResult:
        """Compose the TUI layout."""
        yield Header(show_clock=True)
        with Vertical(id="main-container"):
            with Container(id="header-container"):
                yield Static(cluster_header_text(None), id="cluster-header")
            yield Input(placeholder="Filter instances", id="filter-input")
            with Container(id="rows-container"):
                yield DataTable(id="rows-table", cursor_type="row", zebra_stripes=True)
        yield Footer()

    def on_mount(self) -> None:
        """Set up the TUI when mounted."""
        self.title = f"Cluster: {self.monitor_config.url}"
        self.query_one("#header-container").border_title = "Cluster Info"
        # Widgets of the main screen, kept so modal screens do not shadow queries
        self._cluster_header = self.query_one("#cluster-header", Static)
        self._table = self.query_one("#rows-table", DataTable)
        self._rows_container = self.query_one("#rows-container")
        self._filter_input = self.query_one("#filter-input", Input)
        self._table.can_focus = False

        if self.refresh_interval > 0:
            self._tick_timer = self.set_interval(TICK_SECONDS, self._on_tick, name="auto_refresh")

        self.dashboard.start()
        self.sync_display()

    # Background jobs

    def _launch(self, work) -> None:
        self.run_worker(
            partial(self._run_job, work), thread=True, group="api", exit_on_error=False
        )

    def _run_job(self, work) -> None:
        completion = work()
        try:
            self.call_from_thread(self.post_message, JobFinished(completion))
        except RuntimeError:
            # App already shut down; the result is no longer wanted
            logger.debug(f"Dropping {completion.kind.value} result after exit")

    def on_job_finished(self, message: JobFinished) -> None:
        self.dashboard.handle(message.completion)
        self.sync_display()

    def _on_tick(self) -> None:
        # Completions and actions sync the display themselves
        if self.dashboard.tick():
            self.sync_display()

    # Display

    def sync_display(self) -> None:
        """Bring widgets in line with dashboard state."""
        if not self.is_running:
            return
        self._sync_login()
        self._sync_header()
        self._sync_table()
        self._sync_detail()
        self.sub_title = self._status_line()

    def _status_line(self) -> str:
        state = self.view_engine.state
        parts = [f"View: {state.mode.label}"]
        if state.mode is ViewMode.INSTANCES:
            parts.append(f"Sort: {state.sort_field.label} {state.sort_order.arrow}")
            if state.filter_text:
                parts.append(f'Filter: "{state.filter_text}"')
        if self.dashboard.loading:
            parts.append("Loading...")
        elif self.dashboard.last_updated is not None:
            parts.append(f"Updated {self.dashboard.last_updated:%H:%M:%S}")
        if self.refresh_interval == 0:
            parts.append("Auto-refresh off")
        parts.append("? for help")
        return " | ".join(parts)

    def _sync_header(self) -> None:
        header = cluster_header_text(self.view_engine.cluster, self.dashboard.banner)
        self._cluster_header.update(header)

    def _sync_table(self) -> None:
        table = self._table
        state = self.view_engine.state
        self._rows_container.border_title = {
            ViewMode.TIERS: "Tiers / Replicasets / Instances",
            ViewMode.REPLICASETS: "Replicasets",
            ViewMode.INSTANCES: "Instances",
        }[state.mode]

        if self._columns_mode is not state.mode:
            table.clear(columns=True)
            table.add_columns(*COLUMNS[state.mode])
            self._columns_mode = state.mode
        else:
            table.clear()

        rows = self.view_engine.visible_rows()
        for row in rows:
            table.add_row(*row_cells(row, state.mode, state.filter_text))
        if rows:
            table.move_cursor(row=state.selected_index)

    def _sync_login(self) -> None:
        session = self.dashboard.session
        if self.dashboard.needs_login:
            if self._login_screen is None:
                self._login_screen = LoginScreen(self.monitor_config.url, session.expired_reason)
                self.push_screen(self._login_screen)
                return
            if self._login_screen.is_mounted:
                self._login_screen.set_busy(session.state is SessionState.LOGGING_IN)
                self._login_screen.show_error(session.login_error)
        elif self._login_screen is not None:
            screen = self._login_screen
            self._login_screen = None
            if screen.is_current:
                self.pop_screen()

    def _sync_detail(self) -> None:
        show = self.view_engine.state.show_detail
        instance = self.view_engine.selected_instance()
        if show and self._detail_screen is not None:
            if instance is not None and instance != self._detail_screen.instance:
                self._detail_screen.show_instance(instance)
        elif show and self._login_screen is None:
            if instance is not None:
                self._detail_screen = InstanceDetailScreen(instance)
                self.push_screen(self._detail_screen, self._on_detail_closed)
        elif not show and self._detail_screen is not None:
            screen = self._detail_screen
            self._detail_screen = None
            if screen.is_current:
                self.pop_screen()

    def _on_detail_closed(self, _result=None) -> None:
        self._detail_screen = None
        self.view_engine.close_detail()
        self.sync_display()

    # Login form

    def on_login_screen_submitted(self, message: LoginScreen.Submitted) -> None:
        if self.dashboard.login(message.username, message.password, message.remember):
            if self._login_screen is not None:
                self._login_screen.clear_password()
        self.sync_display()

    # Filter input

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "filter-input":
            self.view_engine.set_filter_text(event.value)
            self.sync_display()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "filter-input":
            self.view_engine.end_filter()
            self._hide_filter()
            self.sync_display()

    def _hide_filter(self) -> None:
        filter_input = self._filter_input
        filter_input.remove_class("visible")
        self.set_focus(None)

    # Actions

    def action_quit(self) -> None:
        """Quit the application."""
        if self._tick_timer is not None:
            self._tick_timer.stop()
        self.dashboard.shutdown()
        self.exit()

    def action_refresh(self) -> None:
        """Manually refresh the data."""
        if self.dashboard.refresh():
            self.sync_display()

    def action_help(self) -> None:
        """Show help information."""
        auto = (
            f"Auto-refresh: every {self.refresh_interval} seconds"
            if self.refresh_interval > 0
            else "Auto-refresh: disabled"
        )
        help_text = (
            "Keyboard Shortcuts:\n"
            "  Q / Ctrl+C - Quit application\n"
            "  R - Manually refresh data\n"
            "  ↑/↓ or K/J - Move selection\n"
            "  →/L - Expand, ←/H - Collapse\n"
            "  Enter - Instance details\n"
            "  G - Cycle view, 1/2/3 - Tiers/Replicasets/Instances\n"
            "  S / Shift+S - Sort field / order (Instances)\n"
            "  / - Filter instances, Esc - Clear filter\n"
            "  Shift+X - Log out\n\n"
            f"{auto}"
        )
        self.notify(help_text, title="Help", timeout=10)

    def action_escape(self) -> None:
        state = self.view_engine.state
        if state.filter_editing or state.filter_text:
            self.view_engine.clear_filter()
            filter_input = self._filter_input
            filter_input.value = ""
            self._hide_filter()
            self.sync_display()

    def action_select_previous(self) -> None:
        self.view_engine.select_previous()
        self.sync_display()

    def action_select_next(self) -> None:
        self.view_engine.select_next()
        self.sync_display()

    def action_select_first(self) -> None:
        self.view_engine.select_first()
        self.sync_display()

    def action_select_last(self) -> None:
        self.view_engine.select_last()
        self.sync_display()

    def action_expand(self) -> None:
        self.view_engine.expand_selected()
        self.sync_display()

    def action_collapse(self) -> None:
        self.view_engine.collapse_selected()
        self.sync_display()

    def action_details(self) -> None:
        if self.view_engine.mode is ViewMode.TIERS and self.view_engine.selected_instance() is None:
            row = self.view_engine.selected_row()
            if row is not None:
                self.view_engine.toggle_expand(row.key)
        else:
            self.view_engine.open_detail()
        self.sync_display()

    def action_cycle_view(self) -> None:
        self.view_engine.cycle_view_mode()
        self._reset_filter_input()
        self.sync_display()

    def action_view(self, mode: str) -> None:
        if self.view_engine.set_view_mode(ViewMode(mode)):
            self._reset_filter_input()
            self.sync_display()

    def action_cycle_sort(self) -> None:
        if self.view_engine.cycle_sort_field():
            self.sync_display()

    def action_toggle_sort_order(self) -> None:
        if self.view_engine.toggle_sort_order():
            self.sync_display()

    def action_filter(self) -> None:
        if not self.view_engine.begin_filter():
            self.notify("Filtering is available in the Instances view", timeout=3)
            return
        filter_input = self._filter_input
        filter_input.value = self.view_engine.state.filter_text
        filter_input.add_class("visible")
        filter_input.focus()

    def action_logout(self) -> None:
        """Forget the remembered session and exit."""
        if not self.dashboard.session.auth_required:
            return
        if self._tick_timer is not None:
            self._tick_timer.stop()
        self.dashboard.logout()
        self.exit()

    def _reset_filter_input(self) -> None:
        filter_input = self._filter_input
        filter_input.value = ""
        self._hide_filter()
