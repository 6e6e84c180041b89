"""Modal screens: login form and instance details."""

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.message import Message
from textual.screen import ModalScreen
from textual.widgets import Button, Checkbox, Input, Static

from cluster_monitor.models.cluster import Instance
from cluster_monitor.tui.render import instance_detail_text


class LoginScreen(ModalScreen):
    """Credential prompt shown while the session is not authenticated."""

    DEFAULT_CSS = """
    LoginScreen {
        align: center middle;
    }

    #login-form {
        width: 60;
        height: auto;
        border: thick $primary;
        padding: 1 2;
        background: $surface;
    }

    #login-error {
        color: $error;
        height: auto;
    }

    #login-status {
        color: $text-muted;
        height: auto;
    }
    """

    BINDINGS = [
        Binding("escape", "quit", "Quit"),
        Binding("ctrl+s", "toggle_password", "Show/hide password"),
    ]

    class Submitted(Message):
        """User asked to log in."""

        def __init__(self, username: str, password: str, remember: bool) -> None:
            super().__init__()
            self.username = username
            self.password = password
            self.remember = remember

    def __init__(self, url: str, notice: str | None = None):
        super().__init__()
        self.url = url
        self.notice = notice

    def compose(self) -> ComposeResult:
        with Vertical(id="login-form"):
            yield Static(f"Log in to {self.url}", id="login-title")
            yield Static(self.notice or "", id="login-status")
            yield Input(placeholder="Username", id="login-username")
            yield Input(placeholder="Password", password=True, id="login-password")
            yield Checkbox("Remember me", id="login-remember")
            yield Button("Log in", variant="primary", id="login-submit")
            yield Static("", id="login-error")

    def on_mount(self) -> None:
        self.query_one("#login-username", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "login-username":
            self.query_one("#login-password", Input).focus()
            return
        self._submit()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "login-submit":
            self._submit()

    def _submit(self) -> None:
        username = self.query_one("#login-username", Input).value.strip()
        if not username:
            self.show_error("Username is required")
            return
        self.post_message(
            self.Submitted(
                username,
                self.query_one("#login-password", Input).value,
                self.query_one("#login-remember", Checkbox).value,
            )
        )

    def show_error(self, message: str | None) -> None:
        self.query_one("#login-error", Static).update(message or "")

    def set_busy(self, busy: bool) -> None:
        status = "Logging in..." if busy else self.notice or ""
        self.query_one("#login-status", Static).update(status)
        self.query_one("#login-submit", Button).disabled = busy

    def clear_password(self) -> None:
        self.query_one("#login-password", Input).value = ""

    def action_toggle_password(self) -> None:
        password = self.query_one("#login-password", Input)
        password.password = not password.password

    def action_quit(self) -> None:
        self.app.action_quit()


class InstanceDetailScreen(ModalScreen):
    """Popup with everything known about one instance."""

    DEFAULT_CSS = """
    InstanceDetailScreen {
        align: center middle;
    }

    #detail-body {
        width: 70;
        height: auto;
        border: thick $primary;
        padding: 1 2;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("enter", "close", "Close", show=False),
        Binding("q", "close", "Close", show=False),
    ]

    def __init__(self, instance: Instance):
        super().__init__()
        self.instance = instance

    def compose(self) -> ComposeResult:
        body = Static(instance_detail_text(self.instance), id="detail-body")
        body.border_title = f"Instance: {self.instance.name}"
        yield body

    def show_instance(self, instance: Instance) -> None:
        """Re-render the popup for a newer snapshot of the instance."""
        self.instance = instance
        if self.is_mounted:
            body = self.query_one("#detail-body", Static)
            body.update(instance_detail_text(instance))
            body.border_title = f"Instance: {instance.name}"

    def action_close(self) -> None:
        self.dismiss()
