"""
Best-effort user notifications for Recovery Ladder.

Console messages carry a severity marker:
    [i] info, [!] warning, [!!] error, [!!!] critical

Desktop notifications are attempted on macOS (osascript), Linux
(notify-send) and WSL (powershell.exe). Delivery failure is logged at
debug level and never raised to the caller.
"""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.text import Text

from recovery_ladder.config import NotificationConfig
from recovery_ladder.models import DegradationLevel, Urgency


logger = logging.getLogger(__name__)

APP_NAME = "Recovery Ladder"

class Severity:
    """Console severity markers."""
    INFO = "[i]"
    WARNING = "[!]"
    ERROR = "[!!]"
    CRITICAL = "[!!!]"


SEVERITY_STYLES = {
    Severity.INFO: "cyan",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
    Severity.CRITICAL: "bold red",
}

# level -> (marker, console lines, desktop title, desktop message, urgency, sound)
DEGRADATION_MESSAGES: dict[DegradationLevel, tuple[str, tuple[str, str], str, str, Urgency, str]] = {
    DegradationLevel.REDUCED: (
        Severity.WARNING,
        (
            "Switched to reduced verification mode due to multiple failures.",
            "Core functionality remains active. Full features resume next session.",
        ),
        "Reduced Mode",
        "Switched to reduced verification mode due to multiple failures.",
        Urgency.NORMAL,
        "Submarine",
    ),
    DegradationLevel.MINIMAL: (
        Severity.ERROR,
        (
            "Switched to minimal system mode.",
            "Single-agent mode active. Run 'recovery-ladder admin doctor' to diagnose.",
        ),
        "Minimal Mode",
        "Single-agent mode active. Run 'recovery-ladder admin doctor' to diagnose.",
        Urgency.CRITICAL,
        "Sosumi",
    ),
    DegradationLevel.EMERGENCY: (
        Severity.CRITICAL,
        (
            "EMERGENCY MODE - All enhancements disabled.",
            "Direct responses only. Please check system health.",
        ),
        "Emergency Mode",
        "All enhancements disabled! Please check system health.",
        Urgency.CRITICAL,
        "Basso",
    ),
}


def _is_wsl() -> bool:
    try:
        return "microsoft" in Path("/proc/version").read_text().lower()
    except OSError:
        return False


class NotificationSink:
    """
    Console plus optional desktop notifications.

    Every public method returns normally; nothing here may block or fail
    the caller.
    """

    def __init__(
        self,
        console: Optional[Console] = None,
        config: Optional[NotificationConfig] = None,
        system: Optional[str] = None,
    ) -> None:
        """
        Initialize the sink.

        Args:
            console: Rich console for messages; a new stdout console if omitted.
            config: Notification settings.
            system: Platform name override (as from platform.system()).
        """
        self.console = console or Console()
        self.config = config or NotificationConfig()
        self._system = system or platform.system()

    # ------------------------------------------------------------------
    # Console
    # ------------------------------------------------------------------

    def message(self, severity: str, text: str, *continuation: str) -> None:
        """
        Print a severity-marked console message.

        Continuation lines are indented under the message text.
        """
        style = SEVERITY_STYLES.get(severity, "")
        self.console.print(Text(f"{severity} {text}", style=style))
        indent = " " * (len(severity) + 1)
        for line in continuation:
            self.console.print(Text(f"{indent}{line}"))

    def info(self, text: str) -> None:
        self.message(Severity.INFO, text)

    def warning(self, text: str) -> None:
        self.message(Severity.WARNING, text)

    def print_block(self, text: str) -> None:
        """Print preformatted text without markup interpretation."""
        self.console.print(Text(text))

    # ------------------------------------------------------------------
    # Desktop
    # ------------------------------------------------------------------

    def send(
        self,
        title: str,
        message: str,
        urgency: Urgency = Urgency.NORMAL,
        sound: Optional[str] = None,
    ) -> bool:
        """
        Send a desktop notification.

        Args:
            title: Notification title.
            message: Notification body.
            urgency: low, normal or critical.
            sound: Optional sound name hint (macOS only).

        Returns:
            True if a notifier was invoked, False when disabled, unsupported
            or delivery failed.
        """
        if not self.config.enabled:
            return False

        argv = self._notifier_argv(title, message, urgency, sound)
        if argv is None:
            return False

        try:
            # Not waited on; a stuck notifier must not hold up recovery
            subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                start_new_session=True,
            )
            return True
        except (OSError, subprocess.SubprocessError, ValueError) as e:
            logger.debug("Desktop notification failed: %s", e)
            return False

    def _notifier_argv(
        self,
        title: str,
        message: str,
        urgency: Urgency,
        sound: Optional[str],
    ) -> Optional[list[str]]:
        """Build the notifier command for this platform, or None."""
        if self._system == "Darwin":
            script = f"display notification {_applescript_str(message)} with title {_applescript_str(title)}"
            if self.config.sound:
                chosen = "Basso" if urgency == Urgency.CRITICAL else sound
                if chosen:
                    script += f" sound name {_applescript_str(chosen)}"
            return ["osascript", "-e", script]

        if self._system == "Linux":
            notify_send = shutil.which("notify-send")
            if notify_send:
                return [notify_send, "-u", Urgency(urgency).value, title, message]
            if _is_wsl() and shutil.which("powershell.exe"):
                return ["powershell.exe", "-NoProfile", "-Command", _toast_script(title, message)]

        return None

    # ------------------------------------------------------------------
    # Event helpers
    # ------------------------------------------------------------------

    def notify_degradation(self, level: DegradationLevel) -> None:
        """Console message and desktop alert for a degradation transition."""
        entry = DEGRADATION_MESSAGES.get(DegradationLevel(level))
        if entry is None:
            return
        severity, lines, title, body, urgency, sound = entry
        self.send(f"{APP_NAME}: {title}", body, urgency, sound)
        self.message(severity, *lines)

    def notify_escalation(self, issue_type: str, context: str) -> None:
        """Critical desktop alert for a user escalation."""
        self.send(f"{APP_NAME}: Attention Required", f"{issue_type} - {context}", Urgency.CRITICAL, "Basso")

    def notify_completion(self, message: str, sound: str = "Glass") -> None:
        self.send(f"{APP_NAME}: Complete", message, Urgency.LOW, sound)

    def notify_warning(self, message: str) -> None:
        self.send(f"{APP_NAME}: Warning", message, Urgency.NORMAL, "Tink")

    def test_notifications(self) -> list[tuple[Urgency, bool]]:
        """
        Send one notification at each urgency and report which were delivered.

        Returns:
            List of (urgency, delivered) pairs.
        """
        results = []
        for urgency, sound in (
            (Urgency.LOW, None),
            (Urgency.NORMAL, "Submarine"),
            (Urgency.CRITICAL, "Basso"),
        ):
            delivered = self.send(
                f"{APP_NAME} Test",
                f"{urgency.value.capitalize()} urgency notification",
                urgency,
                sound,
            )
            results.append((urgency, delivered))
        return results


def _applescript_str(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _toast_script(title: str, message: str) -> str:
    title = title.replace("'", "''")
    message = message.replace("'", "''")
    return (
        "[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, "
        "ContentType = WindowsRuntime] | Out-Null; "
        "$template = [Windows.UI.Notifications.ToastTemplateType]::ToastText02; "
        "$xml = [Windows.UI.Notifications.ToastNotificationManager]::GetTemplateContent($template); "
        "$text = $xml.GetElementsByTagName('text'); "
        f"$text[0].AppendChild($xml.CreateTextNode('{title}')) | Out-Null; "
        f"$text[1].AppendChild($xml.CreateTextNode('{message}')) | Out-Null; "
        "$toast = [Windows.UI.Notifications.ToastNotification]::new($xml); "
        f"[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier('{APP_NAME}').Show($toast)"
    )
