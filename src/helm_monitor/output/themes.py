"""Color maps for freshness output."""

from helm_monitor.models import UpdateType
from helm_monitor.models.freshness import FreshnessRecord

UPDATE_COLORS: dict[UpdateType, str] = {
    UpdateType.MAJOR: "red bold",
    UpdateType.MINOR: "yellow",
    UpdateType.PATCH: "green",
    UpdateType.PRERELEASE: "cyan",
    UpdateType.UP_TO_DATE: "dim",
    UpdateType.UNKNOWN: "dim",
}


def styled_update(update: UpdateType) -> str:
    color = UPDATE_COLORS.get(update, "white")
    return f"[{color}]{update.value}[/{color}]"


def styled_overdue(record: FreshnessRecord) -> str:
    if record.is_unknown:
        return "[red]unknown[/red]"
    if record.overdue_count == 0:
        return "[green]0[/green]"
    return f"[yellow bold]{record.overdue_count}[/yellow bold]"
