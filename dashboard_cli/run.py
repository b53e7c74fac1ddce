# -*- coding: utf-8 -*-
"""Command-line dashboard for the student planner."""
from __future__ import annotations

import asyncio
import calendar as pycalendar
import typing as t
from contextlib import asynccontextmanager
from datetime import date, datetime

import click
from rich.console import Console, Group
from rich.panel import Panel
from rich.live import Live
from rich.table import Table
from rich.text import Text

from planner_core.buckets import Bucket
from planner_core.countdown import CountdownTimer
from planner_core.dashboard import Dashboard
from planner_core.errors import ValidationError
from planner_core.filters import FilterConfig
from planner_core import timetable
from planner_core.formatting import format_when, item_countdown, meeting_label
from planner_core.log import setup_logging
from planner_core.models import PRIORITIES, ClassMeeting, DatedItem
from planner_core.settings import get_settings
from planner_core.store import RecordStore, UserSession
from store_client.http_store import HttpRecordStore

console = Console()

KIND_CHOICES = {"assignments": "assignment", "sessions": "study_session", "all": None}
PRIORITY_STYLES = {"low": "green", "medium": "yellow", "high": "red"}
BUCKET_TITLES = {
    Bucket.TODAY: "Today",
    Bucket.TOMORROW: "Tomorrow",
    Bucket.THIS_WEEK: "This Week",
    Bucket.UPCOMING: "Upcoming",
    Bucket.OVERDUE: "Overdue",
    Bucket.PAST: "Past",
    Bucket.COMPLETED: "Completed",
}


def _now() -> datetime:
    return datetime.now().astimezone()


@asynccontextmanager
async def open_store(store_url: str) -> t.AsyncIterator[RecordStore]:
    """Open the record store the CLI talks to."""
    async with HttpRecordStore(store_url) as store:
        yield store


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def create_items_table(items: t.Sequence[DatedItem], now: datetime, title: str) -> Table:
    """Create a table of assignments and study sessions."""
    table = Table(title=title, show_header=True, header_style="bold magenta")
    table.add_column("", style="cyan", width=3)
    table.add_column("ID", style="dim")
    table.add_column("Title", style="white")
    table.add_column("Course", style="cyan")
    table.add_column("When", style="yellow")
    table.add_column("Countdown", style="green")
    table.add_column("Priority")

    for item in items:
        icon = "📝" if item.end is None else "📚"
        if item.completed:
            icon = "✅"
        priority = Text(item.priority or "-", style=PRIORITY_STYLES.get(item.priority or "", "dim"))
        table.add_row(
            icon,
            item.id[:8],
            truncate_title(item.title),
            item.course.code if item.course else "-",
            format_when(item, now),
            "" if item.completed else item_countdown(item, now),
            priority,
        )
    return table


def create_tab_bar(counts: dict[Bucket, int]) -> Text:
    """One line with each bucket and its item count."""
    bar = Text()
    for bucket, label in BUCKET_TITLES.items():
        bar.append(f" {label} ", style="bold" if counts.get(bucket) else "dim")
        bar.append(f"({counts.get(bucket, 0)})", style="cyan")
    return bar


def countdown_panel(dashboard: Dashboard, now: datetime) -> Panel:
    """Panel with the nearest pending item and its live countdown."""
    nearest = dashboard.nearest_pending(now)
    if nearest is None:
        return Panel("[dim]Nothing pending. Enjoy the break.[/dim]", title="⏰ Next Up", border_style="green")

    body = Text()
    body.append(f"{nearest.title}\n", style="bold white")
    if nearest.course is not None:
        body.append(f"{nearest.course.code} - {nearest.course.name}\n", style="cyan")
    body.append(f"{format_when(nearest, now)}\n", style="yellow")
    body.append(item_countdown(nearest, now), style="bold green")
    return Panel(body, title="⏰ Next Up", border_style="blue")


def create_timetable_table(grid: list[list[list[ClassMeeting]]]) -> Table:
    """Weekly timetable: one row per hourly slot, one column per day."""
    table = Table(title="🗓️ Weekly Timetable", show_header=True, header_style="bold magenta", show_lines=True)
    table.add_column("Time", style="dim")
    for day in timetable.DAYS:
        table.add_column(day, style="cyan")

    for label, row in zip(timetable.time_slots(), grid):
        table.add_row(label, *("\n".join(meeting_label(m) for m in cell) for cell in row))
    return table


def create_calendar_table(markers: dict[date, int], day: date) -> Table:
    """Month view with a dot for each study session (at most three per date)."""
    table = Table(title=day.strftime("%B %Y"), show_header=True, header_style="bold magenta")
    for name in timetable.DAYS:
        table.add_column(name, justify="center")

    for week in pycalendar.Calendar(firstweekday=pycalendar.SUNDAY).monthdatescalendar(day.year, day.month):
        cells = []
        for cell_day in week:
            if cell_day.month != day.month:
                cells.append("")
                continue
            text = Text(str(cell_day.day), style="bold reverse" if cell_day == day else "white")
            if markers.get(cell_day):
                text.append("\n" + "•" * markers[cell_day], style="green")
            cells.append(text)
        table.add_row(*cells)
    return table


def print_notices(dashboard: Dashboard) -> None:
    for notice in dashboard.drain_notices():
        style = "green" if notice.level == "success" else "red"
        console.print(f"[{style}]{notice.message}[/{style}]")


async def _run_with_dashboard(
        ctx: click.Context,
        action: t.Callable[[Dashboard], t.Awaitable[t.Any]],
) -> t.Any:
    settings = get_settings()
    async with open_store(ctx.obj["store_url"]) as store:
        dashboard = Dashboard(store, UserSession(ctx.obj["owner"]), settings.week_starts_on)
        if not await dashboard.refresh() and not dashboard.loaded:
            failure = "\n".join(notice.message for notice in dashboard.drain_notices())
            raise click.ClickException(failure or "Failed to fetch dashboard data")
        try:
            return await action(dashboard)
        finally:
            print_notices(dashboard)


def _run(ctx: click.Context, action: t.Callable[[Dashboard], t.Awaitable[t.Any]]) -> t.Any:
    """Run an async dashboard action; validation errors end the command."""
    try:
        return asyncio.run(_run_with_dashboard(ctx, action))
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {e.field}: {e.message}")
        raise SystemExit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--store-url", envvar="PLANNER_STORE_URL", default=None, help="Record store service URL.")
@click.option("--owner", envvar="PLANNER_OWNER_ID", default=None, help="Owner id every request is scoped to.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, store_url: t.Optional[str], owner: t.Optional[str], verbose: bool) -> None:
    """Student planner: assignments, study sessions and countdowns."""
    settings = get_settings()
    setup_logging("DEBUG" if verbose else settings.log_level, console=Console(stderr=True))
    ctx.ensure_object(dict)
    ctx.obj["store_url"] = store_url or settings.store_url
    ctx.obj["owner"] = owner or settings.owner_id


@main.command()
@click.option("--kind", type=click.Choice(list(KIND_CHOICES)), default="all", show_default=True)
@click.option("--bucket", type=click.Choice([b.value for b in Bucket]), default=None)
@click.option("--search", default="", help="Text to match in title, description or course.")
@click.option("--course", "course_id", default=None, help="Only items of this course id.")
@click.option("--priority", type=click.Choice(PRIORITIES), default=None)
@click.option("--limit", type=int, default=None)
@click.pass_context
def show(
        ctx: click.Context,
        kind: str,
        bucket: t.Optional[str],
        search: str,
        course_id: t.Optional[str],
        priority: t.Optional[str],
        limit: t.Optional[int],
) -> None:
    """Show assignments and study sessions, filtered like the dashboard tabs."""
    config = FilterConfig(
        bucket=Bucket(bucket) if bucket else None,
        search_term=search,
        course_id=course_id,
        priority=priority,  # type: ignore[arg-type]
        limit=limit,
    )
    item_kind = KIND_CHOICES[kind]

    async def action(dashboard: Dashboard) -> None:
        now = _now()
        items = dashboard.view(item_kind, config, now)
        console.print(create_tab_bar(dashboard.tab_counts(item_kind, now)))
        if not items:
            console.print("[dim]No items found.[/dim]")
            return
        title = f"📅 {BUCKET_TITLES[config.bucket]}" if config.bucket else "📅 All Items"
        console.print(create_items_table(items, now, title))

    _run(ctx, action)


@main.command()
@click.pass_context
def summary(ctx: click.Context) -> None:
    """Show the dashboard summary cards."""

    async def action(dashboard: Dashboard) -> None:
        now = _now()
        cards = dashboard.summary(now)
        stats = Text()
        stats.append("Today's classes: ", style="white")
        stats.append(f"{cards.classes_today}", style="bold green")
        if cards.next_class is not None:
            code = cards.next_class.course.code if cards.next_class.course else cards.next_class.course_id
            stats.append(f"  (next: {code} at {cards.next_class.start})", style="dim")
        stats.append("\nUpcoming assignments: ", style="white")
        stats.append(f"{cards.assignments_due}", style="bold green")
        if cards.next_assignment is not None:
            stats.append(f"  (next: {cards.next_assignment.title}, "
                         f"{format_when(cards.next_assignment, now)})", style="dim")
        stats.append("\nTotal courses: ", style="white")
        stats.append(f"{cards.total_courses}", style="bold green")
        stats.append("\nWeek overview: ", style="white")
        stats.append(f"{cards.weekly_class_hours:g} hours", style="bold green")
        if cards.busiest_day:
            stats.append(f"  (busiest day: {cards.busiest_day})", style="dim")
        console.print(Panel(stats, title="📊 Dashboard", border_style="green"))
        console.print(countdown_panel(dashboard, now))

    _run(ctx, action)


@main.command("timetable")
@click.pass_context
def show_timetable(ctx: click.Context) -> None:
    """Show the weekly class timetable."""

    async def action(dashboard: Dashboard) -> None:
        if not dashboard.snapshot.class_meetings:
            console.print("[dim]No classes scheduled.[/dim]")
            return
        console.print(create_timetable_table(dashboard.timetable()))

    _run(ctx, action)


@main.command("calendar")
@click.option("--date", "day", default=None, help="YYYY-MM-DD (default: today).")
@click.pass_context
def show_calendar(ctx: click.Context, day: t.Optional[str]) -> None:
    """Show the study calendar and the sessions on one day."""
    try:
        selected = date.fromisoformat(day) if day else _now().date()
    except ValueError:
        raise click.BadParameter(f"Invalid date '{day}', expected YYYY-MM-DD", param_hint="--date")

    async def action(dashboard: Dashboard) -> None:
        now = _now()
        console.print(create_calendar_table(dashboard.calendar_markers(now), selected))
        sessions = dashboard.sessions_on(selected, now)
        if not sessions:
            console.print("[dim]No sessions scheduled for this day.[/dim]")
            return
        console.print(create_items_table(sessions, now, f"📚 {selected.strftime('%A, %B')} {selected.day}"))

    _run(ctx, action)


@main.command()
@click.option("--interval", type=float, default=None, help="Seconds between refreshes (default: PLANNER_COUNTDOWN_REFRESH).")
@click.option("--duration", type=float, default=None, help="Stop after this many seconds instead of waiting for Ctrl-C.")
@click.option("--refetch", is_flag=True, help="Re-fetch data from the store on every refresh.")
@click.pass_context
def watch(ctx: click.Context, interval: t.Optional[float], duration: t.Optional[float], refetch: bool) -> None:
    """Live countdown to the nearest pending item."""
    refresh_every = interval or get_settings().countdown_refresh_seconds

    async def action(dashboard: Dashboard) -> None:
        with Live(countdown_panel(dashboard, _now()), console=console, auto_refresh=False) as live:

            async def redraw() -> None:
                if refetch:
                    await dashboard.refresh()
                now = _now()
                live.update(Group(create_tab_bar(dashboard.tab_counts(None, now)),
                                  countdown_panel(dashboard, now)), refresh=True)

            async with CountdownTimer(refresh_every, redraw):
                if duration is not None:
                    await asyncio.sleep(duration)
                else:
                    await asyncio.Event().wait()

    try:
        _run(ctx, action)
    except KeyboardInterrupt:
        console.print("[dim]Stopped.[/dim]")


@main.command("add-course")
@click.option("--code", required=True)
@click.option("--name", required=True)
@click.option("--instructor", required=True)
@click.option("--schedule", required=True, help='e.g. "MW 9:30-10:50"')
@click.option("--credits", type=int, default=3, show_default=True)
@click.option("--color", default="bg-blue-500", show_default=True)
@click.pass_context
def add_course(ctx: click.Context, **form: t.Any) -> None:
    """Add a course."""
    _run(ctx, lambda dashboard: dashboard.add_course(form))


@main.command("add-assignment")
@click.option("--title", required=True)
@click.option("--course", "course_id", required=True, help="Course id.")
@click.option("--due", "due_date", required=True, help="YYYY-MM-DD (end of day) or ISO datetime.")
@click.option("--priority", type=click.Choice(PRIORITIES), default="medium", show_default=True)
@click.option("--description", default="")
@click.pass_context
def add_assignment(ctx: click.Context, **form: t.Any) -> None:
    """Add an assignment."""
    _run(ctx, lambda dashboard: dashboard.add_assignment(form))


@main.command("add-session")
@click.option("--title", required=True)
@click.option("--course", "course_id", required=True, help="Course id.")
@click.option("--date", required=True, help="YYYY-MM-DD")
@click.option("--start", "start_time", required=True, help="HH:MM")
@click.option("--end", "end_time", required=True, help="HH:MM")
@click.option("--location", default="")
@click.option("--description", default="")
@click.pass_context
def add_session(ctx: click.Context, **form: t.Any) -> None:
    """Add a study session."""
    _run(ctx, lambda dashboard: dashboard.add_study_session(form))


@main.command("add-class")
@click.option("--course", "course_id", required=True, help="Course id.")
@click.option("--day", required=True, help="Sun..Sat, or 0 (Sunday) to 6 (Saturday).")
@click.option("--start", required=True, help="HH:MM")
@click.option("--end", required=True, help="HH:MM")
@click.option("--location", default="")
@click.option("--instructor", default="")
@click.pass_context
def add_class(ctx: click.Context, **form: t.Any) -> None:
    """Add a weekly class to the timetable."""
    _run(ctx, lambda dashboard: dashboard.add_class_meeting(form))


@main.command("edit-course")
@click.argument("course_id")
@click.option("--code", default=None)
@click.option("--name", default=None)
@click.option("--instructor", default=None)
@click.option("--schedule", default=None)
@click.option("--credits", type=int, default=None)
@click.option("--color", default=None)
@click.pass_context
def edit_course(ctx: click.Context, course_id: str, **form: t.Any) -> None:
    """Edit a course; options left out keep their current value."""
    _run(ctx, lambda dashboard: dashboard.update_course(course_id, form))


@main.command()
@click.argument("assignment_id")
@click.option("--undo", is_flag=True, help="Mark as not completed.")
@click.pass_context
def complete(ctx: click.Context, assignment_id: str, undo: bool) -> None:
    """Mark an assignment as completed."""
    _run(ctx, lambda dashboard: dashboard.set_assignment_completed(assignment_id, not undo))


@main.command()
@click.argument("kind", type=click.Choice(["course", "assignment", "session", "class"]))
@click.argument("item_id")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation.")
@click.pass_context
def delete(ctx: click.Context, kind: str, item_id: str, yes: bool) -> None:
    """Delete a course, assignment, study session or timetable class."""
    if not yes:
        click.confirm(f"Delete {kind} {item_id}? This cannot be undone", abort=True)

    async def action(dashboard: Dashboard) -> bool:
        if kind == "course":
            return await dashboard.delete_course(item_id)
        if kind == "assignment":
            return await dashboard.delete_assignment(item_id)
        if kind == "class":
            return await dashboard.delete_class_meeting(item_id)
        return await dashboard.delete_study_session(item_id)

    _run(ctx, action)


if __name__ == "__main__":
    main()
