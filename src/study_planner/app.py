"""Interactive CLI application."""
import logging
import os
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from study_planner.analytics import (
    assignments_due_on, average_grade, average_session_length, calculate_gpa, completion_rate,
    daily_goal_progress, filter_assignments, grade_to_gpa, overdue_count, sort_assignments,
    study_streak, subject_assignments, subject_completion_rate, subject_study_time, todays_sessions,
    todays_study_time, total_study_time, upcoming_assignments,
)
from study_planner.db import DEFAULT_DB_PATH
from study_planner.formatting import (
    format_duration, is_same_day, parse_timestamp, time_until_due, to_csv, week_dates,
)
from study_planner.models import GOAL_TYPES, PRIORITIES, STATUSES
from study_planner.records import (
    add_tag, new_assignment, new_study_goal, new_subject, record_goal_progress, remove_tag, toggle_status,
)
from study_planner.reminders import ConsoleNotifier, ReminderScheduler
from study_planner.storage import EntityStore
from study_planner.timer import RUNNING, StudyTimer
from study_planner.validation import (
    ValidationError, validate_assignment, validate_goal, validate_subject,
)

console = Console()
logger = logging.getLogger(__name__)

PRIORITY_COLORS = {"high": "red", "medium": "yellow", "low": "green"}
STATUS_COLORS = {"completed": "green", "in-progress": "cyan", "pending": "white"}


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' at a prompt to return to the menu."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer is not None and answer.strip().lower() in ("q", "menu"):
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, **kwargs) -> int:
    return int(session_prompt(prompt, **kwargs))


def configure_logging() -> None:
    level = os.getenv("STUDY_PLANNER_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=level, format="%(message)s", datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


class Planner:
    """Everything a command needs, built once at startup."""

    def __init__(self, store: EntityStore, timer: StudyTimer, reminders: ReminderScheduler):
        self.store = store
        self.timer = timer
        self.reminders = reminders


def notify(message: str, style: str = "green") -> None:
    console.print(f"[{style}]{message}[/{style}]")


def show_validation_errors(err: ValidationError) -> None:
    for field_name, message in err.errors.items():
        console.print(f"  [red]{field_name}:[/red] {message}")


def show_welcome():
    console.print(Panel(
        "[bold]Study Planner[/bold]\n[dim]Assignments, subjects, study time and goals[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Overview and upcoming deadlines"),
        ("assignments", "Search, filter and sort assignments"),
        ("add", "Add an assignment"),
        ("edit", "Edit an assignment"),
        ("done", "Toggle an assignment complete/pending"),
        ("delete", "Delete an assignment"),
        ("calendar", "Assignments due this week"),
        ("subjects", "Subjects and GPA"),
        ("add-subject", "Add a subject"),
        ("delete-subject", "Delete a subject"),
        ("timer", "Study timer"),
        ("goals", "Study goals"),
        ("add-goal", "Add a study goal"),
        ("delete-goal", "Delete a study goal"),
        ("export", "Export all data as JSON"),
        ("import", "Import a JSON export"),
        ("csv", "Export assignments or subjects as CSV"),
        ("settings", "Preferences"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<16}[/cyan] {desc}")


def pick(records: list, label: str, describe):
    """Show a numbered list and return the chosen record (None when empty)."""
    if not records:
        console.print(f"[yellow]No {label} yet.[/yellow]")
        return None
    for i, record in enumerate(records, 1):
        console.print(f"  [cyan]{i}[/cyan]) {describe(record)}")
    index = session_int_prompt(f"Select {label[:-1]}", choices=[str(i) for i in range(1, len(records) + 1)])
    return records[index - 1]


def _describe_assignment(a) -> str:
    return f"{a.title} [dim]({a.subject}, {a.status})[/dim]"


def _optional_float(text: str) -> float | None:
    text = text.strip()
    return float(text) if text else None


def _parse_due(text: str) -> str:
    """Accept 'YYYY-MM-DD' or 'YYYY-MM-DD HH:MM'; return ISO text ('' if unparseable)."""
    text = text.strip()
    if not text:
        return ""
    try:
        return parse_timestamp(text.replace(" ", "T")).isoformat()
    except ValueError:
        return text


def assignments_table(assignments: list, title: str = "Assignments") -> Table:
    table = Table(title=title)
    table.add_column("Title", style="bold")
    table.add_column("Subject", style="cyan")
    table.add_column("Due")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Est.", justify="right")
    table.add_column("Tags", style="dim")
    for a in assignments:
        p_color = PRIORITY_COLORS.get(a.priority, "white")
        s_color = STATUS_COLORS.get(a.status, "white")
        due = "[green]Done[/green]" if a.status == "completed" else time_until_due(a.due_date)
        if due == "Overdue":
            due = "[red]Overdue[/red]"
        table.add_row(
            a.title, a.subject, due,
            f"[{p_color}]{a.priority}[/{p_color}]",
            f"[{s_color}]{a.status}[/{s_color}]",
            format_duration(a.estimated_time),
            ", ".join(a.tags),
        )
    return table


def cmd_dashboard(planner: Planner):
    assignments = planner.store.get_assignments()
    subjects = planner.store.get_subjects()
    sessions = planner.store.get_study_sessions()
    pending = sum(1 for a in assignments if a.status == "pending")
    avg = average_grade(assignments)
    gpa = calculate_gpa(subjects)
    today = todays_study_time(sessions)
    streak = study_streak(sessions)

    console.print(Panel(
        f"Assignments: [bold]{len(assignments)}[/bold] ({pending} pending)  |  "
        f"Completion: [bold]{completion_rate(assignments)}%[/bold]  |  "
        f"Overdue: [bold red]{overdue_count(assignments)}[/bold red]\n"
        f"Average grade: [bold]{f'{avg:.1f}%' if avg > 0 else 'N/A'}[/bold]  |  "
        f"GPA: [bold]{f'{gpa:.2f}' if gpa > 0 else 'N/A'}[/bold]\n"
        f"Studied today: [bold]{format_duration(today // 60)}[/bold]  |  "
        f"Streak: [bold]{streak} day{'' if streak == 1 else 's'}[/bold]",
        title="Dashboard", border_style="blue",
    ))

    upcoming = upcoming_assignments(assignments)
    if not upcoming:
        console.print("[green]No upcoming assignments![/green]")
        return
    console.print(assignments_table(upcoming, title="Upcoming"))


def cmd_assignments(planner: Planner):
    assignments = planner.store.get_assignments()
    if not assignments:
        console.print("[yellow]No assignments yet. Use 'add' to create one.[/yellow]")
        return
    subjects = sorted({a.subject for a in assignments})
    query = session_prompt("Search", default="")
    subject = session_prompt("Subject", choices=["all", *subjects], default="all")
    status = session_prompt("Status", choices=["all", *STATUSES], default="all")
    priority = session_prompt("Priority", choices=["all", *PRIORITIES], default="all")
    sort_by = session_prompt("Sort by", choices=["dueDate", "title", "priority", "subject"], default="dueDate")
    order = session_prompt("Order", choices=["asc", "desc"], default="asc")
    results = sort_assignments(
        filter_assignments(assignments, query, subject, status, priority),
        sort_by, descending=order == "desc",
    )
    if not results:
        console.print("[yellow]Try adjusting your filters or search terms.[/yellow]")
        return
    console.print(assignments_table(results))


def _save_assignment(planner: Planner, assignment) -> bool:
    try:
        validate_assignment(assignment)
    except ValidationError as e:
        show_validation_errors(e)
        return False
    planner.store.save_assignment(assignment)
    if assignment.reminder_set and assignment.status != "completed":
        when = planner.reminders.schedule(assignment)
        if when:
            console.print(f"[dim]Reminder set for {when:%Y-%m-%d %H:%M}[/dim]")
    else:
        planner.reminders.cancel(assignment.id)
    notify("Assignment saved successfully!")
    return True


def _subject_prompt(planner: Planner, default: str = "") -> str:
    names = [s.name for s in planner.store.get_subjects()]
    if names:
        console.print(f"[dim]Subjects: {', '.join(names)}[/dim]")
    return session_prompt("Subject", default=default)


def _apply_tags(assignment, text: str):
    """Make the tag list match a comma-separated answer, keeping existing order."""
    wanted = [t.strip() for t in text.split(",") if t.strip()]
    for tag in assignment.tags:
        if tag not in wanted:
            assignment = remove_tag(assignment, tag)
    for tag in wanted:
        assignment = add_tag(assignment, tag)
    return assignment


def cmd_add(planner: Planner):
    console.print("\n[bold]New Assignment[/bold] [dim](q to cancel)[/dim]")
    title = session_prompt("Title")
    subject = _subject_prompt(planner)
    due = _parse_due(session_prompt("Due (YYYY-MM-DD HH:MM)"))
    priority = session_prompt("Priority", choices=list(PRIORITIES), default="medium")
    estimated = session_int_prompt("Estimated time (minutes)", default="60")
    description = session_prompt("Description", default="")
    tags = session_prompt("Tags (comma-separated)", default="")
    reminder = Confirm.ask("Remind me 24h before?", default=False)
    assignment = new_assignment(
        title, subject, due, priority=priority, estimated_time=estimated,
        description=description, reminder_set=reminder,
    )
    assignment = _apply_tags(assignment, tags)
    _save_assignment(planner, assignment)


def cmd_edit(planner: Planner):
    assignment = pick(planner.store.get_assignments(), "assignments", _describe_assignment)
    if assignment is None:
        return
    grade = session_prompt("Grade (0-100, blank for none)",
                           default="" if assignment.grade is None else str(assignment.grade))
    updated = replace(
        assignment,
        title=session_prompt("Title", default=assignment.title),
        subject=_subject_prompt(planner, default=assignment.subject),
        due_date=_parse_due(session_prompt("Due", default=assignment.due_date)),
        priority=session_prompt("Priority", choices=list(PRIORITIES), default=assignment.priority),
        # Editing status here does not stamp completed_at; use 'done' for that.
        status=session_prompt("Status", choices=list(STATUSES), default=assignment.status),
        estimated_time=session_int_prompt("Estimated time (minutes)", default=str(assignment.estimated_time)),
        grade=_optional_float(grade),
        notes=session_prompt("Notes", default=assignment.notes),
    )
    updated = _apply_tags(updated, session_prompt("Tags (comma-separated)", default=", ".join(assignment.tags)))
    _save_assignment(planner, updated)


def cmd_done(planner: Planner):
    assignment = pick(planner.store.get_assignments(), "assignments", _describe_assignment)
    if assignment is None:
        return
    updated = toggle_status(assignment)
    planner.store.save_assignment(updated)
    if updated.status == "completed":
        planner.reminders.cancel(updated.id)
    elif updated.reminder_set:
        planner.reminders.schedule(updated)
    notify(f"'{updated.title}' marked {updated.status}.")


def cmd_delete(planner: Planner):
    assignment = pick(planner.store.get_assignments(), "assignments", _describe_assignment)
    if assignment is None:
        return
    planner.store.delete_assignment(assignment.id)
    planner.reminders.cancel(assignment.id)
    notify("Assignment deleted")


def cmd_calendar(planner: Planner):
    assignments = planner.store.get_assignments()
    settings = planner.store.get_settings()
    table = Table(title="This Week")
    table.add_column("Day", style="cyan")
    table.add_column("Due")
    for day in week_dates(date.today(), settings.week_starts_on):
        due = assignments_due_on(assignments, day)
        label = f"{day:%a %d %b}"
        if is_same_day(day, date.today()):
            label = f"[bold]{label}[/bold]"
        table.add_row(label, ", ".join(a.title for a in due) or "[dim]-[/dim]")
    console.print(table)


def cmd_subjects(planner: Planner):
    subjects = planner.store.get_subjects()
    if not subjects:
        console.print("[yellow]Add your first subject to start tracking your academic progress.[/yellow]")
        return
    assignments = planner.store.get_assignments()
    sessions = planner.store.get_study_sessions()
    table = Table(title="Subjects")
    table.add_column("Subject", style="cyan")
    table.add_column("Teacher")
    table.add_column("Credits", justify="right")
    table.add_column("Grade", justify="right")
    table.add_column("Target", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Assignments", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Studied", justify="right")
    for s in subjects:
        table.add_row(
            s.name, s.teacher, str(s.credits),
            "-" if s.current_grade is None else f"{s.current_grade:g}%",
            "-" if s.target_grade is None else f"{s.target_grade:g}%",
            "-" if s.current_grade is None else f"{grade_to_gpa(s.current_grade):.1f}",
            str(len(subject_assignments(assignments, s))),
            f"{subject_completion_rate(assignments, s)}%",
            format_duration(subject_study_time(sessions, assignments, s) // 60),
        )
    console.print(table)
    gpa = calculate_gpa(subjects)
    console.print(f"\n  GPA: [bold]{f'{gpa:.2f}' if gpa > 0 else 'N/A'}[/bold]")


def cmd_add_subject(planner: Planner):
    console.print("\n[bold]New Subject[/bold] [dim](q to cancel)[/dim]")
    subject = new_subject(
        session_prompt("Name"),
        session_prompt("Teacher"),
        credits=session_int_prompt("Credits (1-6)", default="3"),
        color=session_prompt("Color", default="blue"),
        current_grade=_optional_float(session_prompt("Current grade (blank for none)", default="")),
        target_grade=_optional_float(session_prompt("Target grade (blank for none)", default="")),
        room=session_prompt("Room", default="") or None,
    )
    try:
        validate_subject(subject)
    except ValidationError as e:
        show_validation_errors(e)
        return
    planner.store.save_subject(subject)
    notify("Subject saved successfully!")


def cmd_delete_subject(planner: Planner):
    subject = pick(planner.store.get_subjects(), "subjects", lambda s: s.name)
    if subject is None:
        return
    planner.store.delete_subject(subject.id)
    notify("Subject deleted")


def cmd_timer(planner: Planner):
    timer = planner.timer
    prefs = planner.store.get_settings().study_preferences
    presets = {
        "focus": prefs.pomodoro_length,
        "short": prefs.short_break_length,
        "long": prefs.long_break_length,
    }
    while True:
        state = "[green]running[/green]" if timer.state == RUNNING else f"[yellow]{timer.state}[/yellow]"
        console.print(Panel(f"[bold]{timer.display}[/bold]  {state}", title="Study Timer", border_style="cyan"))
        action = session_prompt(
            "Timer", choices=["start", "pause", "reset", "focus", "short", "long", "back"], default="start",
        )
        if action == "back":
            return
        if action == "start":
            assignment_id = None
            if timer.session is None:
                open_items = [a for a in planner.store.get_assignments() if a.status != "completed"]
                if open_items and Confirm.ask("Link to an assignment?", default=False):
                    assignment_id = pick(open_items, "assignments", _describe_assignment).id
            timer.start(assignment_id)
        elif action == "pause":
            timer.pause()
        elif action == "reset":
            session = timer.reset()
            if session:
                notify(f"Session saved ({format_duration(session.duration // 60)}).")
        else:
            timer.preload(presets[action])


def cmd_study_stats(planner: Planner):
    sessions = planner.store.get_study_sessions()
    today = todays_sessions(sessions)
    seconds = todays_study_time(sessions)
    console.print(
        f"  Today: [bold]{format_duration(seconds // 60)}[/bold] in {len(today)} sessions  |  "
        f"Average: [bold]{format_duration(average_session_length(today) // 60)}[/bold]  |  "
        f"Daily goal: [bold]{daily_goal_progress(seconds):.0f}%[/bold] of 4h  |  "
        f"All time: [bold]{format_duration(total_study_time(sessions) // 60)}[/bold]"
    )


def cmd_goals(planner: Planner):
    goals = planner.store.get_study_goals()
    cmd_study_stats(planner)
    if not goals:
        console.print("[yellow]No goals yet. Use 'add-goal' to create one.[/yellow]")
        return
    table = Table(title="Study Goals")
    table.add_column("Goal", style="cyan")
    table.add_column("Type")
    table.add_column("Progress", justify="right")
    table.add_column("Deadline")
    table.add_column("Status")
    for g in goals:
        table.add_row(
            g.title, g.type, f"{g.current_value:g}/{g.target_value:g} {g.unit}".strip(),
            g.deadline or "-",
            "[green]Done[/green]" if g.is_completed else "In progress",
        )
    console.print(table)
    if Confirm.ask("Update progress?", default=False):
        goal = pick(goals, "goals", lambda g: g.title)
        value = float(session_prompt("Current value", default=f"{goal.current_value:g}"))
        planner.store.save_study_goal(record_goal_progress(goal, value))
        notify("Goal updated")


def cmd_add_goal(planner: Planner):
    console.print("\n[bold]New Goal[/bold] [dim](q to cancel)[/dim]")
    goal = new_study_goal(
        session_prompt("Title"),
        float(session_prompt("Target value", default="1")),
        unit=session_prompt("Unit", default="hours"),
        type=session_prompt("Type", choices=list(GOAL_TYPES), default="weekly"),
        deadline=_parse_due(session_prompt("Deadline (YYYY-MM-DD)", default="")),
        description=session_prompt("Description", default=""),
    )
    try:
        validate_goal(goal)
    except ValidationError as e:
        show_validation_errors(e)
        return
    planner.store.save_study_goal(goal)
    notify("Goal saved successfully!")


def cmd_delete_goal(planner: Planner):
    goal = pick(planner.store.get_study_goals(), "goals", lambda g: g.title)
    if goal is None:
        return
    planner.store.delete_study_goal(goal.id)
    notify("Goal deleted")


def cmd_export(planner: Planner):
    default = f"study-planner-export-{date.today().isoformat()}.json"
    path = Path(session_prompt("Export to", default=default))
    path.write_text(planner.store.export_snapshot())
    notify(f"Data exported to {path}")


def cmd_import(planner: Planner):
    file_path = session_prompt("File path")
    if not Path(file_path).exists():
        console.print(f"[red]File not found: {file_path}[/red]")
        return
    if planner.store.import_snapshot(Path(file_path).read_text()):
        notify("Data imported successfully!")
    else:
        console.print("[red]Failed to import data. Please check the file format.[/red]")


def cmd_csv(planner: Planner):
    which = session_prompt("Export", choices=["assignments", "subjects"], default="assignments")
    records = planner.store.get_assignments() if which == "assignments" else planner.store.get_subjects()
    if not records:
        console.print(f"[yellow]No {which} to export.[/yellow]")
        return
    path = Path(session_prompt("Export to", default=f"{which}.csv"))
    path.write_text(to_csv([r.to_dict() for r in records]))
    notify(f"{len(records)} {which} exported to {path}")


def cmd_settings(planner: Planner):
    settings = planner.store.get_settings()
    prefs = settings.study_preferences
    console.print(
        f"  Theme: {settings.theme}  |  Time format: {settings.time_format}  |  "
        f"Pomodoro: {prefs.pomodoro_length}/{prefs.short_break_length}/{prefs.long_break_length} min  |  "
        f"Assignment reminders: {'on' if settings.notifications.assignments else 'off'}"
    )
    if Confirm.ask("Change settings?", default=False):
        _edit_settings(planner, settings)
    if Confirm.ask("Clear all data?", default=False) and Confirm.ask("This cannot be undone. Continue?", default=False):
        planner.reminders.cancel_all()
        planner.store.clear()
        notify("All data cleared")


def _edit_settings(planner: Planner, settings):
    prefs = settings.study_preferences
    updated = replace(
        settings,
        theme=session_prompt("Theme", choices=["light", "dark", "system"], default=settings.theme),
        time_format=session_prompt("Time format", choices=["12h", "24h"], default=settings.time_format),
        study_preferences=replace(
            prefs,
            pomodoro_length=session_int_prompt("Pomodoro length", default=str(prefs.pomodoro_length)),
            short_break_length=session_int_prompt("Short break", default=str(prefs.short_break_length)),
            long_break_length=session_int_prompt("Long break", default=str(prefs.long_break_length)),
        ),
        notifications=replace(
            settings.notifications,
            assignments=Confirm.ask("Assignment reminders?", default=settings.notifications.assignments),
        ),
    )
    planner.store.save_settings(updated)
    notify("Settings saved")


COMMANDS = {
    "dashboard": cmd_dashboard,
    "assignments": cmd_assignments,
    "add": cmd_add,
    "edit": cmd_edit,
    "done": cmd_done,
    "delete": cmd_delete,
    "calendar": cmd_calendar,
    "subjects": cmd_subjects,
    "add-subject": cmd_add_subject,
    "delete-subject": cmd_delete_subject,
    "timer": cmd_timer,
    "goals": cmd_goals,
    "add-goal": cmd_add_goal,
    "delete-goal": cmd_delete_goal,
    "export": cmd_export,
    "import": cmd_import,
    "csv": cmd_csv,
    "settings": cmd_settings,
}


def build_planner(db_path: str = DEFAULT_DB_PATH) -> Planner:
    store = EntityStore(db_path)
    reminders = ReminderScheduler(ConsoleNotifier(console))
    if store.get_settings().notifications.assignments:
        reminders.request_permission()
    # Re-arm reminders for open assignments; pending reminders are not persisted.
    now = datetime.now()
    for a in store.get_assignments():
        if a.reminder_set and a.status != "completed":
            reminders.schedule(a, now)
    return Planner(store, StudyTimer(store), reminders)


def main():
    configure_logging()
    planner = build_planner()
    show_welcome()

    try:
        while True:
            show_menu()
            choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
            if choice in ("quit", "exit", "q"):
                console.print("[dim]Good luck with your studies![/dim]")
                break
            command = COMMANDS.get(choice)
            if command is None:
                console.print("[red]Unknown command. Try again.[/red]")
                continue
            try:
                command(planner)
            except SessionExitRequested:
                console.print("[dim]Back to menu.[/dim]")
            except KeyboardInterrupt:
                console.print("\n[dim]Use 'quit' to exit.[/dim]")
            except Exception as e:
                logger.debug("Command %s failed", choice, exc_info=True)
                console.print(f"[red]Error: {e}[/red]")
    finally:
        planner.timer.close()
        planner.reminders.cancel_all()


if __name__ == "__main__":
    main()
