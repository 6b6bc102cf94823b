"""Rich renderables for the terminal UI. Pure functions of store state."""

from datetime import date, timedelta

from rich.console import Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from taskboard.models.tasks import Task, TaskStats
from taskboard.models.users import User

STATUS_STYLES = {
    "pending": "yellow",
    "in-progress": "blue",
    "completed": "green",
}

PRIORITY_STYLES = {
    "high": "bold red",
    "medium": "yellow",
    "low": "dim",
}


def is_overdue(task: Task, today: date) -> bool:
    return task.deadline < today and task.status != "completed"


def overdue_tasks(tasks: list[Task], today: date) -> list[Task]:
    return [task for task in tasks if is_overdue(task, today)]


def due_counts(tasks: list[Task], today: date) -> tuple[int, int]:
    """Open tasks due today, and due between today and the end of the week (Sunday)."""
    week_end = today + timedelta(days=6 - today.weekday())
    open_tasks = [task for task in tasks if task.status != "completed"]
    due_today = sum(1 for task in open_tasks if task.deadline == today)
    due_this_week = sum(1 for task in open_tasks if today <= task.deadline <= week_end)
    return due_today, due_this_week


def recent_tasks(tasks: list[Task], limit: int = 5) -> list[Task]:
    return sorted(tasks, key=lambda task: task.created_at, reverse=True)[:limit]


def _status(task: Task) -> Text:
    return Text(task.status, style=STATUS_STYLES.get(task.status, ""))


def _priority(task: Task) -> Text:
    return Text(task.priority, style=PRIORITY_STYLES.get(task.priority, ""))


def task_table(tasks: list[Task], today: date, title: str = "Tasks") -> Table:
    table = Table(title=title, show_lines=False)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Deadline")
    table.add_column("Assignee")
    for task in tasks:
        deadline = Text(task.deadline.isoformat(), style="red" if is_overdue(task, today) else "")
        table.add_row(task.id, task.title, _status(task), _priority(task), deadline, task.assigned_to)
    return table


def empty_tasks_message(search_term: str = "", status_filter: str = "") -> Text:
    if search_term or status_filter:
        return Text("No tasks match the current filters.", style="dim")
    return Text("No tasks yet. Create one with `taskboard tasks add`.", style="dim")


def task_detail(task: Task, today: date) -> Panel:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("ID", task.id)
    grid.add_row("Status", _status(task))
    grid.add_row("Priority", _priority(task))
    deadline = task.deadline.isoformat()
    if is_overdue(task, today):
        deadline += " (overdue)"
    grid.add_row("Deadline", deadline)
    grid.add_row("Assignee", task.assigned_to or "-")
    grid.add_row("Created", task.created_at.strftime("%Y-%m-%d %H:%M"))
    grid.add_row("Updated", task.updated_at.strftime("%Y-%m-%d %H:%M"))
    body = Group(grid, Text(""), Text(task.description or "No description.", style="" if task.description else "dim"))
    return Panel(body, title=task.title, title_align="left")


def _stat_card(label: str, value: int, style: str) -> Panel:
    return Panel(Text(str(value), style=f"bold {style}", justify="center"), title=label, width=18)


def dashboard(stats: TaskStats, tasks: list[Task], today: date) -> Group:
    cards = Table.grid(padding=(0, 1))
    for _ in range(4):
        cards.add_column()
    cards.add_row(
        _stat_card("Total", stats.total, "white"),
        _stat_card("In progress", stats.in_progress, "blue"),
        _stat_card("Completed", stats.completed, "green"),
        _stat_card("Overdue", stats.overdue, "red"),
    )

    due_today, due_this_week = due_counts(tasks, today)
    summary = Text.assemble(
        ("Pending: ", "bold"), str(stats.pending), "   ",
        ("Due today: ", "bold"), str(due_today), "   ",
        ("Due this week: ", "bold"), str(due_this_week),
    )

    parts = [cards, summary]
    if stats.overdue > 0:
        overdue = overdue_tasks(tasks, today)[:3]
        lines = [
            Text.assemble((task.title, "bold"), f"  due {task.deadline.isoformat()}  ", _priority(task))
            for task in overdue
        ]
        if stats.overdue > 3:
            lines.append(Text(f"+{stats.overdue - 3} more overdue tasks", style="red"))
        parts.append(Panel(Group(*lines), title=f"Overdue Tasks ({stats.overdue})", border_style="red"))

    recent = recent_tasks(tasks)
    if recent:
        parts.append(task_table(recent, today, title="Recent Tasks"))
    else:
        parts.append(empty_tasks_message())
    return Group(*parts)


def profile(user: User) -> Panel:
    grid = Table.grid(padding=(0, 2))
    grid.add_column(style="bold")
    grid.add_column()
    grid.add_row("Name", user.name)
    grid.add_row("Email", user.email)
    if user.picture:
        grid.add_row("Avatar", user.picture)
    return Panel(grid, title="Profile", title_align="left")
