"""Terminal UI for Taskboard."""

from datetime import date, datetime
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from taskboard.client import views
from taskboard.client.app import ClientApp
from taskboard.client.http import ApiError, SessionExpiredError
from taskboard.client.task_store import StoreError
from taskboard.config import get_settings
from taskboard.logging_setup import setup_logging
from taskboard.models.tasks import TASK_PRIORITIES, TASK_STATUSES

app = typer.Typer(name="taskboard", help="Manage your tasks from the terminal", no_args_is_help=True)
tasks_app = typer.Typer(help="Task commands", no_args_is_help=True)
app.add_typer(tasks_app, name="tasks")

console = Console()

DATE_FORMATS = ["%Y-%m-%d"]

SESSION_EXPIRED = "Your session has expired. Run `taskboard login` to sign in again."


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}")
    raise typer.Exit(1)


def _api_error(e: Exception) -> NoReturn:
    if isinstance(e, SessionExpiredError):
        _fail(SESSION_EXPIRED)
    _fail(e.message if isinstance(e, ApiError) else "Unexpected response from server")


def _client(ctx: typer.Context) -> ClientApp:
    return ctx.obj


def _store_error(client: ClientApp, message: str) -> NoReturn:
    if client.auth.state.session_expired:
        _fail(SESSION_EXPIRED)
    _fail(message)


def _validate_choice(value: str | None, choices: tuple[str, ...], label: str) -> None:
    if value is not None and value not in choices:
        _fail(f"{label} must be one of: {', '.join(choices)}")


def _validate_title(title: str) -> str:
    if not title.strip():
        _fail("Title is required")
    return title.strip()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log HTTP activity to stderr"),
) -> None:
    settings = get_settings()
    setup_logging("DEBUG" if verbose else "WARNING")
    if ctx.obj is None:
        ctx.obj = ClientApp(settings)


# --- Session ---


@app.command()
def login(
    ctx: typer.Context,
    email: str | None = typer.Option(None, "--email", help="Email address"),
    password: str | None = typer.Option(None, "--password", help="Password"),
    google_credential: str | None = typer.Option(
        None, "--google-credential", help="Google ID token to sign in with instead of a password"
    ),
) -> None:
    """Sign in with email/password or a Google credential."""
    client = _client(ctx)
    try:
        if google_credential:
            user = client.auth.login_with_google(google_credential)
        else:
            email = email or Prompt.ask("Email")
            password = password or Prompt.ask("Password", password=True)
            if not email or not password:
                _fail("Email and password are required")
            user = client.auth.login_with_email(email, password)
    except StoreError as e:
        _api_error(e)
    console.print(f"[green]Logged in as[/green] {escape(user.name)} <{escape(user.email)}>")


@app.command()
def register(
    ctx: typer.Context,
    name: str = typer.Option(..., "--name", prompt=True, help="Display name"),
    email: str = typer.Option(..., "--email", prompt=True, help="Email address"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True, help="Password"),
) -> None:
    """Create an email/password account and sign in."""
    client = _client(ctx)
    try:
        user = client.auth.register(name, email, password)
    except StoreError as e:
        _api_error(e)
    console.print(f"[green]Welcome,[/green] {escape(user.name)}!")


@app.command()
def logout(ctx: typer.Context) -> None:
    """Sign out and forget the stored session."""
    _client(ctx).auth.logout()
    console.print("Logged out.")


@app.command()
def whoami(ctx: typer.Context) -> None:
    """Show the signed-in user."""
    client = _client(ctx)
    if not client.auth.restore():
        _store_error(client, client.auth.state.error or "Not logged in. Run `taskboard login`.")
    console.print(views.profile(client.auth.state.user))


@app.command()
def profile(ctx: typer.Context, name: str = typer.Argument(..., help="New display name")) -> None:
    """Change your display name."""
    if not name.strip():
        _fail("Name is required")
    try:
        user = _client(ctx).auth.update_profile(name.strip())
    except StoreError as e:
        _api_error(e)
    console.print(views.profile(user))


# --- Dashboard ---


@app.command()
def dashboard(ctx: typer.Context) -> None:
    """Task statistics, overdue work and recent tasks."""
    client = _client(ctx)
    store = client.tasks
    store.fetch_tasks()
    store.fetch_task_stats()
    state = store.state
    if state.error:
        _store_error(client, state.error)
    console.print(views.dashboard(state.task_stats, state.tasks, date.today()))


# --- Tasks ---


@tasks_app.command("list")
def list_tasks(
    ctx: typer.Context,
    search: str | None = typer.Option(None, "--search", "-s", help="Match title or description"),
    status: str | None = typer.Option(None, "--status", help="pending, in-progress, completed or 'all'"),
    sort: str | None = typer.Option(None, "--sort", help="created_at, updated_at, deadline, title, priority, status"),
    order: str | None = typer.Option(None, "--order", help="asc or desc"),
) -> None:
    """List tasks. Filters given here are remembered for next time."""
    client = _client(ctx)
    store = client.tasks
    if status is not None and status != "all":
        _validate_choice(status, TASK_STATUSES, "Status")
    _validate_choice(order, ("asc", "desc"), "Order")

    store.update_criteria(
        search_term=search,
        status_filter="" if status == "all" else status,
        sort_by=sort,
        sort_order=order,
    )

    state = store.state
    if state.error:
        _store_error(client, state.error)
    if not state.tasks:
        console.print(views.empty_tasks_message(state.search_term, state.status_filter))
        return
    console.print(views.task_table(state.tasks, date.today()))


@tasks_app.command("show")
def show_task(ctx: typer.Context, task_id: str = typer.Argument(..., help="Task ID")) -> None:
    """Show one task."""
    client = _client(ctx)
    store = client.tasks
    store.fetch_task(task_id)
    task = store.state.current_task
    if task is None:
        _store_error(client, store.state.error or "No task found")
    console.print(views.task_detail(task, date.today()))


@tasks_app.command("add")
def add_task(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    deadline: datetime = typer.Option(..., "--deadline", "-d", formats=DATE_FORMATS, help="Due date (YYYY-MM-DD)"),
    description: str = typer.Option("", "--description", help="Longer description"),
    assignee: str = typer.Option("", "--assignee", "-a", help="Who is doing it"),
    status: str = typer.Option("pending", "--status", help="pending, in-progress or completed"),
    priority: str = typer.Option("medium", "--priority", "-p", help="low, medium or high"),
) -> None:
    """Create a task."""
    title = _validate_title(title)
    _validate_choice(status, TASK_STATUSES, "Status")
    _validate_choice(priority, TASK_PRIORITIES, "Priority")
    try:
        task = _client(ctx).tasks.create_task({
            "title": title,
            "description": description,
            "deadline": deadline.date(),
            "assigned_to": assignee,
            "status": status,
            "priority": priority,
        })
    except StoreError as e:
        _api_error(e)
    console.print(f"[green]Created task[/green] {task.id}")
    console.print(views.task_detail(task, date.today()))


@tasks_app.command("edit")
def edit_task(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    title: str | None = typer.Option(None, "--title", help="New title"),
    deadline: datetime | None = typer.Option(None, "--deadline", "-d", formats=DATE_FORMATS, help="New due date"),
    description: str | None = typer.Option(None, "--description", help="New description"),
    assignee: str | None = typer.Option(None, "--assignee", "-a", help="New assignee"),
    status: str | None = typer.Option(None, "--status", help="pending, in-progress or completed"),
    priority: str | None = typer.Option(None, "--priority", "-p", help="low, medium or high"),
) -> None:
    """Change fields of a task. Only the options given are sent."""
    updates: dict = {}
    if title is not None:
        updates["title"] = _validate_title(title)
    if deadline is not None:
        updates["deadline"] = deadline.date()
    if description is not None:
        updates["description"] = description
    if assignee is not None:
        updates["assigned_to"] = assignee
    if status is not None:
        _validate_choice(status, TASK_STATUSES, "Status")
        updates["status"] = status
    if priority is not None:
        _validate_choice(priority, TASK_PRIORITIES, "Priority")
        updates["priority"] = priority
    if not updates:
        _fail("Nothing to change. Pass at least one option, e.g. --status completed")
    try:
        task = _client(ctx).tasks.update_task(task_id, updates)
    except StoreError as e:
        _api_error(e)
    console.print(f"[green]Updated task[/green] {task.id}")
    console.print(views.task_detail(task, date.today()))


@tasks_app.command("rm")
def delete_task(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a task."""
    if not yes and not typer.confirm(f"Delete task {task_id}?"):
        raise typer.Exit(0)
    try:
        _client(ctx).tasks.delete_task(task_id)
    except StoreError as e:
        _api_error(e)
    console.print(f"Deleted task {task_id}")


if __name__ == "__main__":
    app()
