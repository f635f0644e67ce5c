"""CLI interface using Typer."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console
from rich.table import Table

from bob.agent.response import create_response, error_response
from bob.config import get_settings, reload_settings
from bob.db import DatabaseConnection, get_db, set_db
from bob.errors import BobError, ProfileNotFoundError
from bob.log import setup_logging
from bob.tracking.models import UserProfile, utcnow

app = typer.Typer(
    help="Bob: calorie target calibration from weight and food logs",
    no_args_is_help=True,
)
console = Console()

# Subcommand groups
user_app = typer.Typer(help="Manage user profiles and calorie targets")
weight_app = typer.Typer(help="Log and review weight entries")
food_app = typer.Typer(help="Log and review meals")
calibrate_app = typer.Typer(help="Calibrate daily calorie targets")

app.add_typer(user_app, name="user")
app.add_typer(weight_app, name="weight")
app.add_typer(food_app, name="food")
app.add_typer(calibrate_app, name="calibrate")


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None, "--config", help="Path to config.yaml (default: ~/.bob/config.yaml)"
    ),
) -> None:
    """Load settings and configure logging."""
    if config is not None:
        settings = reload_settings(config)
        set_db(DatabaseConnection(settings.database.path))
    else:
        settings = get_settings()
    setup_logging(settings.logging.level, settings.logging.file)


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict) -> None:
    """Output JSON response to stdout."""
    print(json.dumps(response, indent=2))


def ensure_tables() -> None:
    """Ensure tables exist (idempotent)."""
    get_db().initialize_schema()


def fail(command: str, error: str | BobError, json_output: bool,
         suggestions: Optional[list[str]] = None) -> NoReturn:
    """Report an error in the requested format and exit with code 1."""
    if json_output:
        output_json(error_response(command, error, suggestions).to_dict())
    else:
        message = error.message if isinstance(error, BobError) else error
        console.print(f"[red]{message}[/red]")
        for suggestion in suggestions or []:
            console.print(f"  {suggestion}")
    raise typer.Exit(1)


def resolve_user(
    conn: sqlite3.Connection,
    user_id: Optional[str],
    command: str,
    json_output: bool,
) -> UserProfile:
    """Return the requested profile, or the default one when no ID is given."""
    from bob.tracking.queries import UserQueries

    profile = (
        UserQueries.get_user(conn, user_id) if user_id
        else UserQueries.get_default_user(conn)
    )
    if profile is None:
        if user_id:
            fail(command, ProfileNotFoundError(user_id), json_output)
        fail(command, "No user profile found", json_output,
             ["Create a profile first: bob user create --id <id> --name <name> --target <kcal>"])
    return profile


def parse_date(value: Optional[str], command: str, json_output: bool) -> date:
    """Parse YYYY-MM-DD (default: today in UTC, matching calibration windows)."""
    if not value:
        return utcnow().date()
    try:
        return date.fromisoformat(value)
    except ValueError:
        fail(command, f"Invalid date '{value}', expected YYYY-MM-DD", json_output)


# Callbacks for sub-apps to auto-create tables on first use
@user_app.callback()
def user_callback() -> None:
    """Ensure tables exist before any user command."""
    ensure_tables()


@weight_app.callback()
def weight_callback() -> None:
    """Ensure tables exist before any weight command."""
    ensure_tables()


@food_app.callback()
def food_callback() -> None:
    """Ensure tables exist before any food command."""
    ensure_tables()


@calibrate_app.callback()
def calibrate_callback() -> None:
    """Ensure tables exist before any calibrate command."""
    ensure_tables()


# ============================================================================
# Init
# ============================================================================


@app.command()
def init(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create the database and its tables."""
    db = get_db()
    db.initialize_schema()
    counts = db.row_counts()

    if json_output:
        output_json(create_response(
            "init",
            data={"database": str(db.db_path), "tables": counts},
            human_summary=f"Initialized {db.db_path}",
        ).to_dict())
        return

    console.print(f"[green]Initialized database:[/green] {db.db_path}")
    table = Table(title="Tables")
    table.add_column("Table", style="cyan")
    table.add_column("Rows", justify="right")
    for name, rows in counts.items():
        table.add_row(name, str(rows))
    console.print(table)


# ============================================================================
# User Profile Commands
# ============================================================================


def _profile_dict(profile: UserProfile) -> dict:
    return {
        "user_id": profile.user_id,
        "name": profile.name,
        "goal": profile.goal,
        "daily_calorie_target": profile.daily_calorie_target,
        "protein_target": profile.protein_target,
        "current_weight": profile.current_weight,
        "target_weight": profile.target_weight,
        "preferred_units": profile.preferred_units,
        "onboarding_completed": profile.onboarding_completed,
    }


@user_app.command("create")
def user_create(
    user_id: str = typer.Option(..., "--id", help="User ID"),
    name: str = typer.Option(..., "--name", help="Display name"),
    target: int = typer.Option(..., "--target", help="Daily calorie target (kcal)"),
    goal: str = typer.Option("maintain", "--goal", help="Goal (cut/gain/maintain)"),
    protein: Optional[float] = typer.Option(None, "--protein", help="Protein target (g)"),
    weight: Optional[float] = typer.Option(None, "--weight", help="Current weight (kg)"),
    target_weight: Optional[float] = typer.Option(
        None, "--target-weight", help="Target weight (kg)"
    ),
    units: str = typer.Option("metric", "--units", help="Preferred units (metric/imperial)"),
    onboarded: bool = typer.Option(
        True, "--onboarded/--not-onboarded", help="Include in scheduled calibration"
    ),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Create a user profile."""
    from bob.tracking.queries import UserQueries

    try:
        profile = UserProfile(
            user_id=user_id,
            name=name,
            daily_calorie_target=target,
            goal=goal,
            protein_target=protein,
            current_weight=weight,
            target_weight=target_weight,
            preferred_units=units,
            onboarding_completed=onboarded,
        )
    except ValueError as e:
        fail("user create", str(e), json_output)

    db = get_db()
    with db.get_connection() as conn:
        if UserQueries.get_user(conn, user_id) is not None:
            fail("user create", f"User '{user_id}' already exists", json_output)
        UserQueries.create_user(conn, profile)

    if json_output:
        output_json(create_response(
            "user create",
            data={"profile": _profile_dict(profile)},
            human_summary=f"Created profile {user_id} with target {target} kcal/day",
        ).to_dict())
    else:
        console.print(f"[green]Created profile:[/green] {user_id} ({name})")
        console.print(f"Daily calorie target: {target} kcal")


@user_app.command("show")
def user_show(
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID (default: first user)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show a user profile."""
    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "user show", json_output)

    if json_output:
        output_json(create_response(
            "user show",
            data={"profile": _profile_dict(profile)},
            human_summary=f"{profile.name}: {profile.daily_calorie_target} kcal/day",
        ).to_dict())
        return

    table = Table(title=f"Profile: {profile.user_id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for key, value in _profile_dict(profile).items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@user_app.command("list")
def user_list(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List all user profiles."""
    from bob.tracking.queries import UserQueries

    db = get_db()
    with db.get_connection() as conn:
        profiles = UserQueries.list_users(conn)

    if json_output:
        output_json(create_response(
            "user list",
            data={"users": [_profile_dict(p) for p in profiles]},
            human_summary=f"{len(profiles)} users",
        ).to_dict())
        return

    if not profiles:
        console.print("No user profiles found")
        return

    table = Table(title="Users")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Goal")
    table.add_column("Target", justify="right")
    table.add_column("Onboarded")
    for p in profiles:
        table.add_row(
            p.user_id, p.name, p.goal, str(p.daily_calorie_target),
            "yes" if p.onboarding_completed else "no",
        )
    console.print(table)


@user_app.command("set-target")
def user_set_target(
    target: int = typer.Argument(..., help="New daily calorie target (kcal)"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID (default: first user)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Manually set the daily calorie target."""
    from bob.tracking.queries import UserQueries

    if target <= 0:
        fail("user set-target", "Target must be positive", json_output)

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "user set-target", json_output)
        UserQueries.set_calorie_target(conn, profile.user_id, target)

    if json_output:
        output_json(create_response(
            "user set-target",
            data={
                "user_id": profile.user_id,
                "old_target": profile.daily_calorie_target,
                "new_target": target,
            },
            human_summary=f"Target set to {target} kcal/day",
        ).to_dict())
    else:
        console.print(
            f"[green]Target updated:[/green] {profile.daily_calorie_target} -> {target} kcal/day"
        )


# ============================================================================
# Weight Commands
# ============================================================================


@weight_app.command("add")
def weight_add(
    weight: float = typer.Argument(..., help="Weight"),
    unit: Optional[str] = typer.Option(
        None, "--unit", "-u", help="kg or lbs (default: from preferred units)"
    ),
    at: Optional[str] = typer.Option(
        None, "--at", help="Measurement time (ISO 8601, default: now)"
    ),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="Optional notes"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID (default: first user)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Add a weight entry."""
    from bob.tracking.queries import WeightQueries

    timestamp = None
    if at:
        try:
            timestamp = datetime.fromisoformat(at)
        except ValueError:
            fail("weight add", f"Invalid timestamp '{at}'", json_output)

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "weight add", json_output)
        if unit is None:
            unit = "lbs" if profile.preferred_units == "imperial" else "kg"
        try:
            entry = WeightQueries.add_weight(conn, profile.user_id, weight, unit, timestamp, notes)
        except ValueError as e:
            fail("weight add", str(e), json_output)

    if json_output:
        output_json(create_response(
            "weight add",
            data={
                "log_id": entry.log_id,
                "weight": entry.weight,
                "unit": entry.unit,
                "timestamp": entry.timestamp.isoformat(),
            },
            human_summary=f"Logged {entry.weight:.1f} {entry.unit}",
        ).to_dict())
    else:
        console.print(
            f"[green]Logged:[/green] {entry.weight:.1f} {entry.unit} on {entry.date}"
        )


@weight_app.command("list")
def weight_list(
    limit: int = typer.Option(30, "--limit", "-l", help="Number of entries to show"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List recent weight entries."""
    from bob.tracking.queries import WeightQueries

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "weight list", json_output)
        history = WeightQueries.get_weight_history(conn, profile.user_id, limit=limit)

    if json_output:
        output_json(create_response(
            "weight list",
            data={
                "entries": [
                    {
                        "log_id": e.log_id,
                        "date": e.date.isoformat(),
                        "weight": e.weight,
                        "unit": e.unit,
                    }
                    for e in history
                ]
            },
            human_summary=f"{len(history)} entries",
        ).to_dict())
        return

    if not history:
        console.print("No weight entries found")
        return

    table = Table(title=f"Weight History (last {limit} entries)")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Weight", justify="right")
    table.add_column("Notes")
    for entry in history:
        table.add_row(
            str(entry.log_id),
            entry.date.isoformat(),
            f"{entry.weight:.1f} {entry.unit}",
            entry.notes or "",
        )
    console.print(table)


@weight_app.command("stats")
def weight_stats(
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show overall weight progress."""
    from bob.tracking.diagnostics import format_weight_stats, generate_weight_stats

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "weight stats", json_output)
        stats = generate_weight_stats(conn, profile.user_id, get_settings().calibration)

    if stats is None:
        fail("weight stats", "No weight entries found", json_output,
             ["Log your weight with: bob weight add <weight>"])

    if json_output:
        output_json(create_response(
            "weight stats",
            data={
                "current_kg": round(stats.current, 2),
                "starting_kg": round(stats.starting, 2),
                "target_kg": stats.target,
                "total_change_kg": round(stats.total_change, 2),
                "to_goal_kg": round(stats.to_goal, 2) if stats.to_goal is not None else None,
                "entries": stats.entries,
            },
            human_summary=f"{stats.current:.1f} kg ({stats.total_change:+.1f} kg)",
        ).to_dict())
    else:
        console.print(format_weight_stats(stats))


# ============================================================================
# Food Commands
# ============================================================================


@food_app.command("log")
def food_log(
    meal: str = typer.Option(..., "--meal", "-m", help="breakfast/lunch/dinner/snack"),
    calories: Optional[float] = typer.Option(None, "--calories", help="Total calories"),
    protein: float = typer.Option(0.0, "--protein", help="Protein (g)"),
    carbs: float = typer.Option(0.0, "--carbs", help="Carbohydrates (g)"),
    fat: float = typer.Option(0.0, "--fat", help="Fat (g)"),
    name: Optional[str] = typer.Option(None, "--name", help="Food description"),
    from_file: Optional[Path] = typer.Option(
        None, "--from-file", "-f", help="JSON list of items (name, quantity, calories, ...)"
    ),
    date_str: Optional[str] = typer.Option(
        None, "--date", "-d", help="Date (YYYY-MM-DD, default: today, UTC)"
    ),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log a meal, either as totals or as a JSON list of items."""
    from bob.tracking.models import FoodEntry, FoodItem
    from bob.tracking.queries import FoodQueries

    log_date = parse_date(date_str, "food log", json_output)

    if from_file is None and calories is None:
        fail("food log", "Provide --calories or --from-file", json_output)

    items: list[FoodItem] = []
    if from_file is not None:
        try:
            raw = json.loads(from_file.read_text())
            items = [FoodItem.from_dict(item) for item in raw]
        except (OSError, ValueError, KeyError, TypeError) as e:
            fail("food log", f"Could not read items from {from_file}: {e}", json_output)
    else:
        items = [FoodItem(
            name=name or meal,
            calories=calories or 0.0,
            protein=protein,
            carbs=carbs,
            fat=fat,
        )]

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "food log", json_output)
        try:
            entry = FoodEntry.from_items(profile.user_id, log_date, meal, items)
        except ValueError as e:
            fail("food log", str(e), json_output)
        entry = FoodQueries.log_food(conn, entry)

    if json_output:
        output_json(create_response(
            "food log",
            data={
                "log_id": entry.log_id,
                "date": entry.date.isoformat(),
                "meal": entry.meal_label,
                "total_calories": entry.total_calories,
                "total_protein": entry.total_protein,
                "total_carbs": entry.total_carbs,
                "total_fat": entry.total_fat,
            },
            human_summary=f"Logged {entry.meal_label}: {entry.total_calories:.0f} kcal",
        ).to_dict())
    else:
        console.print(
            f"[green]Logged {entry.meal_label}:[/green] {entry.total_calories:.0f} kcal "
            f"on {entry.date}"
        )


@food_app.command("list")
def food_list(
    days: int = typer.Option(14, "--days", "-d", help="Days to show"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List logged meals."""
    from bob.tracking.queries import FoodQueries

    end_date = utcnow().date()
    start_date = end_date - timedelta(days=days)

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "food list", json_output)
        entries = FoodQueries.get_food_between(conn, profile.user_id, start_date, end_date)

    if json_output:
        output_json(create_response(
            "food list",
            data={
                "entries": [
                    {
                        "log_id": e.log_id,
                        "date": e.date.isoformat(),
                        "meal": e.meal_label,
                        "items": [item.to_dict() for item in e.items],
                        "total_calories": e.total_calories,
                    }
                    for e in entries
                ]
            },
            human_summary=f"{len(entries)} meals over {days} days",
        ).to_dict())
        return

    if not entries:
        console.print("No meals found")
        return

    table = Table(title=f"Food Log (last {days} days)")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Date", style="cyan")
    table.add_column("Meal")
    table.add_column("Items")
    table.add_column("Calories", justify="right")
    table.add_column("P/C/F (g)", justify="right")
    for e in entries:
        table.add_row(
            str(e.log_id),
            e.date.isoformat(),
            e.meal_label,
            ", ".join(item.name for item in e.items),
            f"{e.total_calories:.0f}",
            f"{e.total_protein:.0f}/{e.total_carbs:.0f}/{e.total_fat:.0f}",
        )
    console.print(table)


@food_app.command("delete")
def food_delete(
    log_id: int = typer.Argument(..., help="Meal log ID"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Delete a logged meal."""
    from bob.tracking.queries import FoodQueries

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "food delete", json_output)
        deleted = FoodQueries.delete_food(conn, profile.user_id, log_id)

    if not deleted:
        fail("food delete", f"Meal {log_id} not found", json_output)

    if json_output:
        output_json(create_response(
            "food delete", data={"log_id": log_id}, human_summary=f"Deleted meal {log_id}"
        ).to_dict())
    else:
        console.print(f"[green]Deleted meal {log_id}[/green]")


@food_app.command("week")
def food_week(
    start: Optional[str] = typer.Option(
        None, "--start", help="Week start (YYYY-MM-DD, default: this Monday)"
    ),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show weekly calorie statistics."""
    from bob.tracking.diagnostics import (
        format_weekly_food_stats,
        generate_weekly_food_stats,
    )

    if start:
        week_start = parse_date(start, "food week", json_output)
    else:
        today = utcnow().date()
        week_start = today - timedelta(days=today.weekday())

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "food week", json_output)
        stats = generate_weekly_food_stats(
            conn, profile.user_id, week_start, get_settings().calibration
        )

    if stats is None:
        fail("food week", ProfileNotFoundError(profile.user_id), json_output)

    if json_output:
        output_json(create_response(
            "food week",
            data={
                "week_start": stats.week_start.isoformat(),
                "week_end": stats.week_end.isoformat(),
                "total_calories": stats.total_calories,
                "average_calories": stats.average_calories,
                "meals_logged": stats.meals_logged,
                "days_with_logs": stats.days_with_logs,
                "expected_weight_change": stats.expected_weight_change,
            },
            human_summary=f"{stats.average_calories} kcal/day over {stats.days_with_logs} days",
        ).to_dict())
    else:
        console.print(format_weekly_food_stats(stats))


# ============================================================================
# Calibration Commands
# ============================================================================


def _print_result(result) -> None:
    from bob.calibration.result import CalibrationStatus

    style = {
        CalibrationStatus.CALIBRATED: "green",
        CalibrationStatus.NO_ADJUSTMENT_NEEDED: "blue",
        CalibrationStatus.INSUFFICIENT_DATA: "yellow",
    }[result.status]
    console.print(f"[{style}]{result.status.value}[/{style}]: {result.reason}")

    if result.status == CalibrationStatus.CALIBRATED:
        console.print(
            f"Target: {result.old_target} -> {result.new_target} kcal/day "
            f"({result.adjustment:+d}, {result.confidence} confidence)"
        )
    if result.metrics is not None:
        m = result.metrics
        console.print(
            f"  Avg intake {m.avg_daily_calories:.0f} kcal over {m.logged_days} logged days; "
            f"weight change {m.actual_weight_change:+.2f} kg "
            f"(expected {m.expected_weight_change:+.2f} kg)"
        )


@calibrate_app.command("run")
def calibrate_run(
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID (default: first user)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Calibrate one user's calorie target now."""
    from bob.calibration.service import trigger_calibration

    db = get_db()
    try:
        with db.get_connection() as conn:
            profile = resolve_user(conn, user_id, "calibrate run", json_output)
            result = trigger_calibration(conn, profile.user_id, settings=get_settings())
    except BobError as e:
        fail("calibrate run", e, json_output)

    if json_output:
        output_json(create_response(
            "calibrate run", data=result.to_dict(), human_summary=result.reason
        ).to_dict())
    else:
        _print_result(result)


@calibrate_app.command("all")
def calibrate_all(
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Calibrate every onboarded user (what the weekly job runs)."""
    from bob.calibration.service import run_batch

    summary = run_batch(get_db(), settings=get_settings())
    data = summary.to_dict()

    if json_output:
        data["results"] = {uid: r.to_dict() for uid, r in summary.results.items()}
        output_json(create_response(
            "calibrate all",
            data=data,
            human_summary=(
                f"{data['processed']} users: {data['calibrated']} calibrated, "
                f"{len(summary.failed)} failed"
            ),
        ).to_dict())
        return

    table = Table(title="Calibration Batch")
    table.add_column("User", style="cyan")
    table.add_column("Status")
    table.add_column("Target", justify="right")
    table.add_column("Reason")
    for uid, result in summary.results.items():
        target = f"{result.old_target} -> {result.new_target}" if result.applied else ""
        table.add_row(uid, result.status.value, target, result.reason)
    for uid, error in summary.failed.items():
        table.add_row(uid, "[red]failed[/red]", "", error)
    console.print(table)


@calibrate_app.command("history")
def calibrate_history(
    limit: int = typer.Option(10, "--limit", "-l", help="Number of records"),
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show past calorie target adjustments."""
    from bob.calibration.service import get_calibration_history

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "calibrate history", json_output)
        records = get_calibration_history(conn, profile.user_id, limit)

    if json_output:
        output_json(create_response(
            "calibrate history",
            data={"records": [r.to_dict() for r in records]},
            human_summary=f"{len(records)} calibrations",
        ).to_dict())
        return

    if not records:
        console.print("No calibrations yet")
        return

    table = Table(title="Calibration History")
    table.add_column("Date", style="cyan")
    table.add_column("Old", justify="right")
    table.add_column("New", justify="right")
    table.add_column("Change", justify="right")
    table.add_column("Confidence")
    table.add_column("Reason")
    for r in records:
        table.add_row(
            r.date.isoformat(), str(r.old_target), str(r.new_target),
            f"{r.adjustment:+d}", r.confidence, r.reason,
        )
    console.print(table)


@calibrate_app.command("latest")
def calibrate_latest(
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the most recent calibration."""
    from bob.calibration.service import get_latest_calibration

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "calibrate latest", json_output)
        insight = get_latest_calibration(conn, profile.user_id, settings=get_settings())

    if json_output:
        output_json(create_response(
            "calibrate latest",
            data={"latest": insight.to_dict() if insight else None},
            human_summary=insight.record.reason if insight else "No calibrations yet",
        ).to_dict())
        return

    if insight is None:
        console.print("No calibrations yet")
        return

    r = insight.record
    age = "recent" if insight.is_recent else f"{insight.weeks_since} weeks ago"
    console.print(f"[cyan]{r.date.isoformat()}[/cyan] ({age})")
    console.print(f"Target: {r.old_target} -> {r.new_target} kcal/day ({r.confidence} confidence)")
    console.print(r.reason)


@calibrate_app.command("check")
def calibrate_check(
    user_id: Optional[str] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Check whether a calibration is due."""
    from bob.calibration.service import should_calibrate

    db = get_db()
    with db.get_connection() as conn:
        profile = resolve_user(conn, user_id, "calibrate check", json_output)
        check = should_calibrate(conn, profile.user_id, settings=get_settings())

    if json_output:
        output_json(create_response(
            "calibrate check", data=check.to_dict(), human_summary=check.reason
        ).to_dict())
    elif check.needed:
        console.print(f"[yellow]Calibration recommended:[/yellow] {check.reason}")
    else:
        console.print(check.reason)


@calibrate_app.command("schedule")
def calibrate_schedule() -> None:
    """Run the weekly calibration job in the foreground."""
    from bob.calibration.scheduler import run_scheduler

    settings = get_settings()
    s = settings.schedule
    console.print(
        f"[green]Weekly calibration scheduled:[/green] {s.day_of_week} "
        f"{s.hour:02d}:{s.minute:02d} {s.timezone} (Ctrl+C to stop)"
    )
    run_scheduler(get_db(), settings)


if __name__ == "__main__":
    app()
