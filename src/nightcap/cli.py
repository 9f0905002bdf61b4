"""CLI for the nightcap substance-level and sleep insight engine."""

import json
import logging
from datetime import datetime, time, timedelta

import click

from nightcap.config import settings
from nightcap.errors import NightcapError


def _read(file: str):
    from nightcap.pipeline import load_payload

    try:
        return load_payload(file)
    except (NightcapError, json.JSONDecodeError, KeyError, TypeError) as e:
        raise click.ClickException(f"cannot read export {file}: {e}") from e


def _load(file: str, habit_key: str):
    payload = _read(file)
    try:
        habit = payload.habit(habit_key)
    except NightcapError as e:
        raise click.ClickException(str(e)) from e
    return payload, habit, payload.events_for(habit)


def _instant(value: str) -> datetime:
    from nightcap.models import parse_instant

    try:
        return parse_instant(value)
    except NightcapError as e:
        raise click.ClickException(str(e)) from e


@click.group()
@click.option("--log-level", default=settings.LOG_LEVEL, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
              help="Logging verbosity.")
def main(log_level: str) -> None:
    """nightcap: substance levels and habit/sleep insights."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--habit", "-h", "habit_key", required=True, help="Habit id or name.")
@click.option("--at", "at", required=True, help="ISO-8601 instant, e.g. 2025-01-01T23:00:00.")
def level(file: str, habit_key: str, at: str) -> None:
    """Print the substance level and bedtime tier at one instant."""
    from nightcap.pharmacokinetics.bedtime import classify_bedtime

    _, habit, events = _load(file, habit_key)
    reading = classify_bedtime(events, _instant(at), habit)

    click.echo(f"{habit.name} at {at}: {reading.level:.1f} {habit.unit}")
    click.echo(f"  Tier: {reading.tier.value} ({reading.label}), "
               f"{reading.percentage:.0f}% of typical dose")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--habit", "-h", "habit_key", required=True, help="Habit id or name.")
@click.option("--start", required=True, help="ISO-8601 start instant.")
@click.option("--end", default=None, help="ISO-8601 end instant (default: start + 24h).")
@click.option("--step", default=settings.TIMELINE_STEP_MINUTES, show_default=True,
              type=float, help="Minutes between samples.")
def timeline(file: str, habit_key: str, start: str, end: str | None, step: float) -> None:
    """Print the substance level over a time window."""
    from nightcap.pharmacokinetics.bedtime import classify_against_timeline
    from nightcap.pharmacokinetics.decay import typical_dose
    from nightcap.pharmacokinetics.timeline import generate_timeline

    _, habit, events = _load(file, habit_key)
    t0 = _instant(start)
    t1 = _instant(end) if end else t0 + timedelta(hours=24)

    tl = generate_timeline(events, t0, t1, habit.half_life_hours, habit.threshold_percent, step)
    dose = typical_dose(events)
    for sample in tl:
        tier = classify_against_timeline(sample.level, tl, dose).tier.value
        click.echo(f"  {sample.time.isoformat()}  {sample.level:8.2f} {habit.unit}  [{tier}]")
    click.echo(f"\n{len(tl)} samples, peak {tl.max_level:.2f} {habit.unit}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--habit", "-h", "habit_key", required=True, help="Habit id or name.")
@click.option("--step", default=settings.PATTERN_STEP_MINUTES, show_default=True,
              type=float, help="Minutes between samples.")
def pattern(file: str, habit_key: str, step: float) -> None:
    """Print the average daily level pattern across all logged days."""
    from nightcap.pharmacokinetics.timeline import average_day_pattern

    _, habit, events = _load(file, habit_key)
    if not events:
        click.echo("No consumption events logged.")
        return

    # Every calendar day from the first to the last dose counts, with or
    # without doses
    by_day: dict = {}
    for e in events:
        day = e.consumed_at.date()
        if e.consumed_at.hour < settings.DAY_START_HOUR:
            day -= timedelta(days=1)
        by_day.setdefault(day, []).append(e)
    first, last = min(by_day), max(by_day)
    days = [first + timedelta(days=i) for i in range((last - first).days + 1)]

    tz = events[0].consumed_at.tzinfo
    start = datetime.combine(first, time(settings.DAY_START_HOUR), tzinfo=tz)
    end = start + timedelta(hours=24)
    avg = average_day_pattern(
        [by_day.get(d, []) for d in days], start, end,
        habit.half_life_hours, habit.threshold_percent, step, days=days,
    )

    click.echo(f"Average {habit.name} level over {len(days)} day(s):")
    for sample in avg:
        click.echo(f"  {sample.time.strftime('%H:%M')}  {sample.level:8.2f} {habit.unit}")


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--metric", "-m", default="total_sleep_minutes", show_default=True,
              help="Sleep metric to correlate against.")
@click.option("--output", "-o", default=None, help="Write the report JSON to file.")
@click.option("--min-points", default=settings.MIN_DATA_POINTS, show_default=True,
              help="Paired days required before statistics are shown.")
def insights(file: str, metric: str, output: str | None, min_points: int) -> None:
    """Correlate every habit with a sleep metric."""
    from nightcap.pipeline import run_pipeline

    payload = _read(file)
    try:
        report = run_pipeline(payload, metric, min_data_points=min_points)
    except NightcapError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"\n{'=' * 60}")
    click.echo(f"  Insights vs {metric}")
    click.echo(f"{'=' * 60}")
    for insight in report.valid_insights:
        if insight.kind == "binary":
            if insight.has_comparison_data:
                click.echo(f"  {insight.habit.name:<20} median yes {insight.yes_stats.median:.1f} "
                           f"/ no {insight.no_stats.median:.1f} "
                           f"({insight.yes_count} vs {insight.no_count} nights)")
            else:
                click.echo(f"  {insight.habit.name:<20} only one group logged "
                           f"({insight.yes_count} yes, {insight.no_count} no)")
        else:
            c = insight.correlation
            r = "n/a" if c.r is None else f"{c.r:+.2f}"
            click.echo(f"  {insight.habit.name:<20} r={r} {c.strength}, trend {c.trend} "
                       f"(n={insight.total_data_points})")
    for placeholder in report.placeholders:
        click.echo(f"  {placeholder.habit.name:<20} not enough data "
                   f"({placeholder.total_data_points}/{placeholder.min_data_points} paired days)")
    click.echo(f"{'=' * 60}")

    if output:
        with open(output, "w") as f:
            f.write(report.to_json())
        click.echo(f"\nReport written to {output}")


@main.command("options")
@click.option("--substance", "-s", type=click.Choice(["caffeine", "alcohol"]), default=None,
              help="Only list options for one substance.")
def options_cmd(substance: str | None) -> None:
    """List the built-in consumption options."""
    from nightcap.options import SYSTEM_OPTIONS

    for spec in SYSTEM_OPTIONS.values():
        if substance and spec.substance != substance:
            continue
        volume = f", {spec.default_volume:g} {spec.serving_unit}" if spec.default_volume else ""
        click.echo(f"  {spec.id:<15} {spec.name:<15} {spec.drug_amount:g} {spec.drug_unit}{volume}")


if __name__ == "__main__":
    main()
