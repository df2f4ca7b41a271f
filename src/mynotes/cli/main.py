import os
import sys

import click
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mynotes import __version__
from mynotes.codec import codec_for
from mynotes.controller import ALL_CATEGORIES, Controller
from mynotes.errors import ValidationError
from mynotes.mynotes_env import MynotesEnvironment
from mynotes.records import CardFilter, RecordKind
from mynotes.shared import today
from mynotes.view import MynotesApp

KIND_NAMES = [kind.value for kind in RecordKind]


class _KindParam(click.ParamType):
    name = "kind"

    # plural and view names are accepted too
    ALIASES = {
        "tasks": "task",
        "planner": "task",
        "habits": "habit",
        "finances": "finance",
        "calories": "calorie",
        "cards": "flashcard",
        "card": "flashcard",
        "flashcards": "flashcard",
    }

    def convert(self, value, param, ctx):
        if isinstance(value, RecordKind):
            return value
        s = str(value).strip().lower()
        s = self.ALIASES.get(s, s)
        try:
            return RecordKind(s)
        except ValueError:
            self.fail(f"Expected one of {', '.join(KIND_NAMES)}", param, ctx)


_KIND = _KindParam()


def get_raw_from_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def get_raw_from_stdin() -> str:
    return sys.stdin.read()


def _read_entry(entry: tuple[str, ...], file: str | None) -> str:
    if file:
        return get_raw_from_file(file)
    if entry:
        return " ".join(entry)
    if not sys.stdin.isatty():
        return get_raw_from_stdin()
    return ""


@click.group()
@click.version_option(
    __version__, prog_name="mynotes", message="%(prog)s version %(version)s"
)
@click.option(
    "--home",
    help="Override the mynotes home directory (equivalent to setting $MYNOTES_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """mynotes CLI - tasks, habits, finances, calories, kanban and flashcards as text."""
    if home:
        os.environ["MYNOTES_HOME"] = home  # must be set before MynotesEnvironment()

    env = MynotesEnvironment()
    env.ensure(init_config=True)
    config = env.load_config()

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = env
    ctx.obj["CONFIG"] = config
    ctx.obj["VERBOSE"] = verbose


def _controller(ctx) -> Controller:
    controller = Controller(ctx.obj["ENV"])
    if controller.status_message:
        print(f"[yellow]⚠️ {controller.status_message}[/yellow]")
    return controller


@cli.command()
@click.pass_context
def ui(ctx):
    """Launch the mynotes Textual interface."""
    controller = _controller(ctx)
    if ctx.obj["VERBOSE"]:
        print(f"[blue]Launching UI with data file:[/blue] {controller.data_path}")
    MynotesApp(controller).run()


@cli.command()
@click.argument("kind", type=_KIND)
def template(kind):
    """Print the blank editing template for KIND."""
    click.echo(codec_for(kind).template(), nl=False)


@cli.command()
@click.argument("kind", type=_KIND)
@click.argument("entry", nargs=-1)
@click.option(
    "--file",
    "-f",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the record text from a file.",
)
@click.pass_context
def add(ctx, kind, entry, file):
    """Parse a new KIND record from ENTRY, --file or stdin, append and save it."""
    text = _read_entry(entry, file)
    if not text.strip():
        print("[red]✘ No entry provided. Use an argument, --file or a pipe.[/red]")
        sys.exit(1)

    controller = _controller(ctx)
    try:
        record = controller.add_from_text(kind, text)
    except ValidationError as e:
        print(f"[red]✘ {kind.label} Error:[/red] {escape(e.message)}")
        sys.exit(1)

    if controller.save_error:
        print(f"[red]✘ Added but not saved:[/red] {controller.save_error}")
        sys.exit(1)
    print(f"[green]✔ Added {kind.label.lower()}:[/green] {escape(controller.rows(kind)[-1])}")
    if ctx.obj["VERBOSE"]:
        click.echo(codec_for(kind).format(record), nl=False)


@cli.command()
@click.argument("kind", type=_KIND)
@click.argument("entry", nargs=-1)
@click.option(
    "--file",
    "-f",
    type=click.Path(exists=True, dir_okay=False),
    help="Read the record text from a file.",
)
@click.pass_context
def check(ctx, kind, entry, file):
    """Check whether text is a valid KIND record (parsing only)."""
    text = _read_entry(entry, file)
    if not text.strip():
        print("[bold red]✘ No entry provided. Use argument, --file or pipe.[/bold red]")
        sys.exit(1)

    codec = codec_for(kind)
    try:
        record = codec.parse(text)
    except ValidationError as e:
        print(f"[red]✘ Invalid {kind.label.lower()}:[/red] {escape(e.message)}")
        sys.exit(1)

    print(f"[green]✔ {kind.label} is valid.[/green]")
    if ctx.obj["VERBOSE"]:
        click.echo(codec.format(record), nl=False)


@cli.command(name="list")
@click.argument("kind", type=_KIND)
@click.option(
    "--filter",
    "card_filter",
    type=click.Choice([f.value for f in CardFilter], case_sensitive=False),
    default=CardFilter.ALL.value,
    help="Flashcards only: list the cards in this group.",
)
@click.option(
    "--collection",
    help="Flashcards only: list the cards in this collection.",
)
@click.pass_context
def list_records(ctx, kind, card_filter, collection):
    """List the stored KIND records."""
    controller = _controller(ctx)
    rows = list(enumerate(controller.rows(kind), start=1))
    title = kind.label
    if kind == RecordKind.FLASHCARD:
        card_filter = CardFilter(card_filter)
        if collection:
            card_filter = CardFilter.COLLECTION
        shown = set(controller.cards_matching(card_filter, collection))
        rows = [(idx, row) for idx, row in rows if idx - 1 in shown]
        if card_filter != CardFilter.ALL:
            title = f"{title} - {collection or card_filter.value}"
    if not rows:
        print(f"[yellow]No {kind.label.lower()} records.[/yellow]")
        return

    table = Table(title=f"{title} ({len(rows)})", show_header=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column(kind.label)
    for idx, row in rows:
        table.add_row(str(idx), escape(row))
    Console().print(table)


@cli.command()
@click.option("--category", "-c", default=ALL_CATEGORIES, help="One category, or All.")
@click.option("--year", "-y", type=int, help="Defaults to the current year.")
@click.option("--month", "-m", type=click.IntRange(1, 12), help="Defaults to this month.")
@click.pass_context
def totals(ctx, category, year, month):
    """Show monthly and yearly spending per finance category."""
    controller = _controller(ctx)
    year = year or today().year
    month = month or today().month
    categories = controller.finance_categories()
    if category != ALL_CATEGORIES:
        if category not in categories:
            print(f"[yellow]No finance entries in {escape(category)}.[/yellow]")
            sys.exit(1)
        categories = [category]

    table = Table(title="Finance totals")
    table.add_column("Category")
    table.add_column("Month", justify="right")
    table.add_column("Year", justify="right")
    for name in categories:
        summary = controller.finance_totals(name, year, month)
        table.add_row(
            escape(name),
            f"{summary.month_total:,.2f}",
            f"{summary.year_total:,.2f}",
        )
    table.caption = f"{summary.month:02d}/{summary.year}"
    Console().print(table)


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def import_cards(ctx, path):
    """Import flashcards from a .json or .csv file."""
    controller = _controller(ctx)
    count = controller.run_import(path)
    if count is None:
        print(f"[red]✘ {escape(controller.status_message)}[/red]")
        sys.exit(1)
    print(f"[green]✔ {controller.status_message}[/green]")
    if controller.save_error:
        print(f"[red]✘ Not saved:[/red] {controller.save_error}")
        sys.exit(1)


@cli.command()
@click.pass_context
def info(ctx):
    """Show where mynotes keeps its configuration and data."""
    env = ctx.obj["ENV"]
    controller = _controller(ctx)
    snap = controller.snapshot
    print(f"[blue]home:[/blue]      {env.home}")
    print(f"[blue]config:[/blue]    {env.config_path}")
    print(f"[blue]data file:[/blue] {controller.data_path}")
    for kind in RecordKind:
        print(f"  {kind.label:<10} {len(snap.collection(kind))}")
    print(f"  {'Notebooks':<10} {len(snap.notebooks)}")
    print(f"  {'Journal':<10} {len(snap.journal_entries)}")


if __name__ == "__main__":
    cli()
