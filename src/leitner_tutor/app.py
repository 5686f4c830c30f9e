"""Interactive CLI application."""
import string
from datetime import datetime

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from leitner_tutor.config import load_settings
from leitner_tutor.logging_setup import setup_logging
from leitner_tutor.material import MaterialSource, ids_for, load_and_reconcile
from leitner_tutor.notify import notifier_from_config
from leitner_tutor.progress import ProgressStore
from leitner_tutor.quiz import answer_index, answer_question, review_queue
from leitner_tutor.stats import progress_color, progress_label
from leitner_tutor.storage import KeyValueStore

console = Console()

EXIT_WORDS = ("q", "menu")
ACTIONS = {
    "!r": "reveal answer",
    "!s": "star / unstar",
    "!x": "reset progress",
    "!n": "skip",
}


class SessionExitRequested(Exception):
    """Raised when the learner leaves a session early."""


def session_prompt(prompt: str, **kwargs) -> str:
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def format_timestamp(ms: int) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def show_welcome():
    console.print(Panel(
        "[bold]Leitner Tutor[/bold]\n[dim]Spaced-repetition quiz practice[/dim]",
        title="Welcome", border_style="blue",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("chapters", "Chapter overview"),
        ("study", "Review due and new questions"),
        ("stats", "Detailed stats for one chapter"),
        ("sync", "Pick up progress saved elsewhere"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [cyan]{cmd:<14}[/cyan] {desc}")


def show_answer(item) -> None:
    if item.type == "short":
        answer = item.answer if not isinstance(item.answer, list) else " / ".join(map(str, item.answer))
    else:
        idx = answer_index(item.answer)
        options = item.options or []
        answer = f"{chr(65 + idx)}) {options[idx]}" if idx is not None and idx < len(options) else str(item.answer)
    console.print(Panel(str(answer), title="Answer", border_style="green"))
    if item.extra:
        console.print(f"[dim]{item.extra}[/dim]")


def run_study_session(store: ProgressStore, chapter_id: str, items: list) -> tuple[int, int]:
    """Walk ``items``. Returns (correct, answered). Raises SessionExitRequested on 'q'."""
    if not items:
        console.print("[yellow]Nothing due in this chapter right now![/yellow]")
        return 0, 0
    correct = answered = 0
    hint = "  ".join(f"[cyan]{k}[/cyan] {v}" for k, v in ACTIONS.items())
    console.print(f"\n[bold]Study[/bold] — {len(items)} questions   [dim]q to stop[/dim]\n")
    for i, item in enumerate(items, 1):
        state = store.get(chapter_id, item.id)
        star = " ⭐" if state is not None and state.highlight else ""
        console.print(Panel(item.question, title=f"Q{i}/{len(items)} #{item.id}{star}", border_style="cyan"))
        if item.type != "short":
            for n, option in enumerate(item.options or []):
                console.print(f"  [cyan]{chr(97 + n)})[/cyan] {option}")
        console.print(f"[dim]{hint}[/dim]")
        while True:
            raw = session_prompt("\nYour answer").strip()
            action = raw.lower()
            if action == "!s":
                state = store.toggle_highlight(chapter_id, item.id)
                console.print("[yellow]Starred.[/yellow]" if state.highlight else "[dim]Unstarred.[/dim]")
                continue
            if action == "!r":
                store.mark_revealed(chapter_id, item.id)
                show_answer(item)
                break
            if action == "!x":
                store.reset(chapter_id, item.id)
                console.print("[dim]Progress for this question cleared.[/dim]")
                break
            if action == "!n":
                break
            if item.type == "short":
                if not raw:
                    console.print("[red]Type an answer, or !r to reveal it.[/red]")
                    continue
                ok, state = answer_question(store, chapter_id, item, text=raw)
            else:
                n_options = len(item.options or [])
                if len(action) != 1 or action not in string.ascii_lowercase[:n_options]:
                    console.print("[red]Pick one of the listed options.[/red]")
                    continue
                ok, state = answer_question(store, chapter_id, item, chosen=ord(action) - 97)
            answered += 1
            if ok:
                correct += 1
                console.print(f"[green]Correct![/green] [dim]Box {state.box}, next review {format_timestamp(state.next)}[/dim]")
            else:
                console.print("[red]Incorrect.[/red] [dim]Back to box 0.[/dim]")
                show_answer(item)
            break
        console.print()
    if answered:
        console.print(f"[bold]Score: {correct}/{answered} ({correct/answered*100:.0f}%)[/bold]\n")
    return correct, answered


def choose_chapter(source: MaterialSource) -> str | None:
    chapters = source.fetch_chapters()
    if not chapters:
        console.print("[yellow]No chapters available.[/yellow]")
        return None
    for ch in chapters:
        console.print(f"  [cyan]{ch.id}[/cyan]) {ch.title}")
    return Prompt.ask("Select chapter", choices=[ch.id for ch in chapters])


def cmd_chapters(store: ProgressStore, source: MaterialSource):
    chapters = source.fetch_chapters()
    if not chapters:
        console.print("[yellow]No chapters available.[/yellow]")
        return
    table = Table(title="Chapters")
    table.add_column("Chapter", style="cyan")
    table.add_column("Done", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("Wrong", justify="right")
    table.add_column("Starred", justify="right")
    table.add_column("Last activity")
    table.add_column("Progress")
    for ch in chapters:
        items = load_and_reconcile(source, store, ch.id)
        if items is None:
            table.add_row(f"{ch.id}. {ch.title}", "-", "-", "-", "-", "-", "[dim]unavailable[/dim]")
            continue
        stats = store.stats_for(ch.id, ids_for(items), total=len(items))
        color = progress_color(stats.progress_pct)
        table.add_row(
            f"{ch.id}. {ch.title}",
            f"{stats.done}/{len(items)}",
            str(stats.due),
            str(stats.wrong),
            str(stats.star),
            format_timestamp(stats.last),
            f"[{color}]{stats.progress_pct}% {progress_label(stats.progress_pct)}[/{color}]",
        )
    console.print(table)


def cmd_study(store: ProgressStore, source: MaterialSource):
    chapter_id = choose_chapter(source)
    if chapter_id is None:
        return
    items = load_and_reconcile(source, store, chapter_id)
    if items is None:
        console.print(f"[red]Material for chapter {chapter_id} is unavailable.[/red]")
        return
    try:
        run_study_session(store, chapter_id, review_queue(store, chapter_id, items))
    except SessionExitRequested:
        console.print("[dim]Session stopped. Progress so far is saved.[/dim]")


def cmd_stats(store: ProgressStore, source: MaterialSource):
    chapter_id = choose_chapter(source)
    if chapter_id is None:
        return
    items = load_and_reconcile(source, store, chapter_id)
    if items is None:
        console.print(f"[red]Material for chapter {chapter_id} is unavailable.[/red]")
        return
    stats = store.stats_for(chapter_id, ids_for(items), total=len(items))
    color = progress_color(stats.progress_pct)
    bar_filled = int(stats.progress_pct / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(
        f"Progress: [bold]{stats.progress_pct}%[/bold] {bar}\n"
        f"Done: [bold]{stats.done}[/bold]  |  Due: [bold]{stats.due}[/bold]  |  "
        f"Wrong: [bold]{stats.wrong}[/bold]  |  Starred: [bold]{stats.star}[/bold]\n"
        f"Last activity: {format_timestamp(stats.last)}",
        title=f"Chapter {chapter_id}", border_style="blue",
    ))
    entries = store.entries_for(chapter_id, ids_for(items))
    if not entries:
        return
    table = Table(title="Question states")
    table.add_column("Question", style="cyan")
    table.add_column("Box", justify="right")
    table.add_column("Next review")
    table.add_column("Attempts", justify="right")
    table.add_column("Last")
    table.add_column("Star")
    for qid, state in sorted(entries, key=lambda e: e[1].next):
        if state.log:
            last = "[green]✓[/green]" if state.log[-1].ok else "[red]✗[/red]"
        else:
            last = "[dim]revealed[/dim]" if state.revealed else ""
        table.add_row(
            qid, str(state.box), format_timestamp(state.next), str(len(state.log)),
            last, "⭐" if state.highlight else "",
        )
    console.print(table)


def cmd_sync(store: ProgressStore):
    if store.sync():
        console.print("[green]Loaded progress saved by another session.[/green]")
    else:
        console.print("[dim]Already up to date.[/dim]")


def main():
    settings = load_settings()
    setup_logging(settings.log_level)
    kv = KeyValueStore(settings.db_path)
    store = ProgressStore(kv, notifier=notifier_from_config(settings))
    source = MaterialSource(
        settings.material, kv, app_version=settings.app_version, timeout=settings.fetch_timeout,
    )

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="study").strip().lower()
        try:
            if choice != "sync":
                store.sync()
            if choice == "chapters":
                cmd_chapters(store, source)
            elif choice == "study":
                cmd_study(store, source)
            elif choice == "stats":
                cmd_stats(store, source)
            elif choice == "sync":
                cmd_sync(store)
            elif choice in ("quit", "exit", "q"):
                console.print("[dim]See you at the next review![/dim]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except KeyboardInterrupt:
            console.print("\n[dim]Use 'quit' to exit.[/dim]")
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")

    store.close()


if __name__ == "__main__":
    main()
