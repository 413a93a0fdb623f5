import asyncio
import logging
import click
from pathlib import Path
from rich.console import Console
from rich.logging import RichHandler

from guardian.config import settings
from guardian.models import ChatMessage
from guardian.prompt_builder import DEFAULT_GUIDELINES
from guardian.providers import get_provider
from guardian.lint.analyzer import analyze
from guardian.lint.patterns import DEFAULT_LIBRARY
from guardian.lint.rules import load_pattern_library, dump_pattern_library, load_guidelines
from guardian.pipelines.guard import GuardianSink, StoryGuardian
from guardian.pipelines.report import summarize

console = Console()

LEVEL_STYLES = {
    "error": "red",
    "warning": "yellow",
    "info": "blue",
    "success": "green",
}


class ConsoleSink(GuardianSink):
    """Prints notifications and writes corrected messages to the outputs directory."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir

    def replace_message(self, message_id: str, text: str) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        out_path = self.output_dir / f"{message_id}_corrected.md"
        with open(out_path, "w", encoding="utf-8") as f:
            f.write(text)
        console.print(f"[green]✓[/green] Corrected: {out_path}")

    def notify(self, text: str, level: str) -> None:
        style = LEVEL_STYLES.get(level, "white")
        console.print(f"[{style}]{level.upper()}[/{style}] Story Guardian", highlight=False)
        console.print(text, markup=False, highlight=False)


def create_workspace(workspace_root: Path):
    """Initialize workspace with starter files."""
    workspace_root.mkdir(parents=True, exist_ok=True)
    (workspace_root / "outputs").mkdir(exist_ok=True)

    patterns_path = workspace_root / "patterns.yaml"
    if not patterns_path.exists():
        dump_pattern_library(DEFAULT_LIBRARY, patterns_path)
        console.print(f"[green]✓[/green] Created {patterns_path}")

    guidelines_path = workspace_root / "guidelines.md"
    if not guidelines_path.exists():
        with open(guidelines_path, "w", encoding="utf-8") as f:
            f.write(DEFAULT_GUIDELINES + "\n")
        console.print(f"[green]✓[/green] Created {guidelines_path}")

    console.print(f"[green]✓[/green] Workspace ready: {workspace_root}")


def _run_settings(strict: bool):
    if strict:
        return settings.model_copy(update={"strict_mode": True})
    return settings


@click.group()
@click.option("--verbose", is_flag=True, help="Show debug logging")
def cli(verbose):
    """Story Guardian: validate and correct LLM-written prose against storytelling guidelines."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


@cli.command()
def init():
    """Initialize workspace."""
    try:
        create_workspace(settings.workspace_root)
        console.print("[green]Initialization complete.[/green]")
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


@cli.command()
@click.argument("text_file", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Flag endings without concrete action/dialogue/sensory detail")
def check(text_file, strict):
    """Check a text file for guideline violations."""
    try:
        with open(text_file, "r", encoding="utf-8") as f:
            text = f.read()

        run_settings = _run_settings(strict)
        library = load_pattern_library(run_settings.workspace_root / "patterns.yaml")
        analysis = analyze(text, run_settings.rule_config(), library)
        report = summarize(analysis.violations)

        if report is None:
            console.print(f"[green]No violations found.[/green] ({analysis.word_count} words)")
            return

        for severity, bucket in (("high", report.high), ("medium", report.medium), ("low", report.low)):
            color = {"high": "red", "medium": "yellow", "low": "blue"}[severity]
            for v in bucket:
                console.print(f"  [{color}]{severity.upper()}[/{color}] {v.kind}: {v.message}")
                if v.matched_text:
                    console.print(f"    > {v.matched_text[:120]}", markup=False, highlight=False)

        counts = report.counts
        console.print(
            f"\n[yellow]Total violations:[/yellow] {report.total} "
            f"({counts['high']} high, {counts['medium']} medium, {counts['low']} low)"
        )
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


@cli.command()
@click.argument("text_file", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Flag endings without concrete action/dialogue/sensory detail")
@click.option("--offline", is_flag=True, help="Skip the rewrite backend and apply local fixes only")
@click.option("--show-clean", is_flag=True, help="Notify when the text passes all checks")
def correct(text_file, strict, offline, show_clean):
    """Validate a text file and write a corrected copy."""
    try:
        text_path = Path(text_file)
        with open(text_path, "r", encoding="utf-8") as f:
            text = f.read()

        run_settings = _run_settings(strict)
        if show_clean:
            run_settings = run_settings.model_copy(update={"show_no_violations": True})

        backend = None
        if not offline:
            try:
                run_settings.validate_provider()
            except ValueError as e:
                console.print(f"[red]Error:[/red] {e}")
                console.print("[yellow]Tip:[/yellow] Use --offline to apply local fixes without a backend.")
                raise click.exceptions.Exit(1)
            backend = get_provider(
                run_settings.provider,
                run_settings.active_api_key,
                run_settings.model_name,
            )

        workspace = run_settings.workspace_root
        sink = ConsoleSink(workspace / "outputs")
        guardian = StoryGuardian(
            backend,
            sink,
            max_tokens=run_settings.max_tokens,
            timeout=run_settings.rewrite_timeout,
            guidelines=load_guidelines(workspace / "guidelines.md"),
            library=load_pattern_library(workspace / "patterns.yaml"),
        )

        console.print("[blue]Validating...[/blue]")
        message = ChatMessage(message_id=text_path.stem, text=text)
        outcome = asyncio.run(guardian.handle_message(message, run_settings))

        if outcome.skipped:
            console.print("[yellow]Story Guardian is disabled.[/yellow]")
        elif outcome.analysis.has_violations and not outcome.correction_applied:
            console.print("[yellow]No automatic correction applied.[/yellow]")
    except click.exceptions.Exit:
        raise
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


@cli.command()
def patterns():
    """Show the active pattern library."""
    try:
        library = load_pattern_library(settings.workspace_root / "patterns.yaml")

        console.print("[bold]Forbidden endings:[/bold]")
        for p in library.forbidden_endings:
            console.print(f"  {p.name}: {p.regex}", markup=False, highlight=False)

        console.print("[bold]Emotion labels:[/bold]")
        for p in library.emotion_labels:
            console.print(f"  {p.name}: {p.regex}", markup=False, highlight=False)

        console.print("[bold]Good-ending keywords:[/bold]")
        for category, keywords in library.good_ending_keywords.items():
            console.print(f"  {category}: {', '.join(keywords)}", markup=False, highlight=False)

        console.print("[bold]Dialogue formality:[/bold]")
        console.print(f"  {library.dialogue_formality.name}: {library.dialogue_formality.regex}", markup=False, highlight=False)
        console.print(f"  exempt if: {library.formality_exemption.regex}", markup=False, highlight=False)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise click.exceptions.Exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
