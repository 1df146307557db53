"""anki-tutor CLI: quiz, review, card generation and configuration commands."""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from ankitutor.application.config import QuizSettings, resolve_config
from ankitutor.application.note_loader import ReviewSort
from ankitutor.domain.constants import AVAILABLE_MODELS
from ankitutor.domain.errors import AnkiConnectionError, AnkiTutorError, AuthError

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="anki-tutor: practice your Anki cards with an LLM tutor.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage anki-tutor configuration.", no_args_is_help=True)
app.add_typer(config_app, name="config")

prompts_app = typer.Typer(help="Validate and import prompts files.", no_args_is_help=True)
app.add_typer(prompts_app, name="prompts")


def humanize_error(exc: AnkiTutorError) -> str:
    """Message for the terminal, with a pointer to the relevant setting."""
    if isinstance(exc, AnkiConnectionError):
        return f"{exc}\nSet the URL with: anki-tutor config set ankiConnectUrl <url>"
    if isinstance(exc, AuthError):
        return f"{exc}\nSet the key with: anki-tutor config set anthropicApiKey <key>"
    return str(exc)


def _fail(exc: AnkiTutorError) -> None:
    typer.secho(humanize_error(exc), fg="red", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 0,
    settings_file: Annotated[
        Path | None, typer.Option(help="Settings JSON file to read and write.")
    ] = None,
):
    """Global settings for anki-tutor."""
    level = {0: logging.WARNING, 1: logging.INFO}.get(verbose, logging.DEBUG)
    logging.getLogger().setLevel(level)
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    ctx.ensure_object(dict)
    ctx.obj["config"] = resolve_config({"settings_file": settings_file})


def _config(ctx: typer.Context):
    return ctx.obj["config"]


def _load_settings(ctx: typer.Context) -> QuizSettings:
    from ankitutor.application.factory import load_settings

    try:
        return load_settings(_config(ctx))
    except AnkiTutorError as e:
        _fail(e)


# ---------------------------------------------------------------------------
# Quiz
# ---------------------------------------------------------------------------

QUIT_COMMANDS = {":q", ":quit", ":exit"}


@app.command()
def quiz(ctx: typer.Context):
    """[bold green]Practice[/bold green] with LLM-generated questions from your cards.

    Type your answer and press Enter. Commands: ':skip' for another question,
    ':reload' to reload cards from Anki, ':q' to quit. With showCardsReference enabled,
    ':cards' lists the loaded cards.
    """
    from ankitutor.application.factory import create_quiz_session, load_settings
    from ankitutor.application.quiz.session import SessionState
    from ankitutor.application.utils.text import resolve_text_direction

    config = _config(ctx)

    async def ask(label: str) -> str:
        return await asyncio.to_thread(typer.prompt, label, default="", show_default=False)

    async def run():
        session = create_quiz_session(config)
        typer.echo("Generating the first question...")
        await session.advance()

        while True:
            settings = load_settings(config)
            labels = settings.prompts_config.ui_labels
            if session.error:
                typer.secho(session.error, fg="red", err=True)
                session.error = None

            if session.state == SessionState.AWAITING_ANSWER:
                text = session.current_prompt or session.question_text or ""
                direction = resolve_text_direction(text, settings.text_direction)
                typer.secho(f"\n{text}", bold=True)
                if direction == "rtl":
                    typer.secho("(right-to-left text)", dim=True)
                if labels.tip:
                    typer.secho(labels.tip, dim=True)
                reply = await ask(labels.answer_label)
                command = reply.strip().lower()
                if command in QUIT_COMMANDS:
                    break
                if command == ":skip":
                    await session.skip()
                elif command == ":cards" and settings.show_cards_reference:
                    for item in session.vocabulary:
                        typer.echo(f"  {item.front} | {item.back}")
                elif command == ":reload":
                    if await session.reload_vocabulary():
                        typer.echo(f"{len(session.vocabulary)} cards loaded")
                else:
                    await session.submit_answer(reply)
            elif session.state == SessionState.ANSWERED:
                verdict = session.last_verdict.value if session.last_verdict else ""
                typer.secho(verdict, fg="green" if verdict == "PASS" else "red", bold=True)
                if session.feedback:
                    typer.echo(session.feedback)
                reply = await ask("Enter for the next question, :q to quit")
                if reply.strip().lower() in QUIT_COMMANDS:
                    break
                await session.advance()
            else:
                reply = await ask("Enter to retry, :q to quit")
                if reply.strip().lower() in QUIT_COMMANDS:
                    break
                await session.advance()

    try:
        asyncio.run(run())
    except AnkiTutorError as e:
        _fail(e)


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------

_GRADE_FG = {
    "New": "blue",
    "F": "red",
    "D": "red",
    "C": "yellow",
    "B": "yellow",
    "A": "green",
    "S": "green",
}


@app.command()
def review(
    ctx: typer.Context,
    deck: Annotated[str | None, typer.Option(help="Deck filter override.")] = None,
    limit: Annotated[int | None, typer.Option(help="Maximum number of notes.")] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
    details: Annotated[bool, typer.Option("--details", help="Show per-card stats.")] = False,
    sort: Annotated[
        ReviewSort, typer.Option(help="Order: random, front, back, bad-first or good-first.")
    ] = ReviewSort.RANDOM,
):
    """Show a proficiency grade (New, F..S) for a random sample of notes."""
    from ankitutor.application.factory import get_anki_bridge
    from ankitutor.application.note_loader import NoteLoader, sort_review_notes
    from ankitutor.application.utils.text import strip_html

    settings = _load_settings(ctx)
    max_count = limit or settings.max_words
    deck_filter = settings.deck_filter if deck is None else deck

    async def run():
        bridge = get_anki_bridge(settings)
        try:
            return await NoteLoader(bridge).load_review_notes(max_count, deck_filter)
        finally:
            await bridge.close()

    try:
        notes = asyncio.run(run())
    except AnkiTutorError as e:
        _fail(e)
    notes = sort_review_notes(notes, sort)

    if json_output:
        typer.echo(
            json.dumps(
                [
                    {
                        "noteId": n.note_id,
                        "front": n.front,
                        "frontFieldName": n.front_field_name,
                        "back": n.back,
                        "backFieldName": n.back_field_name,
                        "tags": sorted(n.tags),
                        "stats": {
                            "grade": n.stats.grade.value,
                            "color": n.stats.color,
                            "summary": n.stats.summary,
                            "details": n.stats.details,
                        },
                    }
                    for n in notes
                ],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not notes:
        typer.secho("No notes found.", fg="yellow")
        return

    for n in notes:
        typer.secho(f"[{n.stats.grade.value:>3}]", fg=_GRADE_FG.get(n.stats.grade.value), nl=False)
        typer.echo(f" {n.note_id}  {strip_html(n.front)} | {strip_html(n.back)}  ({n.stats.summary})")
        if details:
            for line in n.stats.details.splitlines():
                typer.echo(f"        {line}")


@app.command()
def edit(
    ctx: typer.Context,
    note_id: Annotated[int, typer.Argument(help="Anki note id.")],
    field: Annotated[str, typer.Option("--field", "-f", help="Field name, e.g. Front.")],
    value: Annotated[str, typer.Option("--value", help="New field content.")],
):
    """Write a new value into one field of a note."""
    from ankitutor.application.factory import get_anki_bridge
    from ankitutor.application.note_loader import NoteLoader

    settings = _load_settings(ctx)

    async def run():
        bridge = get_anki_bridge(settings)
        try:
            await NoteLoader(bridge).save_field(note_id, {field: value})
        finally:
            await bridge.close()

    try:
        asyncio.run(run())
    except AnkiTutorError as e:
        _fail(e)
    typer.secho(f"Updated '{field}' of note {note_id}.", fg="green")


@app.command()
def delete(
    ctx: typer.Context,
    note_id: Annotated[int, typer.Argument(help="Anki note id.")],
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation for destructive actions.")
    ] = False,
):
    """Delete a note (and all of its cards) from Anki."""
    from ankitutor.application.factory import get_anki_bridge
    from ankitutor.application.note_loader import NoteLoader

    settings = _load_settings(ctx)
    if not force and not typer.confirm(f"Delete note {note_id} and all its cards?"):
        raise typer.Abort()

    async def run():
        bridge = get_anki_bridge(settings)
        try:
            await NoteLoader(bridge).delete_note(note_id)
        finally:
            await bridge.close()

    try:
        asyncio.run(run())
    except AnkiTutorError as e:
        _fail(e)
    typer.secho(f"Deleted note {note_id}.", fg="green")


@app.command()
def status(ctx: typer.Context):
    """Check that AnkiConnect is reachable at the configured URL."""
    from ankitutor.application.factory import get_anki_bridge

    settings = _load_settings(ctx)

    async def run():
        bridge = get_anki_bridge(settings)
        try:
            return await bridge.is_responsive()
        finally:
            await bridge.close()

    if asyncio.run(run()):
        typer.secho(f"AnkiConnect is reachable at {settings.anki_connect_url}", fg="green")
        return
    _fail(AnkiConnectionError(settings.anki_connect_url))


# ---------------------------------------------------------------------------
# Card generation
# ---------------------------------------------------------------------------


@app.command()
def generate(
    ctx: typer.Context,
    prompt: Annotated[
        str,
        typer.Argument(help="What kind of cards to generate."),
    ] = (
        "Given this set of Anki cards, propose 50 more cards that complement the existing "
        "one in terms of content, difficulty level, etc."
    ),
    share_cards: Annotated[
        bool,
        typer.Option("--share-cards/--no-share-cards", help="Send existing cards as context."),
    ] = True,
    save: Annotated[bool, typer.Option("--save", help="Add the generated cards to Anki.")] = False,
    deck: Annotated[str | None, typer.Option(help="Target deck for saved cards.")] = None,
    model: Annotated[str | None, typer.Option(help="LLM model id override.")] = None,
):
    """Ask the LLM for new cards and optionally save them to Anki."""
    from ankitutor.application.card_batch import CardBatchSaver
    from ankitutor.application.factory import get_anki_bridge
    from ankitutor.application.note_loader import NoteLoader
    from ankitutor.application.quiz.service import QuizService

    settings = _load_settings(ctx)
    if model:
        settings = settings.model_copy(update={"model": model})

    async def run():
        service = QuizService()
        service.check_credentials(settings)
        bridge = get_anki_bridge(settings)
        try:
            context = []
            if share_cards:
                context = await NoteLoader(bridge).load_vocabulary(
                    settings.max_words, settings.deck_filter
                )
            cards = await service.generate_cards(prompt, context, settings)
            if save:
                saver = CardBatchSaver(bridge, deck_name=deck or settings.deck_filter)
                await saver.save_all(cards)
            return cards
        finally:
            await bridge.close()

    try:
        cards = asyncio.run(run())
    except AnkiTutorError as e:
        _fail(e)

    for i, card in enumerate(cards, start=1):
        status = ""
        if save:
            status = " [saved]" if card.saved else f" [failed: {card.error}]"
        typer.echo(f"{i:>3}. {card.front} | {card.back}{status}")

    if save and any(not card.saved for card in cards):
        raise typer.Exit(1)


# ---------------------------------------------------------------------------
# Prompts subgroup
# ---------------------------------------------------------------------------


@prompts_app.command("check")
def prompts_check(path: Annotated[Path, typer.Argument(help="JSON or YAML prompts file.")]):
    """Validate a prompts file without activating it."""
    from ankitutor.application.prompts import load_prompts_file

    try:
        config = load_prompts_file(path)
    except AnkiTutorError as e:
        _fail(e)
    typer.secho(f"Valid prompts: {config.name}", fg="green")


@prompts_app.command("import")
def prompts_import(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="JSON or YAML prompts file.")],
):
    """Validate a prompts file and make it the active prompts configuration."""
    from ankitutor.application.prompts import load_prompts_file
    from ankitutor.application.settings_store import SettingsStore

    store = SettingsStore(_config(ctx).settings_file)
    try:
        prompts = load_prompts_file(path)
        settings = store.load()
    except AnkiTutorError as e:
        _fail(e)
    store.save(settings.model_copy(update={"prompts_config": prompts}))
    typer.secho(f"Successfully loaded prompts: {prompts.name}", fg="green")


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(
    ctx: typer.Context,
    reveal: Annotated[bool, typer.Option("--reveal", help="Show the API key.")] = False,
):
    """Display the effective quiz settings."""
    from ankitutor.application.factory import load_settings

    try:
        blob = load_settings(_config(ctx)).to_blob()
    except AnkiTutorError as e:
        _fail(e)
    if blob.get("anthropicApiKey") and not reveal:
        blob["anthropicApiKey"] = "********"
    typer.echo(json.dumps(blob, indent=2, ensure_ascii=False))


@config_app.command("path")
def config_path(ctx: typer.Context):
    """Print the location of the settings file."""
    typer.echo(str(_config(ctx).settings_file))


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Setting name, e.g. deckFilter or max_words.")],
    value: Annotated[str, typer.Argument(help="New value.")],
):
    """Change one quiz setting and save the settings file."""
    from ankitutor.application.settings_store import SettingsStore

    store = SettingsStore(_config(ctx).settings_file)
    try:
        settings = store.load()
    except AnkiTutorError as e:
        _fail(e)

    fields = QuizSettings.model_fields
    name = next(
        (n for n, f in fields.items() if key in (n, f.alias)),
        None,
    )
    if name is None or name == "prompts_config":
        typer.secho(f"Unknown setting '{key}'.", fg="red", err=True)
        raise typer.Exit(2)

    blob = settings.to_blob()
    blob[fields[name].alias or name] = value
    try:
        updated = QuizSettings.model_validate(blob)
    except ValidationError as e:
        typer.secho(f"Invalid value for '{key}': {e.errors()[0]['msg']}", fg="red", err=True)
        raise typer.Exit(2) from e
    store.save(updated)
    typer.secho(f"Set {key}.", fg="green")
    if name == "model" and updated.model not in AVAILABLE_MODELS:
        typer.secho(
            f"Note: '{updated.model}' is not one of {', '.join(AVAILABLE_MODELS)}.",
            fg="yellow",
            err=True,
        )


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    host: Annotated[str, typer.Option(help="Bind address.")] = "127.0.0.1",
    port: Annotated[int, typer.Option(help="Port.")] = 8777,
    reload: Annotated[bool, typer.Option("--reload", help="Auto-reload on code change.")] = False,
):
    """Run the HTTP API used by browser front-ends."""
    import uvicorn

    uvicorn.run("ankitutor.server:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
