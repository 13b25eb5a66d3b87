"""Command-line workflow: load, analyze, rewrite, review and publish a course."""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import click

from config import AppConfig, ConfigError, get_config, get_session_file_path
from models import ContentItem, ItemKind, ItemStatus, SampleCounts, StyleFlags
from services.canvas import CanvasClient
from services.llm import AzureOpenAIClient
from services.model_course import ModelCourseAnalyzer
from services.publisher import CoursePublisher
from services.renderer import ReviewReportRenderer
from services.resilience import ExternalServiceError
from services.rewriter import BatchRewriter, RewriteInputError
from services.session import RewriteSession, SessionFormatError, SessionStore
from services.structure import audit_structure
from services.styling import score_styled
from services.validator import detect_style_flags, validate_rewrite

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

_KIND_CHOICE = click.Choice([kind.value for kind in ItemKind])
_STATUS_CHOICE = click.Choice([status.value for status in ItemStatus])


@dataclass
class Runtime:
    """Collaborators shared by the networked commands."""

    config: AppConfig
    canvas: CanvasClient
    llm: AzureOpenAIClient


def _build_runtime() -> Runtime:
    config = get_config()
    return Runtime(config=config, canvas=CanvasClient(config), llm=AzureOpenAIClient(config))


def _runtime(ctx: click.Context) -> Runtime:
    if ctx.obj.get("runtime") is None:
        ctx.obj["runtime"] = _build_runtime()
    return ctx.obj["runtime"]


def _store(ctx: click.Context) -> SessionStore:
    session_file = ctx.obj.get("session_file")
    if session_file is None:
        runtime = ctx.obj.get("runtime")
        session_file = (
            runtime.config.session_file_path if runtime is not None else get_session_file_path()
        )
    return SessionStore(session_file)


def _fail_cleanly(func: F) -> F:
    """Turn expected workflow errors into a one-line message and exit code 1."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (ConfigError, SessionFormatError, RewriteInputError) as exc:
            raise click.ClickException(str(exc)) from exc
        except ExternalServiceError as exc:
            raise click.ClickException(f"External service error: {exc}") from exc
        except KeyError as exc:
            raise click.ClickException(str(exc.args[0]) if exc.args else "Unknown item") from exc
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc

    return wrapper  # type: ignore[return-value]


def _require_target(session: RewriteSession) -> str:
    if not session.target_course_id:
        raise click.ClickException("No target course loaded; run `load` first")
    return session.target_course_id


def _select(
    session: RewriteSession,
    kinds: tuple[str, ...],
    statuses: tuple[str, ...],
    search: str,
) -> list[ContentItem]:
    return session.filter_items(
        kinds=[ItemKind(kind) for kind in kinds],
        statuses=[ItemStatus(status) for status in statuses],
        search=search,
    )


def _flags_for(model_file: Path | None, require_embed_wrapper: bool) -> StyleFlags:
    if model_file is not None:
        flags = detect_style_flags(model_file.read_text(encoding="utf-8"))
        if require_embed_wrapper and not flags.require_embed_wrapper:
            return StyleFlags(require_embed_wrapper=True)
        return flags
    return StyleFlags(require_embed_wrapper=require_embed_wrapper)


def _filter_options(func: F) -> F:
    func = click.option("--search", default="", help="Case-insensitive title filter")(func)
    func = click.option("--status", "statuses", multiple=True, type=_STATUS_CHOICE)(func)
    func = click.option("--kind", "kinds", multiple=True, type=_KIND_CHOICE)(func)
    return func


@click.group()
@click.option(
    "--session-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Session JSON file (default: SESSION_FILE_PATH)",
)
@click.option("--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, session_file: Path | None, verbose: bool) -> None:
    """Rewrite Canvas course content to match a model course's DesignTools style."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    if session_file is not None:
        ctx.obj["session_file"] = session_file


@cli.command()
@click.argument("course_id")
@click.option("--pages/--no-pages", default=True)
@click.option("--assignments/--no-assignments", default=True)
@click.option("--discussions/--no-discussions", default=True)
@click.pass_context
@_fail_cleanly
def load(ctx: click.Context, course_id: str, pages: bool, assignments: bool, discussions: bool) -> None:
    """Load the target course into a fresh session."""
    store = _store(ctx)
    session = store.load()
    content = _runtime(ctx).canvas.load_items(
        course_id,
        include_pages=pages,
        include_assignments=assignments,
        include_discussions=discussions,
    )
    session.load_target(course_id, content.course_name, content.items)
    store.save(session)
    click.echo(f"Loaded {len(content.items)} items from {content.course_name}")


@cli.command("analyze-model")
@click.argument("course_id")
@click.option("--pages", default=3, show_default=True, type=click.IntRange(min=0))
@click.option("--assignments", default=2, show_default=True, type=click.IntRange(min=0))
@click.option("--discussions", default=2, show_default=True, type=click.IntRange(min=0))
@click.pass_context
@_fail_cleanly
def analyze_model(
    ctx: click.Context, course_id: str, pages: int, assignments: int, discussions: int
) -> None:
    """Sample a model course and generate its style guide."""
    store = _store(ctx)
    session = store.load()
    runtime = _runtime(ctx)
    analyzer = ModelCourseAnalyzer(runtime.canvas, runtime.llm)
    profile = analyzer.analyze(
        course_id, SampleCounts(pages=pages, assignments=assignments, discussions=discussions)
    )
    session.model_profile = profile
    store.save(session)
    click.echo(f"Style guide generated from {profile.course_name}")
    click.echo(f"Requires dp-embed-wrapper: {'yes' if profile.flags.require_embed_wrapper else 'no'}")


@cli.command()
@click.option("--global", "global_text", default=None, help="Instructions applied to every item")
@click.option("--item", "item_key", default=None, help="Item key such as page:syllabus")
@click.option("--text", default=None, help="Instructions for --item (empty clears)")
@click.pass_context
@_fail_cleanly
def instructions(
    ctx: click.Context, global_text: str | None, item_key: str | None, text: str | None
) -> None:
    """Set global or per-item rewrite instructions."""
    store = _store(ctx)
    session = store.load()
    if global_text is not None:
        session.global_instructions = global_text
    if item_key is not None:
        session.set_item_instructions(item_key, text or "")
    store.save(session)
    click.echo(f"Global instructions: {session.global_instructions or '(none)'}")
    click.echo(f"Item instructions: {len(session.item_instructions)}")


@cli.command()
@click.option("--preserve-existing/--full-transform", default=None)
@click.option("--skip-styled/--no-skip-styled", default=None)
@click.option("--item-instructions/--no-item-instructions", default=None)
@click.pass_context
@_fail_cleanly
def options(
    ctx: click.Context,
    preserve_existing: bool | None,
    skip_styled: bool | None,
    item_instructions: bool | None,
) -> None:
    """Show or change rewrite options."""
    store = _store(ctx)
    session = store.load()
    if preserve_existing is not None:
        session.options.preserve_existing_design_tools = preserve_existing
    if skip_styled is not None:
        session.options.skip_already_styled = skip_styled
    if item_instructions is not None:
        session.options.use_item_instructions = item_instructions
    store.save(session)
    click.echo(f"preserve_existing_design_tools={session.options.preserve_existing_design_tools}")
    click.echo(f"skip_already_styled={session.options.skip_already_styled}")
    click.echo(f"use_item_instructions={session.options.use_item_instructions}")


@cli.command("list")
@_filter_options
@click.pass_context
@_fail_cleanly
def list_items(ctx: click.Context, kinds: tuple[str, ...], statuses: tuple[str, ...], search: str) -> None:
    """List session items with their status."""
    session = _store(ctx).load()
    for item in _select(session, kinds, statuses, search):
        suffix = f"  [{item.last_error}]" if item.last_error else ""
        click.echo(f"{item.status.value:<10} {item.key:<32} {item.title}{suffix}")
    counts = ", ".join(f"{status.value}={count}" for status, count in session.item_counts().items())
    click.echo(counts)


@cli.command()
@_filter_options
@click.option("--item", "item_keys", multiple=True, help="Rewrite only these item keys")
@click.pass_context
@_fail_cleanly
def rewrite(
    ctx: click.Context,
    kinds: tuple[str, ...],
    statuses: tuple[str, ...],
    search: str,
    item_keys: tuple[str, ...],
) -> None:
    """Rewrite the selected items against the model course style guide."""
    store = _store(ctx)
    session = store.load()
    _require_target(session)
    if item_keys:
        items = [session.get_item(key) for key in item_keys]
    else:
        items = _select(session, kinds, statuses, search)

    runtime = _runtime(ctx)
    report = BatchRewriter(runtime.config, runtime.llm).run(session, items)
    store.save(session)
    click.echo(
        f"clean={report.clean} violated={report.violated} "
        f"failed={report.failed} skipped={report.skipped} "
        f"in {report.duration_seconds:.1f}s"
    )


@cli.command()
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
@_fail_cleanly
def approve(ctx: click.Context, keys: tuple[str, ...]) -> None:
    """Approve rewritten items by key."""
    store = _store(ctx)
    session = store.load()
    for key in keys:
        session.approve(key)
    store.save(session)
    click.echo(f"Approved {len(keys)} item(s)")


@cli.command()
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
@_fail_cleanly
def unapprove(ctx: click.Context, keys: tuple[str, ...]) -> None:
    """Return approved items to the rewritten state."""
    store = _store(ctx)
    session = store.load()
    for key in keys:
        session.unapprove(key)
    store.save(session)
    click.echo(f"Unapproved {len(keys)} item(s)")


@cli.command("approve-all")
@_filter_options
@click.pass_context
@_fail_cleanly
def approve_all(ctx: click.Context, kinds: tuple[str, ...], statuses: tuple[str, ...], search: str) -> None:
    """Approve every matching item that was rewritten without errors."""
    store = _store(ctx)
    session = store.load()
    approved = session.approve_all(_select(session, kinds, statuses, search))
    store.save(session)
    click.echo(f"Approved {approved} item(s)")


@cli.command()
@_filter_options
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), required=True)
@click.option("--template", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None)
@click.pass_context
@_fail_cleanly
def report(
    ctx: click.Context,
    kinds: tuple[str, ...],
    statuses: tuple[str, ...],
    search: str,
    output: Path,
    template: Path | None,
) -> None:
    """Write a side-by-side HTML review report."""
    session = _store(ctx).load()
    template_path = template or _runtime(ctx).config.review_template_path
    html = ReviewReportRenderer(template_path).render(
        session, _select(session, kinds, statuses, search)
    )
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(html, encoding="utf-8")
    click.echo(f"Wrote {output}")


@cli.command()
@click.option("--live", is_flag=True, help="Write to Canvas even when ENABLE_DRY_RUN is set")
@click.pass_context
@_fail_cleanly
def publish(ctx: click.Context, live: bool) -> None:
    """Publish approved items to the target course."""
    session = _store(ctx).load()
    course_id = _require_target(session)
    runtime = _runtime(ctx)
    publisher = CoursePublisher(runtime.config, runtime.canvas)
    result = publisher.publish(
        course_id,
        session.publishable_items(),
        dry_run=False if live else None,
    )
    for entry in result.results:
        outcome = "ok" if entry.success else f"FAILED {entry.error}"
        click.echo(f"{entry.kind.value}:{entry.identifier} {outcome}")
    mode = "dry run" if result.dry_run else "live"
    click.echo(f"{mode}: {result.successful}/{result.total} succeeded, {result.failed} failed")
    if result.failed:
        ctx.exit(1)


@cli.command()
@click.argument("original", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--model-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Model-course HTML used to detect style flags",
)
@click.option("--require-embed-wrapper", is_flag=True)
@click.option("--structural", is_flag=True, help="Also print DOM-based advisory notes")
@click.pass_context
def validate(
    ctx: click.Context,
    original: Path,
    candidate: Path,
    model_file: Path | None,
    require_embed_wrapper: bool,
    structural: bool,
) -> None:
    """Check a candidate rewrite against its original; exit 1 on violations."""
    flags = _flags_for(model_file, require_embed_wrapper)
    candidate_html = candidate.read_text(encoding="utf-8")
    violations = validate_rewrite(original.read_text(encoding="utf-8"), candidate_html, flags)
    for violation in violations:
        click.echo(f"VIOLATION: {violation}")
    if structural:
        for note in audit_structure(candidate_html, flags):
            click.echo(f"NOTE: {note}")
    if violations:
        ctx.exit(1)
    click.echo("OK")


@cli.command()
@click.argument("html_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--model-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
)
@click.option("--require-embed-wrapper", is_flag=True)
def score(html_file: Path, model_file: Path | None, require_embed_wrapper: bool) -> None:
    """Estimate whether HTML already matches the DesignTools style."""
    result = score_styled(
        html_file.read_text(encoding="utf-8"),
        _flags_for(model_file, require_embed_wrapper),
    )
    click.echo(f"styled={'yes' if result.is_styled else 'no'} confidence={result.confidence:.2f}")
    for reason in result.reasons:
        click.echo(f"- {reason}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
