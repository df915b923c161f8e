# mcqexplain/cli.py
"""
mcqexplain CLI -- Click commands with a rich terminal UI.

Provides the ``mcqexplain`` console entry-point declared in pyproject.toml as
``mcqexplain.cli:cli``:

- explain:  ask the configured model to explain a question file
- salvage:  turn a stored model reply into a validated explanation
- prompt:   print the system/user text the first attempt would send
- config:   ExplainConfig display
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Optional

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape as _esc

from . import __version__
from . import cli_theme as theme
from .config import ExplainConfig, get_config
from .errors import PipelineError
from .utils.logging import get_logger

console = Console()
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


def _print_version(
    ctx: click.Context,
    _param: click.Parameter,
    value: bool,
) -> None:
    if not value or ctx.resilient_parsing:
        return
    theme.print_version(__version__, console)
    ctx.exit()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _init_logging(cfg: ExplainConfig, verbose: bool) -> None:
    from .utils.logging import setup_logging

    log_dir = None if os.getenv("MCQEXPLAIN_LOG_DIR") else cfg.log_dir
    log_file = setup_logging(
        level="DEBUG" if verbose else None,
        log_dir=log_dir,
        console_output=verbose,
    )
    if verbose:
        console.print(theme.info(f"Logging to {log_file}"))


def _load_mapping(path: Path) -> dict[str, Any]:
    """Read a JSON or YAML file holding a single mapping."""
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yaml", ".yml"):
            import yaml

            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except Exception as exc:
        raise click.ClickException(f"Could not read {path}: {exc}")
    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a single question object.")
    return data


def _load_request(path: Path) -> Any:
    from .schema import ExplanationRequest

    try:
        return ExplanationRequest.model_validate(_load_mapping(path))
    except ValidationError as exc:
        raise click.ClickException(f"Invalid question file {path}: {exc}")


def _with_overrides(cfg: ExplainConfig, **overrides: Any) -> ExplainConfig:
    updates = {k: v for k, v in overrides.items() if v is not None}
    if not updates:
        return cfg
    try:
        return ExplainConfig(**{**cfg.model_dump(), **updates})
    except ValidationError as exc:
        raise click.ClickException(str(exc))


def _make_transport(cfg: ExplainConfig) -> Any:
    """Build the provider transport; fails fast when no API key is set."""
    if not cfg.api_key:
        raise click.ClickException(
            "No API key configured. Set MCQEXPLAIN_API_KEY or add it to your .env file."
        )
    from .transport import OpenAITransport

    return OpenAITransport(cfg)


def _write_output(output_data: dict[str, Any], output: Path) -> Path:
    suffix = output.suffix.lower()
    output.parent.mkdir(parents=True, exist_ok=True)
    if suffix in (".yaml", ".yml"):
        import yaml

        output.write_text(
            yaml.dump(output_data, default_flow_style=False, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        return output
    if not suffix:
        output = output.with_suffix(".json")
    output.write_text(json.dumps(output_data, indent=2, default=str, ensure_ascii=False), encoding="utf-8")
    return output


def _render_explanation(data: dict[str, Any]) -> None:
    meta = data.get("_mcqexplain", {})

    theme.section("Explanation", console, "01")
    t = theme.make_kv_table()
    t.add_row("summary", _esc(data["summary"]))
    t.add_row("answer", ", ".join(_esc(a) for a in data["answer"]))
    t.add_row("difficulty", f"{data['difficulty']} / 5")
    if data.get("insufficiency"):
        t.add_row("insufficiency", theme.badge("INSUFFICIENT", "warn"))
    if meta:
        method = theme.badge("FALLBACK", "warn") if meta.get("fallback") else theme.badge("VALIDATED")
        t.add_row("method", method)
    console.print(t)

    theme.section("Options", console, "02")
    table = theme.make_table()
    table.add_column("Option", no_wrap=True)
    table.add_column("Verdict", no_wrap=True)
    table.add_column("Reason")
    for entry in data["optionAnalysis"]:
        verdict = entry["verdict"]
        table.add_row(_esc(entry["option"]), theme.badge(verdict.upper(), verdict), _esc(entry["reason"]))
    console.print(table)

    theme.section("Key Points", console, "03")
    for point in data["keyPoints"]:
        console.print(f"  • {_esc(point)}")

    if data.get("memoryAids"):
        theme.section("Memory Aids", console, "04")
        for aid in data["memoryAids"]:
            console.print(f"  {theme.badge(aid['type'])} {_esc(aid['text'])}")

    if data.get("citations"):
        theme.section("Citations", console, "05")
        for cite in data["citations"]:
            console.print(f"  [bold]{_esc(cite['title'])}[/bold] [dim]{_esc(cite['url'])}[/dim]")
            console.print(f"    [dim]“{_esc(cite['quote'])}”[/dim]")

    if meta:
        tokens = meta.get("tokens", {})
        duration = meta.get("duration_s")
        parts = [f"{meta.get('attempts', 0)} attempt(s)"]
        if duration is not None:
            parts.append(f"{duration:.2f}s")
        parts.append(f"{tokens.get('input', 0)} in / {tokens.get('output', 0)} out tokens")
        console.print()
        console.print(theme.info(" · ".join(parts)))


def _finish(output_data: dict[str, Any], output: Optional[Path]) -> None:
    if output is not None:
        saved = _write_output(output_data, output)
        console.print(theme.ok(f"Saved to {saved}"))
    _render_explanation(output_data)
    if output is None:
        console.print(theme.info("Use -o/--output file.json to save the structured record"))


# ---------------------------------------------------------------------------
# Main CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--version",
    is_flag=True,
    callback=_print_version,
    expose_value=False,
    is_eager=True,
    help="Show version and exit.",
)
def cli() -> None:
    """mcqexplain -- structured explanations for multiple-choice questions."""


# ---------------------------------------------------------------------------
# explain
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("question_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Save JSON or YAML.")
@click.option("--retries", type=click.IntRange(min=0), default=None, help="Retry budget (default from config).")
@click.option("--max-tokens", type=click.IntRange(min=1), default=None, help="Initial token budget.")
@click.option("-v", "--verbose", is_flag=True, help="Log DEBUG output to stderr.")
def explain(
    question_file: Path,
    output: Optional[Path],
    retries: Optional[int],
    max_tokens: Optional[int],
    verbose: bool,
) -> None:
    """Explain the question in QUESTION_FILE (JSON or YAML).

    \b
    Examples:
      mcqexplain explain question.json
      mcqexplain explain question.yaml -o explanation.json --retries 1
    """
    cfg = get_config()
    ceiling = max(cfg.max_token_ceiling, max_tokens) if max_tokens is not None else None
    cfg = _with_overrides(cfg, retry_budget=retries, initial_max_tokens=max_tokens, max_token_ceiling=ceiling)
    _init_logging(cfg, verbose)

    request = _load_request(question_file)
    transport = _make_transport(cfg)

    from .sdk import explain_question

    try:
        with theme.spinner(f"Asking {cfg.lm}...", console):
            output_data = explain_question(request, config=cfg, transport=transport)
    except PipelineError as exc:
        logger.error(f"explain failed [{exc.code}]: {exc.detail}")
        console.print(theme.err(exc.user_message))
        raise click.ClickException(f"{exc.code}: {exc.detail}")

    console.print(theme.ok("Explanation ready"))
    _finish(output_data, output)


# ---------------------------------------------------------------------------
# salvage
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("reply_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--question",
    "question_file",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Question file the reply answers.",
)
@click.option(
    "--finish-reason",
    type=click.Choice(["complete", "truncated", "empty"]),
    default="complete",
    show_default=True,
)
@click.option("-o", "--output", type=click.Path(path_type=Path), default=None, help="Save JSON or YAML.")
def salvage(
    reply_file: Path,
    question_file: Path,
    finish_reason: str,
    output: Optional[Path],
) -> None:
    """Validate a stored model reply, synthesizing missing fields if needed.

    \b
    Examples:
      mcqexplain salvage reply.txt --question question.json
    """
    request = _load_request(question_file)
    raw_text = reply_file.read_text(encoding="utf-8")

    from .sdk import salvage_reply

    try:
        output_data = salvage_reply(raw_text, request, finish_reason, config=get_config())
    except PipelineError as exc:
        logger.error(f"salvage failed [{exc.code}]: {exc.detail}")
        console.print(theme.err(exc.user_message))
        raise click.ClickException(f"{exc.code}: {exc.detail}")

    if output_data["_mcqexplain"]["fallback"]:
        console.print(theme.warn("Reply failed validation; fields were synthesized"))
    else:
        console.print(theme.ok("Reply validated"))
    _finish(output_data, output)


# ---------------------------------------------------------------------------
# prompt
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("question_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--force-default", is_flag=True, help="Ignore any custom user template.")
def prompt(question_file: Path, force_default: bool) -> None:
    """Print the system and user text for QUESTION_FILE."""
    from .prompts import PromptOptions, build_prompt

    cfg = get_config()
    request = _load_request(question_file)
    system_text, user_text = build_prompt(request, PromptOptions.from_config(cfg, force_default=force_default))

    theme.section("System", console, "01")
    console.print(system_text, markup=False, highlight=False)
    theme.section("User", console, "02")
    console.print(user_text, markup=False, highlight=False)


# ---------------------------------------------------------------------------
# config (group)
# ---------------------------------------------------------------------------


@cli.group()
def config() -> None:
    """View mcqexplain configuration."""


@config.command("show")
def config_show() -> None:
    """Show current configuration.

    \b
    Examples:
      mcqexplain config show
    """
    cfg = get_config()
    dump = cfg.model_dump()

    # 01 · Provider
    theme.section("Provider", console, "01")
    t = theme.make_kv_table()
    t.add_row("lm", dump["lm"])
    t.add_row("api_base", str(dump["api_base"] or "[dim]default[/dim]"))
    t.add_row("lm_temperature", str(dump["lm_temperature"]))
    t.add_row("request_timeout", f"{dump['request_timeout']}s")
    api_key = dump["api_key"]
    if api_key:
        masked = api_key[:4] + "···" + api_key[-4:] if len(api_key) > 8 else "***"
    else:
        masked = "[dim]not set[/dim]"
    t.add_row("api_key", masked)
    console.print(t)

    # 02 · Prompting
    theme.section("Prompting", console, "02")
    t = theme.make_kv_table()
    t.add_row("system_prompt", "custom" if dump["system_prompt"] else "[dim]built-in[/dim]")
    t.add_row("user_template", "custom" if dump["user_template"] else "[dim]built-in[/dim]")
    t.add_row("style_prompt", "set" if dump["style_prompt"] else "[dim]none[/dim]")
    t.add_row("include_question", str(dump["include_question"]))
    t.add_row("include_options", str(dump["include_options"]))
    console.print(t)

    # 03 · Retry policy
    theme.section("Retry Policy", console, "03")
    t = theme.make_kv_table()
    t.add_row("retry_budget", str(dump["retry_budget"]))
    t.add_row("initial_max_tokens", str(dump["initial_max_tokens"]))
    t.add_row("token_step", str(dump["token_step"]))
    t.add_row("max_token_ceiling", str(dump["max_token_ceiling"]))
    console.print(t)

    # 04 · Paths
    theme.section("Paths", console, "04")
    t = theme.make_kv_table()
    t.add_row("home_dir", str(dump["home_dir"]))
    t.add_row("log_dir", str(cfg.log_dir))
    console.print(t)
