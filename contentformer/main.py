#!/usr/bin/env python3
"""
Transcript to Content Pipeline

Turns a video transcript into content ideas, video scripts and a LinkedIn post.

Usage:
    python -m contentformer.main transcript.txt                  # Run all stages
    python -m contentformer.main transcript.txt --mode step      # One stage at a time
    python -m contentformer.main transcript.txt --interactive    # Step mode with prompts
    python -m contentformer.main --save-config --anthropic-key sk-...  # Store API keys
"""

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from .agents.invoker import ModelInvoker
from .agents.orchestrator import Orchestrator, PipelineSession, Stage
from .app.credentials import CredentialResolver, JsonFileConfigStore
from .config.settings import settings
from .exceptions import ContentformerError
from .models import ApiConfig, Provider
from .utils.cost_tracker import PipelineCosts


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Turn a video transcript into content ideas, scripts and a LinkedIn post"
    )

    parser.add_argument(
        "transcript",
        nargs="?",
        help="Path to the transcript file ('-' reads stdin)",
    )

    parser.add_argument(
        "--mode",
        choices=["all", "step"],
        default="all",
        help="Run every stage at once or one stage at a time (default: all)",
    )

    parser.add_argument(
        "--instructions",
        default="",
        help="Extra instructions appended to every prompt",
    )

    parser.add_argument(
        "--interactive",
        action="store_true",
        help="Step mode: ask for per-step instructions and the idea to script",
    )

    parser.add_argument(
        "--idea-index",
        type=int,
        default=0,
        help="Step mode: index of the idea to script (default: 0)",
    )

    parser.add_argument(
        "--provider",
        choices=[p.value for p in Provider],
        help="Preferred provider (overrides the saved config)",
    )

    parser.add_argument("--anthropic-key", help="Anthropic API key")
    parser.add_argument("--openai-key", help="OpenAI API key")

    parser.add_argument(
        "--config-file",
        type=Path,
        default=settings.client_config_path,
        help=f"Saved API config (default: {settings.client_config_path})",
    )

    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Save the given keys and provider to the config file",
    )

    parser.add_argument(
        "--output",
        type=Path,
        help="Write the session (ideas, scripts, posts) to this JSON file",
    )

    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Show pipeline logs",
    )

    return parser.parse_args(argv)


def _apply_flags(config: ApiConfig, args: argparse.Namespace) -> ApiConfig:
    overrides = {}
    if args.anthropic_key:
        overrides["anthropic_api_key"] = args.anthropic_key
    if args.openai_key:
        overrides["openai_api_key"] = args.openai_key
    if args.provider:
        overrides["preferred_provider"] = args.provider
    return replace(config, **overrides) if overrides else config


def load_config(args: argparse.Namespace) -> ApiConfig:
    """Resolve the API config, letting command line flags override it."""
    store = JsonFileConfigStore(args.config_file)

    if args.save_config:
        # Only the saved file and the flags go to disk, never the environment
        saved = _apply_flags(store.load() or ApiConfig(), args)
        CredentialResolver(env={}, client_store=store).save_config(saved)
        print(f"💾 API config saved to {args.config_file}")

    return _apply_flags(CredentialResolver(client_store=store).get_config(), args)


def read_transcript(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    return Path(path).read_text(encoding="utf-8")


def print_session(session: PipelineSession) -> None:
    """Print the generated ideas, scripts and posts."""
    print("\n" + "=" * 60)
    print(f"💡 CONTENT IDEAS ({len(session.ideas)})")
    print("=" * 60)
    for i, idea in enumerate(session.ideas):
        marker = "*" if idea.id == session.selected_idea_id else " "
        print(f"\n{marker} {i}. {idea.title}")
        print(f"     {idea.description}")

    for script in session.scripts:
        print("\n" + "=" * 60)
        print(f"🎬 SCRIPT: {script.title}")
        print("=" * 60)
        print(f"\n{script.script}")

    for post in session.posts:
        print("\n" + "=" * 60)
        print("🔗 LINKEDIN POST")
        print("=" * 60)
        print(f"\n{post.post}")
    print("\n" + "=" * 60)


def _ask(prompt: str) -> str:
    try:
        return input(prompt).strip()
    except EOFError:
        return ""


async def run_steps(
    args: argparse.Namespace,
    orchestrator: Orchestrator,
    session: PipelineSession,
    config: ApiConfig,
) -> None:
    """Drive step mode until the LinkedIn post is written."""
    await orchestrator.run_step(session, config)  # idle -> ideas checkpoint

    while not session.state.completed_steps[Stage.LINKEDIN.value]:
        stage = session.state.stage
        if args.interactive:
            prompt = _ask(f"\n✏️  Instructions for the {stage.value} step (Enter to skip): ")
            if prompt:
                orchestrator.configure_step(session, prompt)

        if stage is Stage.SCRIPTS and session.ideas:
            index = args.idea_index
            if args.interactive:
                print_session(session)
                answer = _ask(f"Idea to script [0-{len(session.ideas) - 1}]: ")
                index = int(answer) if answer.isdigit() else index
            index = min(max(index, 0), len(session.ideas) - 1)
            orchestrator.select_idea(session, session.ideas[index].id)

        print(f"\n⏳ Running {stage.value} step...")
        await orchestrator.run_step(session, config)
        print(f"   Progress: {session.state.progress:.0f}%")


async def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.interactive:
        args.mode = "step"

    config = load_config(args)
    if not args.transcript:
        if args.save_config:
            return 0
        print("❌ A transcript file is required")
        return 1

    transcript = read_transcript(args.transcript)
    if not transcript.strip():
        print("❌ Transcript is empty")
        return 1

    costs = PipelineCosts()
    orchestrator = Orchestrator(ModelInvoker(settings, costs=costs))
    session = orchestrator.start(PipelineSession(), transcript, args.instructions)

    print("=" * 60)
    print("🚀 Contentformer")
    print("=" * 60)
    print(f"Provider: {config.preferred_provider}")
    print(f"Mode: {'Step' if args.mode == 'step' else 'Run all'}")
    print(f"Transcript: {len(transcript)} chars")

    try:
        if args.mode == "step":
            await run_steps(args, orchestrator, session, config)
        else:
            await orchestrator.run_all(session, config)
    except ContentformerError as e:
        print(f"\n❌ {e.message}")
        if session.ideas:
            print_session(session)
        return 1

    print_session(session)
    input_tokens, output_tokens = costs.total_tokens()
    print(
        f"\n✅ Done. Tokens: {input_tokens} in / {output_tokens} out, "
        f"cost: ${costs.total_cost():.4f}"
    )

    if args.output:
        args.output.write_text(json.dumps(session.to_dict(), indent=2), encoding="utf-8")
        print(f"📁 Session saved to: {args.output}")

    return 0


def cli() -> None:
    """CLI entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
