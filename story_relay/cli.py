from __future__ import annotations

import argparse
import asyncio
from dataclasses import asdict, is_dataclass
from pathlib import Path
import sys
from typing import Any

import orjson
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table
from loguru import logger

from story_relay.accounts.service import register_user, seed_catalog
from story_relay.checkout.reclaimer import ExpiryReclaimer
from story_relay.checkout.service import CheckoutService
from story_relay.config import load_config
from story_relay.config.loader import masked_env_snapshot
from story_relay.config.schema import USER_ROLES, AppConfigRoot
from story_relay.content.github import GitHubContentStore
from story_relay.domain.errors import StoryRelayError
from story_relay.stories.service import STORY_STATUSES, create_story, get_story, list_stories, read_story_content
from story_relay.storage.db import init_db_service, session_scope, shutdown_db_service
from story_relay.storage.repo import SQLAlchemyRepo
from story_relay.utils.logging import setup_logging

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="story-relay")
    parser.add_argument("--config", type=Path, default=None, help="Path to custom config YAML")
    parser.add_argument("--profile", type=str, default=None, help="Config profile name")
    parser.add_argument("--data-dir", type=Path, default=None, help="Override data directory")
    parser.add_argument("--json", action="store_true", help="Print results as JSON")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("config", help="Validate and print effective config")
    subparsers.add_parser("init", help="Create tables and seed languages/genres")
    subparsers.add_parser("catalog", help="List languages and genres")

    user_parser = subparsers.add_parser("user-add", help="Register a user")
    user_parser.add_argument("--username", type=str, required=True)
    user_parser.add_argument("--email", type=str, required=True)
    user_parser.add_argument("--role", choices=list(USER_ROLES), required=True)
    user_parser.add_argument("--pen-name", type=str, default=None)

    create_parser = subparsers.add_parser("story-create", help="Create a story and its remote file")
    create_parser.add_argument("--user-id", type=int, required=True, help="Creator user id")
    create_parser.add_argument("--title", type=str, required=True)
    create_parser.add_argument("--theme", type=str, required=True)
    create_parser.add_argument("--language-id", type=int, required=True)
    create_parser.add_argument("--genre-id", type=int, required=True)
    create_parser.add_argument("--initial-plot", type=str, default=None)

    stories_parser = subparsers.add_parser("stories", help="List stories")
    stories_parser.add_argument("--status", choices=list(STORY_STATUSES), default=None)

    story_parser = subparsers.add_parser("story", help="Show one story")
    story_parser.add_argument("--story-id", type=int, required=True)

    content_parser = subparsers.add_parser("content", help="Print the story text from the content host")
    content_parser.add_argument("--story-id", type=int, required=True)

    checkout_parser = subparsers.add_parser("checkout", help="Check a story out for writing")
    checkout_parser.add_argument("--story-id", type=int, required=True)
    checkout_parser.add_argument("--user-id", type=int, required=True)

    checkin_parser = subparsers.add_parser("checkin", help="Submit a contribution and check the story in")
    checkin_parser.add_argument("--story-id", type=int, required=True)
    checkin_parser.add_argument("--user-id", type=int, required=True)
    checkin_parser.add_argument("--file", type=str, required=True, help="Contribution text file, '-' for stdin")

    status_parser = subparsers.add_parser("checkout-status", help="Show who holds a story")
    status_parser.add_argument("--story-id", type=int, required=True)
    status_parser.add_argument("--user-id", type=int, default=None, help="Viewer user id")

    contributors_parser = subparsers.add_parser("contributors", help="List a story's contributors")
    contributors_parser.add_argument("--story-id", type=int, required=True)

    finish_parser = subparsers.add_parser("finish", help="Mark a story finished (creator only)")
    finish_parser.add_argument("--story-id", type=int, required=True)
    finish_parser.add_argument("--user-id", type=int, required=True)

    reclaim_parser = subparsers.add_parser("reclaim", help="Auto check-in expired checkouts")
    reclaim_parser.add_argument("--loop", action="store_true", help="Keep sweeping on the configured interval")
    reclaim_parser.add_argument("--interval", type=float, default=None, help="Override sweep interval (seconds)")

    return parser


def _build_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.data_dir:
        overrides["app"] = {"data_dir": str(args.data_dir)}
    if getattr(args, "interval", None) is not None:
        overrides["reclaimer"] = {"interval_seconds": args.interval}
    return overrides


def _read_text_arg(value: str) -> str:
    if value == "-":
        return sys.stdin.read()
    return Path(value).read_text(encoding="utf-8")


def _print_json(payload: Any) -> None:
    if is_dataclass(payload) and not isinstance(payload, type):
        payload = asdict(payload)
    elif isinstance(payload, list):
        payload = [asdict(item) if is_dataclass(item) else item for item in payload]
    console.print_json(orjson.dumps(payload).decode("utf-8"))


def _print_record(title: str, payload: Any, as_json: bool) -> None:
    if as_json:
        _print_json(payload)
        return
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("Field")
    table.add_column("Value")
    for key, value in asdict(payload).items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


def _print_config(config: AppConfigRoot) -> None:
    env_snapshot = masked_env_snapshot(config)
    console.print(Panel(Pretty(config.model_dump(mode="json")), title="Effective Config"))
    console.print(Panel(Pretty(env_snapshot), title="Env Snapshot"))


async def _run_command(args: argparse.Namespace, config: AppConfigRoot) -> None:
    if args.command == "config":
        _print_config(config)
        return

    if args.command == "init":
        stats = await seed_catalog(config)
        _print_record("Catalog", stats, args.json)
        return

    if args.command == "catalog":
        async with session_scope() as session:
            repo = SQLAlchemyRepo(session)
            languages = await repo.list_languages()
            genres = await repo.list_genres()
        if args.json:
            _print_json({"languages": [asdict(row) for row in languages], "genres": [asdict(row) for row in genres]})
            return
        table = Table(title="Languages", show_header=True, header_style="bold")
        for column in ("ID", "Name", "Code", "Container"):
            table.add_column(column)
        for language in languages:
            table.add_row(str(language.id), language.name, language.code, language.container or "-")
        console.print(table)
        table = Table(title="Genres", show_header=True, header_style="bold")
        table.add_column("ID")
        table.add_column("Name")
        for genre in genres:
            table.add_row(str(genre.id), genre.name)
        console.print(table)
        return

    if args.command == "user-add":
        user = await register_user(args.username, args.email, args.role, args.pen_name)
        _print_record("User", user, args.json)
        return

    if args.command == "stories":
        stories = await list_stories(args.status)
        if args.json:
            _print_json(stories)
            return
        table = Table(title="Stories", show_header=True, header_style="bold")
        for column in ("ID", "Title", "Language", "Genre", "Creator", "Status", "Words"):
            table.add_column(column)
        for story in stories:
            table.add_row(
                str(story.id),
                story.title,
                story.language_name,
                story.genre_name,
                story.creator_pen_name or story.creator_name,
                story.status,
                str(story.word_count),
            )
        console.print(table)
        return

    if args.command == "story":
        _print_record("Story", await get_story(args.story_id), args.json)
        return

    checkout_service = CheckoutService(config)

    if args.command == "checkout":
        result = await checkout_service.checkout(args.story_id, args.user_id)
        _print_record("Checkout", result, args.json)
        return

    if args.command == "checkout-status":
        _print_record("Checkout Status", await checkout_service.status(args.story_id, args.user_id), args.json)
        return

    if args.command == "contributors":
        contributors = await checkout_service.contributors(args.story_id)
        if args.json:
            _print_json(contributors)
            return
        table = Table(title="Contributors", show_header=True, header_style="bold")
        for column in ("User", "Since", "Words"):
            table.add_column(column)
        for row in contributors:
            table.add_row(row.pen_name or row.username, row.contributed_at.isoformat(), str(row.total_words))
        console.print(table)
        return

    if args.command == "finish":
        await checkout_service.finish(args.story_id, args.user_id)
        console.print(Panel(f"Story {args.story_id} finished", title="Finish"))
        return

    if args.command == "reclaim":
        reclaimer = ExpiryReclaimer.from_config(config)
        if args.loop:
            if not config.reclaimer.enabled:
                console.print(Panel("reclaimer.enabled is false; nothing to do", title="Reclaim"))
                return
            await reclaimer.run_forever()
            return
        _print_record("Reclaim", await reclaimer.run_once(), args.json)
        return

    async with GitHubContentStore.from_config(config) as store:
        if args.command == "story-create":
            story = await create_story(
                store,
                title=args.title,
                theme=args.theme,
                language_id=args.language_id,
                genre_id=args.genre_id,
                creator_id=args.user_id,
                initial_plot=args.initial_plot,
            )
            _print_record("Story", story, args.json)
            return

        if args.command == "content":
            console.print(await read_story_content(store, args.story_id), markup=False, highlight=False)
            return

        if args.command == "checkin":
            text = _read_text_arg(args.file)
            checkin_service = CheckoutService(config, store)
            _print_record("Checkin", await checkin_service.checkin(args.story_id, args.user_id, text), args.json)
            return

    raise ValueError(f"Unsupported command: {args.command}")


async def _main_async() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    overrides = _build_overrides(args)
    config = load_config(
        config_path=args.config,
        profile=args.profile,
        overrides=overrides,
    )

    setup_logging(config.app.log_level)
    logger.info("Loaded configuration")

    await init_db_service(config.storage.sqlite_path)

    try:
        await _run_command(args, config)
    except StoryRelayError as exc:
        console.print(Panel(str(exc), title=type(exc).__name__, style="red"))
        return 1
    finally:
        await shutdown_db_service()
    return 0


def main() -> None:
    raise SystemExit(asyncio.run(_main_async()))


if __name__ == "__main__":
    main()
