"""CLI for polarion-resolver."""

import asyncio
from typing import Annotated, Literal

import structlog
from cyclopts import App, Parameter

from polarion_resolver.config import get_config
from polarion_resolver.config_commands import config_app
from polarion_resolver.models import WorkItem
from polarion_resolver.reporting import Level, Reporter
from polarion_resolver.service import PolarionService
from polarion_resolver.settings import Settings, missing_settings

logger = structlog.get_logger()

app = App(
    help="Polarion Resolver - Look up Polarion work items by id",
)

app.command(config_app)


def configure_logging(log_level: str) -> None:
    """Configure structlog with the specified log level."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(min_level=log_level.lower()))


def get_settings() -> Settings:
    """Load settings from the configuration files."""
    settings = Settings.from_config(get_config())
    missing = missing_settings(settings)
    if missing:
        raise ValueError(
            "Polarion is not fully configured. Set the missing settings using:\n"
            + "\n".join(f"  polarion-resolver config set {key} <value>" for key in missing)
        )
    return settings


def _print_notification(message: str, level: Level) -> None:
    prefix = "Error: " if level is Level.ERROR else ""
    print(f"{prefix}{message}")


def _format_item(item: WorkItem, url: str | None) -> list[str]:
    lines = [
        f"Work item: {item.id}",
        f"Title: {item.title}",
        f"Type: {item.type.name or item.type.id}",
        f"Status: {item.status.name or item.status.id}",
        f"Author: {item.author.name or item.author.id}",
        f"Project: {item.project_id}",
    ]
    if item.author.email:
        lines.append(f"Email: {item.author.email}")
    if item.description:
        lines.append(f"Description: {item.description.content}")
    if url:
        lines.append(f"URL: {url}")
    return lines


async def _resolve_all(settings: Settings, item_ids: list[str]) -> list[tuple[str, WorkItem | None, str | None]]:
    reporter = Reporter()
    reporter.add_notifier(_print_notification)
    async with PolarionService(settings, reporter=reporter) as service:
        items = await asyncio.gather(*(service.resolve_item(item_id) for item_id in item_ids))
        urls = await asyncio.gather(*(service.resolve_url(item_id) for item_id in item_ids))
    return list(zip(item_ids, items, urls))


@app.command
def resolve(*item_ids: str) -> None:
    """Resolve one or more work items and print their details."""
    settings = get_settings()
    for item_id, item, url in asyncio.run(_resolve_all(settings, list(item_ids))):
        if item is None:
            print(f"{item_id}: not found")
            continue
        print("\n".join(_format_item(item, url)))
        print()


@app.command
def url(item_id: str) -> None:
    """Print the web URL of a work item."""
    settings = get_settings()
    [(_, _, item_url)] = asyncio.run(_resolve_all(settings, [item_id]))
    print(item_url if item_url else f"{item_id}: not found")


@app.command
def title(item_id: str) -> None:
    """Print the title of a work item."""
    settings = get_settings()
    [(_, item, _)] = asyncio.run(_resolve_all(settings, [item_id]))
    print(item.title if item else f"{item_id}: not found")


@app.command
def check() -> None:
    """Report which required settings are missing."""
    settings = Settings.from_config(get_config())
    missing = missing_settings(settings)
    if missing:
        print("The following Polarion settings are not set: " + ", ".join(missing))
        return
    mode = "token" if settings.use_token_auth else "basic"
    print(f"Polarion settings complete ({mode} authentication)")


@app.meta.default
def main(
    *tokens: Annotated[str, Parameter(show=False, allow_leading_hyphen=True)],
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "critical",
) -> None:
    """Main entry point with global options."""
    configure_logging(log_level)
    app(tokens)


if __name__ == "__main__":
    app.meta()
