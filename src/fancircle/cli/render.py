from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fancircle.social.models import FAN_CATEGORY_ORDER, EnrichedPost, FeedCategory, User

FAN_SECTIONS = {
    FeedCategory.TEAM: "⚽ Updates from your favourite club",
    FeedCategory.FAN_EXCHANGE: "👥 Fan exchange (same club)",
    FeedCategory.FRIEND: "🤝 Posts from your friends",
    FeedCategory.EXTRA_TEAM: "🏟 Other clubs your friends follow",
}

CLUB_SECTIONS = {
    FeedCategory.OWN: "⚽ Your club updates",
    FeedCategory.FAN: "👥 Fan posts about your club",
}


def format_ts(ms: int | None) -> str:
    if not ms:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%d.%m.%Y %H:%M:%S")


def _name(email: str, me: str | None) -> str:
    return "me" if me and email == me else escape(email)


def print_post(console: Console, post: EnrichedPost, *, me: str | None = None, show_author: bool = True) -> None:
    author = f"{_name(post.author, me)}: " if show_author else ""
    tag = f" [dim]({escape(post.club_tag)})[/dim]" if post.club_tag else ""
    console.print(
        f"- {author}{escape(post.content)} [cyan][{post.like_count} likes][/cyan]{tag} "
        f"[green]({format_ts(post.created_at)})[/green]"
    )
    if post.comments:
        console.print("  [dim]Comments:[/dim]")
        for c in post.comments:
            console.print(f"  [dim]- {_name(c.author, me)}: {escape(c.content)}[/dim]")


def print_fan_feed(console: Console, posts: Sequence[EnrichedPost], me: str) -> None:
    for category in FAN_CATEGORY_ORDER:
        section = [p for p in posts if p.category is category]
        if section:
            console.print(f"\n[bold yellow]{FAN_SECTIONS[category]}[/bold yellow]")
            for post in section:
                print_post(console, post, me=me)


def print_club_feed(console: Console, posts: Sequence[EnrichedPost], me: str) -> None:
    for category, title in CLUB_SECTIONS.items():
        console.print(f"\n[bold yellow]{title}[/bold yellow]")
        section = [p for p in posts if p.category is category]
        if not section:
            console.print("[dim]Nothing here yet.[/dim]")
        for post in section:
            print_post(console, post, me=me, show_author=category is not FeedCategory.OWN)


def posts_table(posts: Sequence[EnrichedPost], title: str) -> Table:
    table = Table(title=title)
    table.add_column("#", style="cyan", width=4)
    table.add_column("Author", style="blue")
    table.add_column("Content", style="white", overflow="fold")
    table.add_column("Likes", style="magenta", width=6)
    table.add_column("Time", style="green", width=20)
    for i, post in enumerate(posts, start=1):
        table.add_row(
            str(i),
            escape(post.author),
            escape(post.content),
            str(post.like_count),
            format_ts(post.created_at),
        )
    return table


def users_table(users: Sequence[User]) -> Table:
    table = Table(title="Users")
    table.add_column("Email", style="blue")
    table.add_column("Username", style="white")
    table.add_column("Role", style="magenta")
    table.add_column("Team / club / medium", style="green")
    for u in users:
        table.add_row(escape(u.email), escape(u.username), u.role.value, escape(u.role_detail or "-"))
    return table
