#!/usr/bin/env python3
"""
fancircle CLI - football community on a Neo4j graph
"""

from __future__ import annotations

import functools
import logging
import sys
from dataclasses import asdict

import click
from rich.console import Console
from rich.markup import escape

from fancircle.errors import FanCircleError
from fancircle.identity import FileSessionGate, TokenSigner
from fancircle.settings import settings
from fancircle.social import Decision, FanCircle, FeedOptions, JournalistView, Role
from fancircle.social.models import EnrichedPost

from .render import print_club_feed, print_fan_feed, print_post, posts_table, users_table

console = Console()


def _configure_logging() -> None:
    level = (settings.log_level or "WARNING").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def build_app() -> FanCircle:
    """FanCircle wired to Neo4j and the session file from settings."""
    from fancircle.graph.neo4j_store import Neo4jConfig, Neo4jGraphStore

    if not settings.neo4j_password:
        raise click.ClickException("Neo4j not configured. Set FANCIRCLE_NEO4J_URI/USER/PASSWORD.")

    store = Neo4jGraphStore(
        Neo4jConfig(
            uri=settings.neo4j_uri,
            user=settings.neo4j_user,
            password=settings.neo4j_password,
            database=settings.neo4j_database,
            connect_attempts=settings.neo4j_connect_attempts,
        )
    )
    store.ensure_schema()
    gate = FileSessionGate(
        settings.session_file,
        TokenSigner(secret=settings.secret_key, ttl_seconds=settings.session_ttl_seconds),
    )
    return FanCircle(store, gate, settings=settings)


def get_app() -> FanCircle:
    ctx = click.get_current_context()
    obj = ctx.ensure_object(dict)
    if "app" not in obj:
        app = build_app()
        ctx.call_on_close(app.store.close)
        obj["app"] = app
    return obj["app"]


def handle_errors(fn):
    """Print core errors in red and exit with status 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except FanCircleError as e:
            console.print(f"[red]❗ {escape(str(e))}[/red]")
            sys.exit(1)

    return wrapper


def choose_post(posts: list[EnrichedPost], title: str) -> EnrichedPost | None:
    if not posts:
        console.print("[yellow]No posts available.[/yellow]")
        return None
    console.print(posts_table(posts, title))
    index = click.prompt("Select a post", type=click.IntRange(1, len(posts)))
    return posts[index - 1]


def choose_team(prompt: str) -> str:
    teams = get_app().settings.teams
    for i, team in enumerate(teams, start=1):
        console.print(f"  [cyan]{i:>2}[/cyan] {escape(team)}")
    index = click.prompt(prompt, type=click.IntRange(1, len(teams)))
    return teams[index - 1]


@click.group()
@click.version_option(package_name="fancircle")
def cli():
    """fancircle - football community for fans, clubs and journalists"""
    _configure_logging()


# --------------------------
# Accounts
# --------------------------


@cli.command("create-user")
@click.option("--username", prompt="Username")
@click.option("--email", prompt="Email address")
@click.option("--password", prompt="Password", hide_input=True)
@click.option("--confirm-password", prompt="Confirm password", hide_input=True)
@click.option(
    "--role",
    type=click.Choice([Role.FAN.value, Role.CLUB.value, Role.JOURNALIST.value]),
    prompt="Role",
)
@click.option("--detail", default=None, help="Favourite team, club name or medium")
@handle_errors
def create_user(username, email, password, confirm_password, role, detail):
    """Register a fan, club or journalist"""
    if detail is None:
        if role == Role.JOURNALIST.value:
            detail = click.prompt("Which medium do you work for?")
        elif role == Role.FAN.value:
            detail = choose_team("Favourite team")
        else:
            detail = choose_team("Your club")
    user = get_app().register_user(
        username=username,
        email=email,
        password=password,
        confirm_password=confirm_password,
        role=role,
        detail=detail,
    )
    name = f"{escape(user.username)} ({escape(user.email)})"
    console.print(f"[green]✓ User {name} registered as {user.role.value}.[/green]")


@cli.command("create-admin")
@handle_errors
def create_admin():
    """Create the (single) admin account"""
    admin = get_app().create_admin()
    console.print("[green]✓ Admin account created[/green]")
    console.print(f"[blue]Email: {escape(admin.email)}[/blue]")


@cli.command()
@click.option("--identifier", prompt="Email or username")
@click.option("--password", prompt="Password", hide_input=True)
@handle_errors
def login(identifier, password):
    """Log in and keep a session token"""
    app = get_app()
    user = app.login(identifier, password)
    console.print(f"[green]✓ Logged in as {escape(user.email)}[/green]")
    if user.role is Role.FAN:
        pending = app.list_pending_requests()
        if pending:
            console.print(f"[blue]{len(pending)} pending friend request(s); run check-requests.[/blue]")


@cli.command()
@handle_errors
def logout():
    """End the current session"""
    get_app().logout()
    console.print("[green]✓ Logged out[/green]")


@cli.command()
@handle_errors
def whoami():
    """Show the logged-in user"""
    user = get_app().whoami()
    detail = escape(user.role_detail or "-")
    console.print(f"{escape(user.email)} ({escape(user.username)}) - {user.role.value}: {detail}")


@cli.command("list-users")
@handle_errors
def list_users():
    """List all users (admin only)"""
    console.print(users_table(get_app().list_users_admin()))


@cli.command("admin-view")
@handle_errors
def admin_view():
    """Export every node and edge (admin only)"""
    export = get_app().export_admin()
    console.print_json(data=asdict(export))


@cli.command("list-clubs")
@handle_errors
def list_clubs():
    """List registered clubs"""
    clubs = get_app().list_clubs()
    console.print("[blue]⚽ Clubs:[/blue]")
    if not clubs:
        console.print("[yellow]No clubs found.[/yellow]")
    for club in clubs:
        console.print(f"- {escape(club)}")


# --------------------------
# Friendships
# --------------------------


@cli.command("add-friend")
@click.argument("email", required=False)
@handle_errors
def add_friend(email):
    """Send a friend request to another fan"""
    if not email:
        email = click.prompt("Email address of the fan")
    request = get_app().send_friend_request(email)
    console.print(f"[green]✓ Friend request sent to {escape(request.target)}.[/green]")


@cli.command("check-requests")
@handle_errors
def check_requests():
    """Accept or reject pending friend requests"""
    app = get_app()
    pending = app.list_pending_requests()
    if not pending:
        console.print("[blue]No pending friend requests.[/blue]")
        return
    for request in pending:
        answer = click.prompt(
            f"Friend request from {request.requester}",
            type=click.Choice([d.value for d in Decision]),
        )
        if app.resolve_friend_request(request.requester, answer):
            console.print(f"[green]✓ You are now friends with {escape(request.requester)}![/green]")
        else:
            console.print(f"[yellow]Rejected the request from {escape(request.requester)}.[/yellow]")


# --------------------------
# Posts
# --------------------------


@cli.group()
def post():
    """Create, comment on, edit and delete posts"""


@post.command("new")
@click.option("--content", prompt="Your post")
@click.option("--club-tag", default=None, help="Club the post is about")
@handle_errors
def post_new(content, club_tag):
    """Publish a new post"""
    created = get_app().publish_post(content, club_tag)
    console.print(f"[green]✓ Post published ({created.id}).[/green]")


@post.command("comment")
@handle_errors
def post_comment():
    """Comment on any post"""
    app = get_app()
    target = choose_post(app.list_all_posts(), "Posts")
    if target is None:
        return
    text = click.prompt("Your comment")
    app.add_comment(target.id, text)
    console.print("[green]✓ Comment added.[/green]")


@post.command("edit")
@handle_errors
def post_edit():
    """Edit one of your posts"""
    app = get_app()
    target = choose_post(app.list_own_posts(), "Your posts")
    if target is None:
        return
    text = click.prompt("New content", default=target.content)
    app.edit_own_post(target.id, text)
    console.print("[green]✓ Post updated.[/green]")


@post.command("delete")
@handle_errors
def post_delete():
    """Delete one of your posts"""
    app = get_app()
    target = choose_post(app.list_own_posts(), "Your posts")
    if target is None:
        return
    app.delete_own_post(target.id)
    console.print("[green]✓ Post deleted.[/green]")


@cli.command("like-post")
@handle_errors
def like_post():
    """Like a post"""
    app = get_app()
    target = choose_post(app.list_all_posts(), "Posts")
    if target is None:
        return
    app.toggle_like(target.id)
    console.print("[green]✓ Post liked![/green]")


@cli.command("list-posts")
@click.option(
    "--view",
    type=click.Choice([v.value for v in JournalistView]),
    default=JournalistView.ALL.value,
    help="Journalist view",
)
@click.option("--team", default=None, help="Club for --view filter_by_team")
@handle_errors
def list_posts(view, team):
    """Show your feed"""
    app = get_app()
    me = app.whoami()
    if me.role is Role.JOURNALIST and view == JournalistView.FILTER_BY_TEAM.value and team is None:
        team = click.prompt("Club name")
    posts = app.compute_feed(FeedOptions(view=JournalistView(view), team=team))

    if me.role is Role.CLUB:
        console.print("[blue]Posts about your club:[/blue]")
        print_club_feed(console, posts, me.email)
        return
    if not posts:
        console.print("[yellow]No posts found.[/yellow]")
        return
    if me.role is Role.FAN:
        console.print("[blue]Posts for you:[/blue]")
        print_fan_feed(console, posts, me.email)
    else:
        console.print("[green]🔍 Posts found:[/green]")
        for p in posts:
            print_post(console, p)


if __name__ == "__main__":
    cli()
