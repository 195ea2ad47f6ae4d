from __future__ import annotations

import pytest
from click.testing import CliRunner

from fancircle.cli.main import cli


@pytest.fixture
def run(app):
    runner = CliRunner()

    def _run(*args, input=None):
        return runner.invoke(cli, list(args), obj={"app": app}, input=input)

    return _run


def _create(run, email, role="Fan", detail="X"):
    result = run(
        "create-user",
        "--username", email.split("@")[0],
        "--email", email,
        "--password", "secret",
        "--confirm-password", "secret",
        "--role", role,
        "--detail", detail,
    )
    assert result.exit_code == 0, result.output
    return result


def test_create_user_and_login(run, gate):
    result = _create(run, "fan@x.de")
    assert "registered as Fan" in result.output

    result = run("login", "--identifier", "fan@x.de", "--password", "secret")
    assert result.exit_code == 0, result.output
    assert gate.email == "fan@x.de"

    result = run("whoami")
    assert "fan@x.de" in result.output


def test_create_user_prompts_for_team(run, app):
    result = run(
        "create-user",
        "--username", "fan",
        "--email", "fan@x.de",
        "--password", "secret",
        "--confirm-password", "secret",
        "--role", "Fan",
        input="2\n",
    )
    assert result.exit_code == 0, result.output
    assert app.accounts.get("fan@x.de").role_detail == "Y"


def test_errors_exit_with_status_one(run):
    _create(run, "fan@x.de")
    result = run(
        "create-user",
        "--username", "other",
        "--email", "fan@x.de",
        "--password", "secret",
        "--confirm-password", "secret",
        "--role", "Fan",
        "--detail", "X",
    )
    assert result.exit_code == 1
    assert "already registered" in result.output


def test_commands_need_a_login(run):
    result = run("whoami")
    assert result.exit_code == 1
    assert "log in" in result.output


def test_post_and_list(run, gate):
    _create(run, "club@x.de", role="Club", detail="X")
    _create(run, "fan@x.de")

    gate.open("club@x.de")
    result = run("post", "new", "--content", "Matchday [tomorrow]")
    assert result.exit_code == 0, result.output

    gate.open("fan@x.de")
    result = run("list-posts")
    assert result.exit_code == 0, result.output
    assert "Updates from your favourite club" in result.output
    assert "Matchday [tomorrow]" in result.output

    gate.open("club@x.de")
    result = run("list-posts")
    assert "Your club updates" in result.output
    assert "Matchday [tomorrow]" in result.output


def test_like_post_by_selection(run, app, gate):
    _create(run, "club@x.de", role="Club", detail="X")
    _create(run, "fan@x.de")
    gate.open("club@x.de")
    run("post", "new", "--content", "like me")

    gate.open("fan@x.de")
    result = run("like-post", input="1\n")
    assert result.exit_code == 0, result.output
    assert app.list_all_posts()[0].like_count == 1

    result = run("like-post", input="1\n")
    assert result.exit_code == 1


def test_friend_request_flow(run, app, gate):
    _create(run, "a@x.de")
    _create(run, "b@x.de")

    gate.open("a@x.de")
    result = run("add-friend", "b@x.de")
    assert result.exit_code == 0, result.output

    gate.open("b@x.de")
    result = run("check-requests", input="accept\n")
    assert result.exit_code == 0, result.output
    assert "now friends with a@x.de" in result.output
    assert app.friends.are_friends("a@x.de", "b@x.de")


def test_journalist_filter_needs_a_team(run, gate):
    _create(run, "press@x.de", role="Journalist", detail="Kicker")
    gate.open("press@x.de")
    result = run("list-posts", "--view", "filter_by_team", "--team", " ")
    assert result.exit_code == 1


def test_list_clubs(run, gate):
    _create(run, "z@x.de", role="Club", detail="Z")
    _create(run, "y@x.de", role="Club", detail="Y")
    gate.open("z@x.de")

    result = run("list-clubs")
    assert result.exit_code == 0, result.output
    assert result.output.index("- Y") < result.output.index("- Z")


def test_admin_view_is_json(run, app):
    app.create_admin()
    run("login", "--identifier", "admin", "--password", "admin-pw")
    result = run("admin-view")
    assert result.exit_code == 0, result.output
    assert '"passwordHash"' not in result.output
    assert "admin@example.com" in result.output


def test_markup_like_text_is_shown_verbatim(run, app, gate):
    _create(run, "club@x.de", role="Club", detail="X")
    _create(run, "fan@x.de")
    _create(run, "press@x.de", role="Journalist", detail="[red]Kicker")
    gate.open("club@x.de")
    run("post", "new", "--content", "Final whistle [/b]")

    gate.open("fan@x.de")
    result = run("like-post", input="1\n")
    assert result.exit_code == 0, result.output
    assert "Final whistle [/b]" in result.output
    assert app.list_all_posts()[0].like_count == 1

    gate.open("press@x.de")
    assert "[red]Kicker" in run("whoami").output

    app.create_admin()
    gate.open("admin@example.com")
    result = run("list-users")
    assert result.exit_code == 0, result.output
    assert "[red]Kicker" in result.output
