"""Tests for main.py -- the admin command line."""

from auth.models import User
from auth.store import UserStore, create_store_engine
from main import main


def _db_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.db'}"


def test_seed_roles_is_idempotent(tmp_path, capsys) -> None:
    url = _db_url(tmp_path)
    assert main(["--db-url", url, "seed-roles", "--role", "ROLE_MANAGER"]) == 0
    assert "5 role(s) inserted" in capsys.readouterr().out

    assert main(["--db-url", url, "seed-roles"]) == 0
    assert "0 role(s) inserted" in capsys.readouterr().out


def test_list_roles(tmp_path, capsys) -> None:
    url = _db_url(tmp_path)
    assert main(["--db-url", url, "list-roles"]) == 1
    assert "No roles" in capsys.readouterr().out

    main(["--db-url", url, "seed-roles"])
    capsys.readouterr()
    assert main(["--db-url", url, "list-roles"]) == 0
    out = capsys.readouterr().out
    assert "ROLE_TENANT" in out
    assert "ROLE_OWNER" in out


def test_show_user(tmp_path, capsys) -> None:
    url = _db_url(tmp_path)
    main(["--db-url", url, "seed-roles"])
    engine = create_store_engine(url)
    UserStore(engine).save(User(email="ada@example.com", name="Ada", hashed_password="$2b$hash", roles={"ROLE_OWNER"}))
    engine.dispose()
    capsys.readouterr()

    assert main(["--db-url", url, "show-user", "ada@example.com"]) == 0
    out = capsys.readouterr().out
    assert "ada@example.com" in out
    assert "ROLE_OWNER" in out
    assert "$2b$hash" not in out

    assert main(["--db-url", url, "show-user", "nobody@example.com"]) == 1


def test_no_command_prints_help(capsys) -> None:
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out.lower()
