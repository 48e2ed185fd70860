import pytest

from shopfront.cli import main
from shopfront.cli._routes import format_routes


@pytest.fixture
def shop_env(tmp_path, monkeypatch):
    monkeypatch.setenv("SHOPFRONT_DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("SHOPFRONT_SECRET_KEY", "cli-secret")
    return tmp_path


class TestMain:
    def test_no_command_prints_help(self, capsys) -> None:
        with pytest.raises(SystemExit) as info:
            main([])
        assert info.value.code == 0
        assert "create-admin" in capsys.readouterr().out

    def test_help_flag(self) -> None:
        with pytest.raises(SystemExit) as info:
            main(["--help"])
        assert info.value.code == 0

    def test_unknown_command(self) -> None:
        with pytest.raises(SystemExit) as info:
            main(["frobnicate"])
        assert info.value.code == 2


class TestMigrate:
    def test_applies_then_reports_up_to_date(self, shop_env, capsys) -> None:
        main(["migrate"])
        assert "Applied 1 migration(s): 001_initial_schema" in capsys.readouterr().out
        main(["migrate"])
        assert "Already up to date (1 migrations applied)" in capsys.readouterr().out


class TestCreateAdmin:
    ARGS = ["create-admin", "--email", "root@example.com", "--password", "Secret123!"]

    def test_creates_administrator(self, shop_env, capsys) -> None:
        main(self.ARGS)
        assert "Created administrator #1 <root@example.com>" in capsys.readouterr().out

    def test_duplicate_email_fails(self, shop_env, capsys) -> None:
        main(self.ARGS)
        capsys.readouterr()
        with pytest.raises(SystemExit) as info:
            main(self.ARGS)
        assert info.value.code == 1
        assert "Error: Email address is already registered" in capsys.readouterr().err

    def test_weak_password_fails(self, shop_env, capsys) -> None:
        with pytest.raises(SystemExit):
            main(["create-admin", "--email", "root@example.com", "--password", "short"])
        assert "Error:" in capsys.readouterr().err


class TestRoutes:
    def test_table_layout(self, app) -> None:
        lines = format_routes(app.router.routes)
        assert lines[0].split() == ["METHOD", "PATH", "HANDLER", "MIDDLEWARE"]
        assert len(lines) == len(app.router.routes) + 1
        home = next(line for line in lines if "HomeController.index" in line)
        assert home.split() == ["GET", "/", "HomeController.index", "-"]
        login = [line for line in lines if line.startswith("POST") and " /login " in line]
        assert login[0].rstrip().endswith("throttle, csrf")

    def test_command_prints_table(self, shop_env, capsys) -> None:
        main(["routes"])
        out = capsys.readouterr().out
        assert "AuthController.login" in out
        assert "/admin/products" in out
