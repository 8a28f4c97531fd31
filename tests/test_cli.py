"""Tests for the command-line entry point."""

from __future__ import annotations

import asyncio

import pytest

from openstack_check_exporter import main as cli

from conftest import FakeCheck

SETTINGS_YAML = """\
default:
  global:
    interval: 30
  nova_list_flavors:
  glance_show_image:
    image: cirros
clouds:
  prod:
    glance_show_image:
      image: ubuntu
"""


@pytest.fixture
def settings_file(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS_YAML)
    return str(path)


class TestShowCloudOptions:
    def test_resolved_options(self, settings_file, capsys):
        cli.main(["-f", settings_file, "-c", "prod", "show-cloud-options"])
        out = capsys.readouterr().out
        assert out.splitlines() == [
            "glance_show_image:",
            "  image: ubuntu",
            "  interval: 30",
            "  timeout: 10",
            "nova_list_flavors:",
            "  interval: 30",
            "  timeout: 10",
        ]

    def test_several_clouds(self, settings_file, capsys):
        cli.main(["-f", settings_file, "-c", "prod", "-c", "dev", "show-cloud-options"])
        out = capsys.readouterr().out
        assert "# prod" in out
        assert "# dev" in out
        assert "  image: cirros" in out

    def test_missing_settings_file(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-f", str(tmp_path / "missing.yaml"), "show-cloud-options"])
        assert exc_info.value.code == 2
        assert "Settings file not found" in capsys.readouterr().out


class TestOnce:
    @pytest.fixture
    def use_checks(self, monkeypatch, make_manager):
        """Make ``once`` run the given FakeChecks instead of the real ones."""
        created = []

        def install(*checks):
            def fake_create_managers(settings_file, clouds, factories=None):
                created.append((settings_file, list(clouds)))
                return [make_manager(list(checks))]

            monkeypatch.setattr(cli, "create_managers", fake_create_managers)
            return created

        return install

    def test_all_healthy(self, settings_file, use_checks, capsys):
        created = use_checks(FakeCheck("A"), FakeCheck("B"))
        cli.main(["-f", settings_file, "-c", "prod", "once"])
        out = capsys.readouterr().out
        assert "Name     A" in out
        assert "Name     B" in out
        assert created == [(settings_file, ["prod"])]

    def test_failure_exits_one(self, settings_file, use_checks):
        use_checks(FakeCheck("A"), FakeCheck("B", fail=True))
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-f", settings_file, "once"])
        assert exc_info.value.code == 1

    def test_selected_checks_only(self, settings_file, use_checks):
        a, b = FakeCheck("A"), FakeCheck("B")
        use_checks(a, b)
        cli.main(["-f", settings_file, "once", "B"])
        assert a.runs == 0
        assert b.runs == 1

    def test_run_once_reports_result(self, make_manager):
        manager = make_manager([FakeCheck("A", fail=True)])
        assert asyncio.run(cli.run_once([manager], [])) is False


class TestCreateManagers:
    def test_one_manager_per_cloud_from_environment(self, settings_file, monkeypatch):
        monkeypatch.setenv("OS_AUTH_URL", "http://keystone:5000/v3")
        seen = []

        def factory(cloud_config, options):
            seen.append(options.get_int("nova_list_flavors", "interval"))
            return FakeCheck("nova_list_flavors")

        managers = cli.create_managers(settings_file, [""], factories=[factory])
        assert len(managers) == 1
        assert managers[0].cloud_config.auth_url == "http://keystone:5000/v3"
        assert seen == [30]

    def test_unknown_cloud(self, settings_file, tmp_path, monkeypatch):
        monkeypatch.setenv("OS_CLIENT_CONFIG_FILE", str(tmp_path / "clouds.yaml"))
        monkeypatch.chdir(tmp_path)
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-f", settings_file, "-c", "nowhere", "once"])
        assert exc_info.value.code == 2


class TestServe:
    def test_negative_history_size_is_a_configuration_error(self, settings_file, monkeypatch, capsys):
        started = []
        monkeypatch.setattr(cli.settings, "history_max_count", -1)
        monkeypatch.setattr(cli, "create_managers", lambda *args, **kwargs: [])
        monkeypatch.setattr(cli.uvicorn, "run", lambda *args, **kwargs: started.append(args))

        with pytest.raises(SystemExit) as exc_info:
            cli.main(["-f", settings_file, "serve"])
        assert exc_info.value.code == 2
        assert "history_max_count" in capsys.readouterr().out
        assert started == []

    def test_serve_starts_uvicorn(self, settings_file, monkeypatch):
        started = []
        monkeypatch.setattr(cli, "create_managers", lambda *args, **kwargs: [])
        monkeypatch.setattr(cli.uvicorn, "run", lambda app, **kwargs: started.append(kwargs))

        cli.main(["-f", settings_file, "serve", "--host", "127.0.0.1", "--port", "9100"])
        assert started[0]["host"] == "127.0.0.1"
        assert started[0]["port"] == 9100


class TestNoCommand:
    def test_prints_help(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main([])
        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out
