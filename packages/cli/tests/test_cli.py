"""Tests for the CLI entry point."""

import subprocess
from unittest.mock import MagicMock

import yaml
from click.testing import CliRunner

from ghprofile_cli.auth import resolve_github_token
from ghprofile_cli.cli import main
from ghprofile_cli.commands.profile import _build_cache
from ghprofile_core.discovery import DiscoveryError
from ghprofile_core.models import RepoResult, RepoTarget
from ghprofile_core.profiler import ProfileReport
from ghprofile_store.disk import DiskCache
from ghprofile_store.noop import NoOpCache


def _make_config(github_token="tok", provider="openai", openai_key="oai", anthropic_key=None, out_dir="out"):
    return {
        "github_token": github_token,
        "provider": provider,
        "model": None,
        "api_key": None,
        "endpoint": None,
        "openai_api_key": openai_key,
        "anthropic_api_key": anthropic_key,
        "gemini_api_key": None,
        "out_dir": out_dir,
        "cache_dir": None,
        "repos_limit": 10,
        "chunks_per_repo": 6,
    }


def _report(user="octo"):
    results = [
        RepoResult(RepoTarget("octo", "cat", "main"), score=82, strengths=["idiomatic code"], files=6, chunks=6),
        RepoResult(RepoTarget("octo", "dog", "main"), error="tree listing failed: 409"),
    ]
    return ProfileReport(user=user, results=results, headline="Careful Go developer.", html="<html>ok</html>")


def _patch_common(mocker, config=None, token="tok"):
    """Patch load_config, resolve_github_token, get_provider and _build_cache for most tests."""
    cfg = config or _make_config()
    mocker.patch("ghprofile_core.config.load_config", return_value=cfg)
    mocker.patch("ghprofile_cli.auth.resolve_github_token", return_value=token)
    provider = MagicMock()
    mocker.patch("ghprofile_core.profiler.get_provider", return_value=provider)
    cache = NoOpCache()
    mocker.patch("ghprofile_cli.commands.profile._build_cache", return_value=cache)
    return cfg, provider, cache


class TestProfileValidation:
    def test_user_is_required(self):
        result = CliRunner().invoke(main, ["profile"])
        assert result.exit_code != 0
        assert "--user" in result.output

    def test_missing_github_token(self, mocker):
        _patch_common(mocker, config=_make_config(github_token=None), token=None)
        result = CliRunner().invoke(main, ["profile", "--user", "octo"])
        assert result.exit_code != 0
        assert "GITHUB_TOKEN" in result.output

    def test_missing_openai_key(self, mocker):
        _patch_common(mocker, config=_make_config(openai_key=None))
        result = CliRunner().invoke(main, ["profile", "--user", "octo"])
        assert result.exit_code != 0
        assert "OPENAI_API_KEY" in result.output

    def test_missing_prompt_file_is_usage_error(self, mocker, tmp_path):
        cfg = _make_config(out_dir=str(tmp_path))
        cfg["prompt_path"] = str(tmp_path / "nope.txt")
        _patch_common(mocker, config=cfg)
        run = mocker.patch("ghprofile_core.profiler.run_profile")

        result = CliRunner().invoke(main, ["profile", "--user", "octo"])

        assert result.exit_code == 2
        assert "Prompt file not found" in result.output
        run.assert_not_called()

    def test_missing_anthropic_key(self, mocker):
        _patch_common(mocker, config=_make_config(provider="anthropic"))
        result = CliRunner().invoke(main, ["profile", "--user", "octo"])
        assert result.exit_code != 0
        assert "ANTHROPIC_API_KEY" in result.output

    def test_unknown_provider_choice_rejected(self):
        result = CliRunner().invoke(main, ["profile", "--user", "octo", "--provider", "llama"])
        assert result.exit_code != 0

    def test_missing_sdk_is_usage_error(self, mocker):
        _patch_common(mocker)
        mocker.patch("ghprofile_core.profiler.get_provider", side_effect=ImportError("openai package is required"))
        result = CliRunner().invoke(main, ["profile", "--user", "octo"])
        assert result.exit_code == 2
        assert "openai package is required" in result.output


class TestProfileRun:
    def test_writes_report(self, mocker, tmp_path):
        cfg, provider, cache = _patch_common(mocker, config=_make_config(out_dir=str(tmp_path)))
        run = mocker.patch("ghprofile_core.profiler.run_profile", return_value=_report())

        result = CliRunner().invoke(main, ["profile", "--user", "octo"])

        assert result.exit_code == 0, result.output
        run.assert_called_once_with("octo", cfg, provider=provider, prompts=mocker.ANY, cache=cache)
        assert "readability" in run.call_args.kwargs["prompts"].code_review
        assert (tmp_path / "profile-octo.html").read_text() == "<html>ok</html>"
        assert "octo/cat" in result.output
        assert "Careful Go developer." in result.output
        assert "profile-octo.html" in result.output

    def test_token_stored_in_config(self, mocker, tmp_path):
        cfg, _, _ = _patch_common(mocker, config=_make_config(github_token=None, out_dir=str(tmp_path)), token="gh-cli")
        mocker.patch("ghprofile_core.profiler.run_profile", return_value=_report())
        CliRunner().invoke(main, ["profile", "--user", "octo"])
        assert cfg["github_token"] == "gh-cli"

    def test_cli_flags_become_overrides(self, mocker, tmp_path):
        load = mocker.patch("ghprofile_core.config.load_config", return_value=_make_config(out_dir=str(tmp_path)))
        mocker.patch("ghprofile_cli.auth.resolve_github_token", return_value="tok")
        mocker.patch("ghprofile_core.profiler.get_provider", return_value=MagicMock())
        mocker.patch("ghprofile_cli.commands.profile._build_cache", return_value=NoOpCache())
        mocker.patch("ghprofile_core.profiler.run_profile", return_value=_report())

        CliRunner().invoke(
            main,
            ["--config", "custom.yml", "profile", "-u", "octo", "--provider", "gemini"]
            + ["--limit", "3", "--chunks", "2"],
        )

        args, kwargs = load.call_args
        assert args[0] == "custom.yml"
        overrides = kwargs["cli_overrides"]
        assert overrides["provider"] == "gemini"
        assert overrides["repos_limit"] == 3
        assert overrides["chunks_per_repo"] == 2
        assert overrides["model"] is None

    def test_discovery_error_aborts(self, mocker, tmp_path):
        _patch_common(mocker, config=_make_config(out_dir=str(tmp_path)))
        mocker.patch("ghprofile_core.profiler.run_profile", side_effect=DiscoveryError("No repositories for @octo"))

        result = CliRunner().invoke(main, ["profile", "--user", "octo"])

        assert result.exit_code == 1
        assert "No repositories for @octo" in result.output
        assert not (tmp_path / "profile-octo.html").exists()


class TestBuildCache:
    def test_no_cache_flag(self):
        assert isinstance(_build_cache({}, no_cache=True), NoOpCache)

    def test_disk_cache_in_configured_dir(self, tmp_path):
        cache = _build_cache({"cache_dir": str(tmp_path)}, no_cache=False)
        assert isinstance(cache, DiskCache)


class TestInit:
    def test_writes_config(self, tmp_path):
        path = tmp_path / ".ghprofile.yml"
        answers = "\n".join(["anthropic", "claude-sonnet-4-20250514", "5", "4", "2", "30", "y", "reports"]) + "\n"

        result = CliRunner().invoke(main, ["--config", str(path), "init"], input=answers)

        assert result.exit_code == 0, result.output
        written = yaml.safe_load(path.read_text())
        assert written["provider"] == "anthropic"
        assert written["model"] == "claude-sonnet-4-20250514"
        assert written["repos_limit"] == 5
        assert written["requests_per_minute"] == 30
        assert written["exclude_forks"] is True
        assert written["out_dir"] == "reports"
        assert "ANTHROPIC_API_KEY" in result.output

    def test_preserves_existing_keys(self, tmp_path):
        path = tmp_path / ".ghprofile.yml"
        path.write_text("exclude_repos:\n  - dotfiles\nprovider: gemini\n")

        result = CliRunner().invoke(main, ["--config", str(path), "init"], input="\n" * 8)

        assert result.exit_code == 0, result.output
        written = yaml.safe_load(path.read_text())
        assert written["exclude_repos"] == ["dotfiles"]
        assert written["provider"] == "openai"
        assert "model" not in written


class TestResolveGithubToken:
    def test_configured_token_wins(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env")
        assert resolve_github_token("configured") == "configured"

    def test_env_token(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "env")
        assert resolve_github_token() == "env"

    def test_gh_cli_fallback(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch(
            "ghprofile_cli.auth.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout="gho_abc\n"),
        )
        assert resolve_github_token() == "gho_abc"

    def test_gh_not_installed(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch("ghprofile_cli.auth.subprocess.run", side_effect=FileNotFoundError)
        assert resolve_github_token() is None

    def test_gh_not_logged_in(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch(
            "ghprofile_cli.auth.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout=""),
        )
        assert resolve_github_token() is None

    def test_gh_timeout(self, monkeypatch, mocker):
        monkeypatch.delenv("GITHUB_TOKEN", raising=False)
        mocker.patch(
            "ghprofile_cli.auth.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd=["gh", "auth", "token"], timeout=5),
        )
        assert resolve_github_token() is None
