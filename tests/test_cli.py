"""Tests for the driver CLI and configuration validation."""
import pytest

from referral_scraper import main as cli
from referral_scraper.config import Config


def test_missing_url_exits_with_usage(capsys):
    """Test no positional argument exits 1 with a usage line."""
    with pytest.raises(SystemExit) as exc:
        cli.main([])
    assert exc.value.code == 1
    assert "Usage:" in capsys.readouterr().err


@pytest.mark.parametrize("url", ["https://www.reddit.com/user/someone/", "referralcodes"])
def test_malformed_url_exits(url, capsys):
    """Test URLs outside /r/<channel>/ are rejected."""
    with pytest.raises(SystemExit) as exc:
        cli.main([url])
    assert exc.value.code == 1
    assert "Usage:" in capsys.readouterr().err


def test_missing_api_key_exits(monkeypatch):
    """Test the Gemini key is required before anything runs."""
    monkeypatch.setattr(cli.config, "GEMINI_API_KEY", None)
    called = []
    monkeypatch.setattr(cli, "build_runner", lambda *a, **k: called.append(a))
    with pytest.raises(SystemExit) as exc:
        cli.main(["https://www.reddit.com/r/referralcodes/"])
    assert exc.value.code == 1
    assert called == []


def test_fatal_error_exits_after_grace(monkeypatch):
    """Test an uncaught runner exception is logged and exits 1."""

    class BoomRunner:
        async def run(self):
            raise RuntimeError("boom")

    slept = []
    monkeypatch.setattr(cli.config, "GEMINI_API_KEY", "test-key")
    monkeypatch.setattr(cli.config, "EXIT_GRACE", 0.25)
    monkeypatch.setattr(cli.config, "ensure_dirs", lambda: None)
    monkeypatch.setattr(cli, "build_runner", lambda *a, **k: BoomRunner())
    monkeypatch.setattr(cli.time, "sleep", slept.append)

    with pytest.raises(SystemExit) as exc:
        cli.main(["https://www.reddit.com/r/referralcodes/"])
    assert exc.value.code == 1
    assert slept == [0.25]


def test_config_validate(tmp_path):
    """Test configuration errors are collected."""
    Config(GEMINI_API_KEY="key").validate()
    Config(GEMINI_API_KEY=None).validate(require_gemini=False)

    with pytest.raises(ValueError) as exc:
        Config(GEMINI_API_KEY=None, GEMINI_RATE_LIMIT=0, GEMINI_BATCH_SIZE=0).validate()
    message = str(exc.value)
    assert "GEMINI_API_KEY" in message
    assert "GEMINI_RATE_LIMIT" in message
    assert "GEMINI_BATCH_SIZE" in message


def test_config_reads_environment(monkeypatch):
    """Test defaults come from the environment at construction time."""
    monkeypatch.setenv("GEMINI_RATE_LIMIT", "30")
    monkeypatch.setenv("POSTS_PER_PAGE", "50")
    cfg = Config()
    assert cfg.GEMINI_RATE_LIMIT == 30
    assert cfg.POSTS_PER_PAGE == 50


@pytest.mark.parametrize("flag", ["--max-pages", "--page-size", "--batch-size", "--rate-limit"])
def test_zero_override_reaches_validation(flag, monkeypatch):
    """Test an explicit zero override is applied and rejected, not ignored."""
    for name in ("MAX_PAGES", "POSTS_PER_PAGE", "GEMINI_BATCH_SIZE", "GEMINI_RATE_LIMIT"):
        monkeypatch.setattr(cli.config, name, getattr(cli.config, name))
    monkeypatch.setattr(cli.config, "GEMINI_API_KEY", "test-key")
    called = []
    monkeypatch.setattr(cli, "build_runner", lambda *a, **k: called.append(a))

    with pytest.raises(SystemExit) as exc:
        cli.main(["https://www.reddit.com/r/referralcodes/", flag, "0"])
    assert exc.value.code == 1
    assert called == []
