# File: tests/test_cli.py
"""Tests for the CLI (`virgo.cli`) using click.testing.CliRunner.
Cover `fetch`, `config`, `--version` and error handling.
"""
import json
import logging

import pytest
from click.testing import CliRunner

import virgo.cli as cli_module
from virgo.cli import cli
from virgo.errors import TransportError
from virgo.fetcher.models import Result

from conftest import make_result


@pytest.fixture(autouse=True)
def isolated_cli(tmp_path, monkeypatch):
    """Run in an empty directory (no configs/default.yaml) and drop CLI log handlers afterwards."""
    monkeypatch.chdir(tmp_path)
    yield
    lg = logging.getLogger("virgo")
    for handler in list(lg.handlers):
        lg.removeHandler(handler)
        handler.close()
    lg.addHandler(logging.NullHandler())
    lg.setLevel(logging.NOTSET)
    lg.propagate = True


@pytest.fixture()
def fake_fetch(monkeypatch):
    """Patch run_fetch to return canned results without any network traffic."""
    calls = []

    async def fake_run_fetch(options, urls, proxy=None, on_result=None):
        calls.append({"options": options, "urls": list(urls), "proxy": proxy})
        results = []
        for url in urls:
            if "down" in url:
                result = Result.failure(url, TransportError("request failed", url=url))
            else:
                result = make_result(url, body=b"hi")
            results.append(result)
            if on_result is not None:
                on_result(result)
        return results

    monkeypatch.setattr(cli_module, "run_fetch", fake_run_fetch)
    return calls


def write_config(tmp_path, data) -> str:
    cfg_file = tmp_path / "options.json"
    cfg_file.write_text(json.dumps(data), encoding="utf-8")
    return str(cfg_file)


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "virgo" in result.output


def test_show_config(tmp_path):
    cfg = write_config(tmp_path, {"method": "HEAD", "concurrency": 3, "headers": {"Accept": "*/*"}})

    runner = CliRunner()
    result = runner.invoke(cli, ["--config", cfg, "config"])
    assert result.exit_code == 0
    data = json.loads(result.stdout)
    assert data["method"] == "HEAD"
    assert data["concurrency"] == 3
    assert data["headers"] == {"Accept": "*/*"}
    assert data["timeout_ms"] == 60000


def test_show_config_invalid(tmp_path):
    cfg = write_config(tmp_path, {"concurrency": 0})
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", cfg, "config"])
    assert result.exit_code == 1


def test_fetch_prints_json_lines(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "http://example.com/a", "http://down.example/"])
    assert result.exit_code == 0

    lines = [json.loads(line) for line in result.stdout.splitlines()]
    assert len(lines) == 2
    by_url = {line["url"]: line for line in lines}
    assert by_url["http://example.com/a"]["status"] == 200
    assert by_url["http://example.com/a"]["size"] == 2
    assert "body" not in by_url["http://example.com/a"]
    assert by_url["http://down.example/"]["error_type"] == "TransportError"


def test_fetch_overrides_options(tmp_path, fake_fetch):
    cfg = write_config(tmp_path, {"user_agent": "FromFile/1.0", "headers": {"X-A": "1"}})
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            "--config", cfg,
            "fetch",
            "-X", "POST",
            "-H", "X-B: 2",
            "-H", "User-Agent: Custom-Agent/1.0",
            "-d", "payload",
            "-b", "sid=1",
            "--timeout", "1500",
            "-n", "2",
            "-L",
            "--proxy", "http://proxy.local:3128",
            "http://example.com/",
        ],
    )
    assert result.exit_code == 0

    [call] = fake_fetch
    opts = call["options"]
    assert opts.method == "POST"
    assert opts.headers == {"X-A": "1", "X-B": "2", "User-Agent": "Custom-Agent/1.0"}
    assert opts.user_agent == "FromFile/1.0"
    assert opts.body == b"payload"
    assert opts.cookie == "sid=1"
    assert opts.timeout_ms == 1500
    assert opts.concurrency == 2
    assert opts.follow_redirects is True
    assert call["proxy"] == "http://proxy.local:3128"


def test_fetch_reads_input_file(tmp_path, fake_fetch):
    url_file = tmp_path / "urls.txt"
    url_file.write_text("# targets\nhttp://example.com/1\n\nhttp://example.com/2\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "-i", str(url_file), "http://example.com/0"])
    assert result.exit_code == 0
    assert fake_fetch[0]["urls"] == ["http://example.com/0", "http://example.com/1", "http://example.com/2"]


def test_fetch_json_report(tmp_path, fake_fetch):
    out = tmp_path / "reports" / "run.json"
    runner = CliRunner()
    result = runner.invoke(
        cli, ["fetch", "--json", str(out), "--pretty", "--include-body", "http://example.com/", "http://down/"]
    )
    assert result.exit_code == 0
    assert "JSON report" in result.stdout

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["summary"] == {
        "total": 2,
        "ok": 1,
        "failed": 1,
        "statuses": {"200": 1},
        "errors": {"TransportError": 1},
    }
    bodies = [r.get("body") for r in data["results"]]
    assert "hi" in bodies


def test_fetch_rejects_non_positive_concurrency(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "-n", "0", "http://example.com/"])
    assert result.exit_code == 1
    assert fake_fetch == []


def test_fetch_bad_header(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "-H", "no-colon", "http://example.com/"])
    assert result.exit_code == 2
    assert fake_fetch == []


def test_fetch_without_urls(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch"])
    assert result.exit_code == 1
    assert fake_fetch == []


def test_fetch_rejects_invalid_method(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "-X", "BAD METHOD", "http://example.com/"])
    assert result.exit_code == 1
    assert fake_fetch == []


def test_fetch_upper_cases_method(fake_fetch):
    runner = CliRunner()
    result = runner.invoke(cli, ["fetch", "-X", "post", "http://example.com/"])
    assert result.exit_code == 0
    assert fake_fetch[0]["options"].method == "POST"
