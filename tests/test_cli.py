"""Tests for CLI commands via Typer CliRunner."""

import json

import httpx
from typer.testing import CliRunner

from deepcompare.cli.main import app
from deepcompare.compare.client import BackendClient
from deepcompare.compare.coordinator import ComparisonCoordinator
from deepcompare.core.history import HistoryStore
from deepcompare.core.models import Result, Session

from conftest import FakeBackend, frame

runner = CliRunner()


def _write_keys(tmp_path, **keys):
    (tmp_path / "api-keys.json").write_text(json.dumps(keys), encoding="utf-8")


class TestKeysCommand:
    def test_set_then_status(self, user_config, tmp_path):
        result = runner.invoke(app, ["keys", "set", "zhipu", "sk-abc"])
        assert result.exit_code == 0
        assert "Key saved for zhipu" in result.output

        result = runner.invoke(app, ["keys", "status"])
        assert result.exit_code == 0
        assert "1/3 configured" in result.output
        stored = json.loads((tmp_path / "api-keys.json").read_text())
        assert stored == {"zhipu": "sk-abc"}

    def test_export_and_import(self, user_config, tmp_path):
        _write_keys(tmp_path, zhipu="a", kimi="b")
        exported = tmp_path / "out.json"
        assert runner.invoke(app, ["keys", "export", str(exported)]).exit_code == 0
        assert json.loads(exported.read_text()) == {"zhipu": "a", "kimi": "b"}

        runner.invoke(app, ["keys", "clear", "--yes"])
        result = runner.invoke(app, ["keys", "import", str(exported)])
        assert result.exit_code == 0
        assert "Imported 2 keys" in result.output

    def test_import_invalid_file(self, user_config, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"other": "x"}')
        result = runner.invoke(app, ["keys", "import", str(bad)])
        assert result.exit_code == 1
        assert "Invalid key file format" in result.output

    def test_clear_aborted_without_confirmation(self, user_config, tmp_path):
        _write_keys(tmp_path, zhipu="a")
        result = runner.invoke(app, ["keys", "clear"], input="n\n")
        assert result.exit_code == 0
        assert json.loads((tmp_path / "api-keys.json").read_text()) == {"zhipu": "a"}


    def test_unreadable_key_file(self, user_config, tmp_path):
        (tmp_path / "api-keys.json").write_text("[]", encoding="utf-8")
        result = runner.invoke(app, ["keys", "status"])
        assert result.exit_code == 1
        assert "Invalid key file format" in result.output

        assert runner.invoke(app, ["keys", "clear", "--yes"]).exit_code == 0
        assert runner.invoke(app, ["keys", "status"]).exit_code == 0


class TestWebCommand:
    def test_launches_uvicorn(self, user_config, monkeypatch):
        calls = []
        monkeypatch.setattr("uvicorn.run", lambda target, **kwargs: calls.append((target, kwargs)))
        result = runner.invoke(app, ["web", "--port", "9001"])
        assert result.exit_code == 0
        assert calls == [(
            "deepcompare.web.app:app",
            {"host": "127.0.0.1", "port": 9001, "log_level": "info"},
        )]
        assert "http://127.0.0.1:9001" in result.output
        assert "/compare/progress" in result.output
        assert "http://backend.test" in result.output


class TestHistoryCommand:
    def _save(self, tmp_path):
        store = HistoryStore(tmp_path / "history.json")
        store.save(Session("sess-1", "compare latency", "2026-01-01T00:00:00+00:00",
                           (Result("zhipu", 60.0, True, word_count=10),)))

    def test_list_empty(self, user_config):
        result = runner.invoke(app, ["history", "list"])
        assert result.exit_code == 0
        assert "No saved sessions" in result.output

    def test_list_and_show(self, user_config, tmp_path):
        self._save(tmp_path)
        result = runner.invoke(app, ["history", "list"])
        assert result.exit_code == 0
        assert "sess-1" in result.output
        assert "1/1" in result.output

        result = runner.invoke(app, ["history", "show", "sess-1"])
        assert result.exit_code == 0
        assert "compare latency" in result.output

    def test_show_missing(self, user_config):
        result = runner.invoke(app, ["history", "show", "nope"])
        assert result.exit_code == 1

    def test_delete(self, user_config, tmp_path):
        self._save(tmp_path)
        assert runner.invoke(app, ["history", "delete", "sess-1"]).exit_code == 0
        assert runner.invoke(app, ["history", "delete", "sess-1"]).exit_code == 1


class TestConfigCommand:
    def test_set_and_show(self, user_config):
        result = runner.invoke(app, ["config", "set", "run.timeout_s", "90"])
        assert result.exit_code == 0

        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "timeout_s = 90.0" in result.output
        assert "url = 'http://backend.test'" in result.output

    def test_unknown_key(self, user_config):
        result = runner.invoke(app, ["config", "set", "backend.port", "1"])
        assert result.exit_code == 1

    def test_invalid_value(self, user_config):
        result = runner.invoke(app, ["config", "set", "run.timeout_s", "later"])
        assert result.exit_code == 1
        assert "Invalid value" in result.output


class TestMetricsCommand:
    def _patch_client(self, monkeypatch, handler):
        def from_config(config, **kwargs):
            return BackendClient(config["backend"]["url"], transport=httpx.MockTransport(handler))

        monkeypatch.setattr(BackendClient, "from_config", staticmethod(from_config))

    def test_shows_metrics(self, user_config, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(200, json={
            "models": [{"model": "kimi", "total_requests": 2, "success_rate": 100.0,
                        "average_duration": 75.0}],
            "total_requests": 2,
        }))
        result = runner.invoke(app, ["metrics"])
        assert result.exit_code == 0
        assert "Total comparisons: 2" in result.output
        assert "Kimi K2 Thinking" in result.output

    def test_empty(self, user_config, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(200, json={"models": []}))
        result = runner.invoke(app, ["metrics"])
        assert result.exit_code == 0
        assert "No comparisons recorded yet" in result.output

    def test_backend_down(self, user_config, monkeypatch):
        self._patch_client(monkeypatch, lambda request: httpx.Response(500))
        result = runner.invoke(app, ["metrics"])
        assert result.exit_code == 1
        assert "Could not load metrics" in result.output


class TestCompareCommand:
    def test_missing_keys(self, user_config):
        """Validation fails before any request is made."""
        result = runner.invoke(app, ["compare", "what is RAG?", "-m", "zhipu"])
        assert result.exit_code == 1
        assert "Missing API keys for" in result.output

    def test_unreadable_key_file(self, user_config, tmp_path):
        (tmp_path / "api-keys.json").write_text("{oops", encoding="utf-8")
        result = runner.invoke(app, ["compare", "q", "-m", "zhipu"])
        assert result.exit_code == 1
        assert "Invalid key file format" in result.output

    def test_run_with_fake_backend(self, user_config, tmp_path, monkeypatch):
        _write_keys(tmp_path, zhipu="a", kimi="b")
        backend = FakeBackend([
            frame(type="session_start", session_id="cli-1"),
            frame(type="model_complete", model="zhipu", elapsed=20,
                  summary={"word_count": 400, "sources_found": 3, "duration": 20}),
            frame(type="model_error", model="kimi", error="rate limited"),
        ])
        history = HistoryStore(tmp_path / "history.json")
        monkeypatch.setattr(
            "deepcompare.cli.compare_cmd.build_coordinator",
            lambda config: ComparisonCoordinator(backend, history=history),
        )

        result = runner.invoke(app, ["compare", "what is RAG?", "-m", "zhipu", "-m", "kimi"])
        assert result.exit_code == 0, result.output
        assert backend.requests[0]["api_keys"] == {"zhipu": "a", "kimi": "b"}
        assert "Query: \"what is RAG?\"" in result.output
        assert backend.closed
        assert history.get("cli-1") is not None
