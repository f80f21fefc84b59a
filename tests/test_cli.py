"""Tests for the contentformer CLI."""

from __future__ import annotations

import asyncio
import json

import pytest

from contentformer import main as cli
from contentformer.agents.invoker import ModelInvoker


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "PREFERRED_PROVIDER"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_invoker(monkeypatch, test_settings, fake_provider):
    """Make the CLI build invokers that talk to the fake provider."""

    def build(settings, costs=None):
        return ModelInvoker(test_settings, provider_factory=lambda p, k: fake_provider, costs=costs)

    monkeypatch.setattr(cli, "ModelInvoker", build)


class TestCLI:
    def test_save_config(self, tmp_path) -> None:
        config_file = tmp_path / "api_config.json"
        code = asyncio.run(
            cli.main(
                [
                    "--save-config",
                    "--openai-key",
                    "sk-o",
                    "--provider",
                    "openai",
                    "--config-file",
                    str(config_file),
                ]
            )
        )
        assert code == 0
        saved = json.loads(config_file.read_text())
        assert saved == {"anthropicApiKey": "", "openaiApiKey": "sk-o", "preferredProvider": "openai"}

    def test_save_config_skips_environment_keys(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        config_file = tmp_path / "api_config.json"
        code = asyncio.run(
            cli.main(["--save-config", "--openai-key", "sk-o", "--config-file", str(config_file)])
        )
        assert code == 0
        saved = json.loads(config_file.read_text())
        assert saved["anthropicApiKey"] == ""
        assert saved["openaiApiKey"] == "sk-o"

    def test_requires_transcript(self, tmp_path, capsys) -> None:
        code = asyncio.run(cli.main(["--config-file", str(tmp_path / "c.json")]))
        assert code == 1
        assert "transcript file is required" in capsys.readouterr().out

    def test_run_all(self, tmp_path, capsys, fake_invoker, sample_transcript) -> None:
        transcript = tmp_path / "talk.txt"
        transcript.write_text(sample_transcript)
        output = tmp_path / "session.json"

        code = asyncio.run(
            cli.main(
                [
                    str(transcript),
                    "--anthropic-key",
                    "sk-a",
                    "--config-file",
                    str(tmp_path / "c.json"),
                    "--output",
                    str(output),
                ]
            )
        )

        assert code == 0
        out = capsys.readouterr().out
        assert "Why AI pilots stall" in out
        assert "Big news on LinkedIn #AI" in out
        session = json.loads(output.read_text())
        assert session["state"]["stage"] == "complete"
        assert len(session["scripts"]) == 3

    def test_step_mode(self, tmp_path, fake_invoker, sample_transcript) -> None:
        transcript = tmp_path / "talk.txt"
        transcript.write_text(sample_transcript)
        output = tmp_path / "session.json"

        code = asyncio.run(
            cli.main(
                [
                    str(transcript),
                    "--mode",
                    "step",
                    "--idea-index",
                    "2",
                    "--anthropic-key",
                    "sk-a",
                    "--config-file",
                    str(tmp_path / "c.json"),
                    "--output",
                    str(output),
                ]
            )
        )

        assert code == 0
        session = json.loads(output.read_text())
        assert len(session["scripts"]) == 1
        assert session["scripts"][0]["ideaId"] == session["ideas"][2]["id"]
        assert len(session["posts"]) == 1

    def test_missing_key_fails(self, tmp_path, capsys, fake_invoker, sample_transcript) -> None:
        transcript = tmp_path / "talk.txt"
        transcript.write_text(sample_transcript)

        code = asyncio.run(cli.main([str(transcript), "--config-file", str(tmp_path / "c.json")]))
        assert code == 1
        assert "Anthropic API key is missing" in capsys.readouterr().out
