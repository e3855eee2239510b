"""Tests for glossary_extractor.cli module."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from glossary_extractor import cli
from glossary_extractor.pydantic_models.glossary_models import ExtractionResult, GlossaryTerm, RunUsage, UsageTotals


class TestParser:
    """Tests for argument parsing."""

    def test_extract_defaults(self):
        args = cli.build_parser().parse_args(["extract", "data.csv"])
        assert args.command == "extract"
        assert args.mode == "comprehensive"
        assert args.output == "outputs"
        assert args.dataset_id is None

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["extract", "data.csv", "--mode", "deep"])

    def test_command_required(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args([])

    def test_chat_arguments(self):
        args = cli.build_parser().parse_args(["chat", "What is churn?", "--dataset-id", "crm"])
        assert args.message == "What is churn?"
        assert args.dataset_id == "crm"

    def test_chat_session_arguments(self):
        args = cli.build_parser().parse_args(["chat", "Hi", "--session-id", "s1", "--user", "ana"])
        assert args.session_id == "s1"
        assert args.user == "ana"

    def test_chat_defaults_to_local_user_without_session(self):
        args = cli.build_parser().parse_args(["chat", "Hi"])
        assert args.session_id is None
        assert args.user == "local"

    def test_sessions_arguments(self):
        args = cli.build_parser().parse_args(["sessions", "rename", "s1", "--title", "KYC"])
        assert (args.action, args.session_id, args.title) == ("rename", "s1", "KYC")

    def test_sessions_unknown_action(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["sessions", "archive"])

    def test_session_id_required_for_delete(self):
        with pytest.raises(SystemExit) as exc:
            cli.main(["sessions", "delete"])
        assert exc.value.code == 2


class TestExtractCommand:
    """Tests for the extract command with the extractor mocked."""

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await cli.extract(str(tmp_path / "nope.csv")) is None

    @pytest.mark.asyncio
    async def test_missing_api_key(self, tmp_path, customer_csv, monkeypatch):
        path = tmp_path / "customers.csv"
        path.write_bytes(customer_csv)
        monkeypatch.setattr(cli, "_check_api_key", lambda: False)

        assert await cli.extract(str(path)) is None

    @pytest.mark.asyncio
    async def test_writes_json(self, tmp_path, customer_csv, monkeypatch):
        path = tmp_path / "customers.csv"
        path.write_bytes(customer_csv)
        monkeypatch.setattr(cli, "_check_api_key", lambda: True)
        result = ExtractionResult(terms=[GlossaryTerm(term="Customer", definition="A party")])

        with patch(
            "glossary_extractor.orchestrator.GlossaryExtractor.extract_from_file",
            new_callable=AsyncMock,
            return_value=result,
        ):
            output = await cli.extract(str(path), output_dir=str(tmp_path / "out"))

        assert output["dataset_id"] == "customers"
        written = json.loads((tmp_path / "out" / "json" / "customers.json").read_text(encoding="utf-8"))
        assert written["terms"][0]["term"] == "Customer"
        assert "usage" in written


def test_guess_mimetype(tmp_path):
    assert cli._guess_mimetype(tmp_path / "a.csv") == "text/csv"
    assert cli._guess_mimetype(tmp_path / "a.unknownext") == "application/octet-stream"


def test_format_usage():
    usage = RunUsage(
        calls=3,
        prompt_tokens=1200,
        completion_tokens=300,
        cost_usd=0.0125,
        by_purpose={
            "terms": UsageTotals(calls=2, prompt_tokens=1000, completion_tokens=250, cost_usd=0.01),
            "rules": UsageTotals(calls=1, prompt_tokens=200, completion_tokens=50, cost_usd=0.0025),
        },
    )

    assert cli.format_usage(usage).splitlines() == [
        "Model calls: 3",
        "Tokens: 1,500 (1,200 in, 300 out)",
        "Estimated cost: $0.0125",
        "  rules: 1 calls, 250 tokens, $0.0025",
        "  terms: 2 calls, 1,250 tokens, $0.0100",
    ]


class TestSessionsCommand:
    """Tests for the sessions command against a file database."""

    @pytest.mark.asyncio
    async def test_create_list_rename_delete(self, tmp_path, capsys):
        db = str(tmp_path / "chat.db")

        created = await cli.sessions("create", db, user_id="ana", title="KYC")
        assert created["title"] == "KYC"

        renamed = await cli.sessions("rename", db, user_id="ana", session_id=created["id"], title="AML")
        assert renamed["title"] == "AML"

        listed = await cli.sessions("list", db, user_id="ana")
        assert [s["id"] for s in listed] == [created["id"]]
        assert await cli.sessions("messages", db, user_id="ana", session_id=created["id"]) == []

        assert await cli.sessions("delete", db, user_id="ana", session_id=created["id"]) == {
            "deleted": created["id"]
        }
        assert await cli.sessions("list", db, user_id="ana") == []

    @pytest.mark.asyncio
    async def test_other_users_session(self, tmp_path, capsys):
        db = str(tmp_path / "chat.db")
        created = await cli.sessions("create", db, user_id="ana")

        assert await cli.sessions("delete", db, user_id="ben", session_id=created["id"]) is None
        assert "Error: Session not found" in capsys.readouterr().out
