"""
Tests for the Claude-backed similarity oracle.

No network: requests.post is replaced per test.
"""
from unittest.mock import MagicMock

import pytest
import requests

from backend.core import llm
from harvest.reconcile.catalog import load_default_pricing
from harvest.reconcile.matcher import ProductMatcher
from harvest.reconcile.models import MatchMethod


def _response(text):
    resp = MagicMock()
    resp.json.return_value = {"content": [{"type": "text", "text": text}]}
    resp.raise_for_status.return_value = None
    return resp


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(llm.settings, "CLAUDE_API_KEY", "test-key")


class TestClaudeOracle:

    def test_no_key_no_oracle(self, monkeypatch):
        monkeypatch.setattr(llm.settings, "CLAUDE_API_KEY", "")
        post = MagicMock()
        monkeypatch.setattr(llm.requests, "post", post)

        assert llm.get_oracle() is None
        assert llm.ClaudeOracle().choose("포기", ["포기김치 3kg"]) is None
        post.assert_not_called()

    def test_choose_sends_prompt(self, api_key, monkeypatch):
        post = MagicMock(return_value=_response("포기김치 5kg"))
        monkeypatch.setattr(llm.requests, "post", post)

        answer = llm.get_oracle().choose("김장 포기 큰거", ["포기김치 3kg", "포기김치 5kg"])

        assert answer == "포기김치 5kg"
        payload = post.call_args.kwargs["json"]
        assert payload["temperature"] == 0.0
        assert "김장 포기 큰거" in payload["messages"][0]["content"]
        assert "포기김치 5kg" in payload["messages"][0]["content"]
        assert post.call_args.kwargs["headers"]["x-api-key"] == "test-key"

    def test_transport_error_propagates(self, api_key, monkeypatch):
        monkeypatch.setattr(llm.requests, "post", MagicMock(side_effect=requests.ConnectionError("down")))
        with pytest.raises(requests.RequestException):
            llm.ClaudeOracle().choose("포기", ["포기김치 3kg", "포기김치 5kg"])


class TestMatcherWithClaude:

    def test_oracle_answer_resolves_product(self, api_key, monkeypatch):
        monkeypatch.setattr(llm.requests, "post", MagicMock(return_value=_response("포기김치 5kg")))
        matcher = ProductMatcher(load_default_pricing(), oracle=llm.get_oracle())

        match = matcher.match("연두", "김장 포기 큰거")

        assert match.product_key == "포기김치 5kg"
        assert match.method == MatchMethod.ORACLE
        assert matcher.oracle_calls == 1

    def test_outage_degrades_to_no_match(self, api_key, monkeypatch):
        monkeypatch.setattr(llm.requests, "post", MagicMock(side_effect=requests.Timeout("slow")))
        matcher = ProductMatcher(load_default_pricing(), oracle=llm.get_oracle())

        assert matcher.match("연두", "김장 포기 큰거") is None
