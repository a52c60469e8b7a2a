"""Tests for the LLM agent client with HTTP and SDK calls mocked."""
from unittest.mock import MagicMock, patch

import pytest
import requests

from rfp_matcher import llm_client
from rfp_matcher.errors import MalformedResponseError, UpstreamCallError
from rfp_matcher.llm_client import Agent, get_agent, parse_json_response


class TestParseJsonResponse:
    def test_plain_json(self):
        assert parse_json_response('{"score": 80}') == {'score': 80}

    def test_strips_code_fences(self):
        raw = '```json\n{"score": 72, "reasoning": "ok"}\n```'
        assert parse_json_response(raw) == {'score': 72, 'reasoning': 'ok'}

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_json_response('Sure! The score is 80.')

    def test_non_object_raises(self):
        with pytest.raises(MalformedResponseError, match='Expected a JSON object'):
            parse_json_response('[1, 2, 3]')

    def test_empty_raises(self):
        with pytest.raises(MalformedResponseError):
            parse_json_response('')


class TestAgentRouting:
    @patch('rfp_matcher.llm_client.requests.post')
    def test_ollama_local_payload(self, mock_post):
        mock_post.return_value.json.return_value = {'response': '{"score": 50}'}

        agent = Agent('matching-agent', backend='ollama_local')
        text = agent.ask('prompt text', instructions='be terse', temperature=0.3, json_output=True)

        assert text == '{"score": 50}'
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs['json']
        assert url.endswith('/api/generate')
        assert payload['system'] == 'be terse'
        assert payload['format'] == 'json'
        assert payload['options']['temperature'] == 0.3
        assert payload['stream'] is False

    @patch('rfp_matcher.llm_client.requests.post')
    def test_plain_text_request_has_no_format(self, mock_post):
        mock_post.return_value.json.return_value = {'response': 'hello'}

        Agent('a', backend='ollama_gaming').ask('prompt')

        payload = mock_post.call_args.kwargs['json']
        assert 'format' not in payload
        assert 'system' not in payload

    @patch('rfp_matcher.llm_client.requests.post')
    def test_http_error_becomes_upstream_error(self, mock_post):
        mock_post.return_value.raise_for_status.side_effect = requests.HTTPError('503 Service Unavailable')

        with pytest.raises(UpstreamCallError, match='503'):
            Agent('matching-agent', backend='ollama_local').ask('prompt')

    @patch('rfp_matcher.llm_client._get_claude_client')
    def test_claude_backend(self, mock_client, monkeypatch):
        monkeypatch.setattr(llm_client.config, 'CLAUDE_API_KEY', 'sk-test')
        message = MagicMock()
        message.content = [MagicMock(text='{"score": 91}')]
        mock_client.return_value.messages.create.return_value = message

        text = Agent('matching-agent', backend='claude').ask(
            'prompt', instructions='system text', temperature=0.3, json_output=True,
        )

        assert text == '{"score": 91}'
        kwargs = mock_client.return_value.messages.create.call_args.kwargs
        assert kwargs['system'] == 'system text'
        assert kwargs['temperature'] == 0.3
        assert kwargs['messages'][0]['content'].endswith(llm_client.JSON_ONLY_SUFFIX)

    @patch('rfp_matcher.llm_client.requests.post')
    def test_claude_without_key_falls_back_to_local_ollama(self, mock_post, monkeypatch):
        monkeypatch.setattr(llm_client.config, 'CLAUDE_API_KEY', None)
        mock_post.return_value.json.return_value = {'response': 'ok'}

        assert Agent('matching-agent', backend='claude').ask('prompt') == 'ok'
        assert mock_post.call_args.args[0].startswith(llm_client.config.LOCAL_OLLAMA_URL)

    def test_backend_override_from_config(self, monkeypatch):
        monkeypatch.setattr(llm_client.config, 'AGENT_BACKENDS', {'cheap-agent': 'ollama_local'})

        assert Agent('cheap-agent').backend == 'ollama_local'

    def test_get_agent_is_cached(self):
        assert get_agent('cached-agent') is get_agent('cached-agent')
