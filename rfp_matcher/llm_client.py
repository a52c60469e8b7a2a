"""
Unified LLM agent client.

An agent is a named LLM endpoint. `get_agent(agent_id)` resolves the backend
from AGENT_BACKENDS, falling back to GENERATOR_LLM:

  claude         → Anthropic Claude API (requires CLAUDE_API_KEY)
  ollama_gaming  → Ollama on the GPU box (OLLAMA_BASE_URL / OLLAMA_MODEL)
  ollama_local   → Ollama on this machine (LOCAL_OLLAMA_URL / LOCAL_OLLAMA_MODEL)

Auto-fallback: if an agent resolves to claude but no API key is set (or it's
the placeholder), it quietly falls back to ollama_local so dev works without a key.
"""
import json
import logging
import time

import requests

from rfp_matcher import config
from rfp_matcher.errors import MalformedResponseError, UpstreamCallError
from rfp_matcher.metrics import llm_latency

logger = logging.getLogger(__name__)

JSON_ONLY_SUFFIX = '\n\nRespond with a single valid JSON object only, without preamble or Markdown.'

_claude_client = None
_agents: dict[str, 'Agent'] = {}


def _get_claude_client():
    global _claude_client
    if _claude_client is None:
        from anthropic import Anthropic
        _claude_client = Anthropic(api_key=config.CLAUDE_API_KEY)
    return _claude_client


def _key_is_set() -> bool:
    key = config.CLAUDE_API_KEY
    return bool(key) and key != 'your-key-here'


def _generate_ollama(base_url: str, model: str, prompt: str, system: str | None,
                     temperature: float, max_tokens: int, json_output: bool) -> str:
    payload = {
        'model': model,
        'prompt': prompt,
        'stream': False,
        'options': {'num_predict': max_tokens, 'temperature': temperature},
    }
    if system:
        payload['system'] = system
    if json_output:
        payload['format'] = 'json'

    resp = requests.post(f'{base_url}/api/generate', json=payload, timeout=config.LLM_TIMEOUT)
    resp.raise_for_status()
    return resp.json().get('response', '')


def _generate_claude(prompt: str, system: str | None, temperature: float,
                     max_tokens: int, json_output: bool) -> str:
    client = _get_claude_client()
    kwargs = {}
    if system:
        kwargs['system'] = system
    if json_output:
        prompt += JSON_ONLY_SUFFIX
    response = client.messages.create(
        model=config.CLAUDE_MODEL,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=[{'role': 'user', 'content': prompt}],
        **kwargs,
    )
    logger.debug('Claude response: %d chars', len(response.content[0].text))
    return response.content[0].text


class Agent:
    """A named LLM endpoint bound to one backend."""

    def __init__(self, agent_id: str, backend: str | None = None):
        self.agent_id = agent_id
        self.backend = backend or config.AGENT_BACKENDS.get(agent_id, config.GENERATOR_LLM)

    def __repr__(self):
        return f'Agent({self.agent_id!r}, backend={self.backend!r})'

    def _resolved_backend(self) -> str:
        if self.backend == 'claude' and not _key_is_set():
            logger.warning(
                'Agent %s uses claude but CLAUDE_API_KEY is not set, '
                'falling back to ollama_local (%s, model=%s)',
                self.agent_id,
                config.LOCAL_OLLAMA_URL,
                config.LOCAL_OLLAMA_MODEL,
            )
            return 'ollama_local'
        return self.backend

    def ask(self, prompt: str, instructions: str | None = None, temperature: float = 0.7,
            json_output: bool = False, max_tokens: int = 800) -> str:
        """
        Send a prompt to the agent's backend and return the generated text.

        Raises UpstreamCallError if the backend call fails.
        """
        backend = self._resolved_backend()
        start = time.time()
        try:
            if backend == 'claude':
                text = _generate_claude(prompt, instructions, temperature, max_tokens, json_output)
            elif backend == 'ollama_gaming':
                text = _generate_ollama(config.OLLAMA_BASE_URL, config.OLLAMA_MODEL, prompt,
                                        instructions, temperature, max_tokens, json_output)
            else:
                text = _generate_ollama(config.LOCAL_OLLAMA_URL, config.LOCAL_OLLAMA_MODEL, prompt,
                                        instructions, temperature, max_tokens, json_output)
        except Exception as e:
            raise UpstreamCallError(f'Agent {self.agent_id} ({backend}) call failed: {e}') from e

        elapsed = time.time() - start
        llm_latency.labels(backend=backend).observe(elapsed)
        logger.info(f"Agent {self.agent_id} ({backend}) responded in {elapsed:.1f}s")
        return text


def get_agent(agent_id: str) -> Agent:
    """Return the cached agent for agent_id, creating it on first use."""
    agent = _agents.get(agent_id)
    if agent is None:
        agent = Agent(agent_id)
        _agents[agent_id] = agent
    return agent


def parse_json_response(raw: str) -> dict:
    """
    Decode an LLM response into a dict.
    Strips Markdown code fences. Raises MalformedResponseError on anything
    that is not a JSON object.
    """
    cleaned = (raw or '').strip()
    if cleaned.startswith('```'):
        lines = [line for line in cleaned.split('\n') if not line.strip().startswith('```')]
        cleaned = '\n'.join(lines)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f'Response is not valid JSON: {e}') from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f'Expected a JSON object, got {type(data).__name__}')
    return data
