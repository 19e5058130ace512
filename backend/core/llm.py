"""
Claude LLM client.

Provides:
- Text generation (one prompt in, one answer out)
- Model availability checking
- ClaudeOracle, the similarity oracle the product matcher falls back to
"""
import logging
import requests
from typing import Optional, Dict, Any, List

from harvest.reconcile.oracle import SimilarityOracle, build_prompt

from .config import settings

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


def _headers() -> dict:
    """Build headers for Claude API requests."""
    return {
        "Content-Type": "application/json",
        "x-api-key": settings.CLAUDE_API_KEY,
        "anthropic-version": ANTHROPIC_VERSION,
    }


def check_available() -> bool:
    """Check if the Claude API is configured and reachable."""
    if not settings.CLAUDE_API_KEY:
        return False
    try:
        # Minimal request to verify the key works
        resp = requests.post(
            settings.CLAUDE_API_URL,
            headers=_headers(),
            json={
                "model": settings.CLAUDE_MATCH_MODEL,
                "max_tokens": 1,
                "messages": [{"role": "user", "content": "hi"}],
            },
            timeout=10,
        )
        return resp.status_code in (200, 400)  # 400 = valid key, bad request shape is fine
    except requests.RequestException:
        return False


def generate(
    prompt: str,
    system: Optional[str] = None,
    model: Optional[str] = None,
    max_tokens: int = 200,
    temperature: float = 0.0,
    timeout: Optional[int] = None,
) -> str:
    """
    Send a generation request to Claude.

    Args:
        prompt: The prompt text
        system: Optional system prompt
        model: Model to use (defaults to CLAUDE_MATCH_MODEL)
        max_tokens: Maximum tokens to generate
        temperature: Sampling temperature (0.0-1.0)
        timeout: Request timeout in seconds (defaults to ORACLE_TIMEOUT)

    Returns:
        Response content string

    Raises:
        requests.RequestException: transport or HTTP status failure
    """
    payload: Dict[str, Any] = {
        "model": model or settings.CLAUDE_MATCH_MODEL,
        "max_tokens": max_tokens,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": temperature,
    }
    if system:
        payload["system"] = system

    resp = requests.post(
        settings.CLAUDE_API_URL,
        headers=_headers(),
        json=payload,
        timeout=timeout or settings.ORACLE_TIMEOUT,
    )
    resp.raise_for_status()
    data = resp.json()
    # Claude response: {"content": [{"type": "text", "text": "..."}]}
    content_blocks = data.get("content", [])
    return content_blocks[0]["text"] if content_blocks else ""


class ClaudeOracle(SimilarityOracle):
    """
    Product-name oracle backed by the Claude Messages API.

    Deterministic (temperature 0). Without an API key every question
    gets no opinion, so matching degrades to the catalog cascade.
    Transport errors propagate; the matcher logs and absorbs them.
    """

    def __init__(self, model: Optional[str] = None):
        self.model = model or settings.CLAUDE_MATCH_MODEL

    @property
    def enabled(self) -> bool:
        return bool(settings.CLAUDE_API_KEY)

    def choose(self, raw_text: str, candidates: List[str]) -> Optional[str]:
        if not self.enabled:
            return None
        try:
            return generate(build_prompt(raw_text, candidates), model=self.model, temperature=0.0)
        except requests.RequestException as e:
            logger.error(f"Claude oracle request failed: {e}")
            raise


def get_oracle() -> Optional[ClaudeOracle]:
    """Oracle for a conversion run, or None when no API key is configured."""
    oracle = ClaudeOracle()
    return oracle if oracle.enabled else None
