"""
Script Writer
=============

Generates a spoken avatar script sized to a target duration using the
Groq OpenAI-compatible chat completions API.
"""

import re
import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import httpx

from ..core.config import ScriptConfig
from ..core.exceptions import ProviderError
from ..core.security import redact_api_key, sanitize_prompt

logger = logging.getLogger(__name__)


LANGUAGE_NAMES = {
    "en": "English",
    "english": "English",
    "hinglish": "Hinglish (Hindi in Latin script)",
    "hi": "Hindi",
    "hindi": "Hindi",
    "bn": "Bengali",
    "te": "Telugu",
    "mr": "Marathi",
    "ta": "Tamil",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "pa": "Punjabi",
    "ur": "Urdu",
}

SYSTEM_PROMPT = (
    "You write short, natural spoken scripts for a video avatar. "
    "Return ONLY the spoken script as plain text. No bullet points. "
    "No headings. No stage directions. No meta-instructions."
)

PAD_SENTENCES = [
    "Stay consistent and review your plan regularly.",
    "Small disciplined steps create long-term results.",
    "Focus on the process, not the daily noise.",
]


@dataclass
class ScriptDraft:
    """A generated script with its word budget."""

    script: str
    words: int
    min_words: int
    target_words: int
    max_words: int
    generated: bool = True


def word_count(text: str) -> int:
    return len((text or "").split())


def trim_to_words(text: str, n: int) -> str:
    return " ".join((text or "").split()[:n])


def clean_script(text: str) -> str:
    """Strip code fences, 'Script:' labels and wrapping quotes."""
    script = re.sub(r"^```.*$", "", text or "", flags=re.MULTILINE).strip()
    script = re.sub(r"^\s*script\s*:\s*", "", script, flags=re.IGNORECASE).strip()
    script = script.strip("\"'").strip()
    return re.sub(r"\s+", " ", script)


def fit_to_budget(script: str, budget: Dict[str, int]) -> str:
    """One clamp to the upper bound, then pad with filler sentences up to the minimum."""
    if word_count(script) > budget["max"]:
        script = trim_to_words(script, budget["max"])

    pads = itertools.cycle(PAD_SENTENCES)
    while word_count(script) < budget["min"]:
        script = f"{script} {next(pads)}".strip()

    return trim_to_words(script, budget["max"])


class ScriptWriter:
    """
    Avatar script generator.

    Without an API key it returns a short template script so avatar
    generation can still proceed.
    """

    def __init__(
        self,
        config: Optional[ScriptConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or ScriptConfig()
        self.api_key = self.config.resolve_api_key()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock = asyncio.Lock()

    def word_budget(self, duration_seconds: int) -> Dict[str, int]:
        """Min/target/max word counts for a spoken duration."""
        target = max(12, round(duration_seconds * self.config.words_per_second_target))
        minimum = max(10, round(duration_seconds * self.config.words_per_second_min))
        maximum = max(minimum + 6, round(duration_seconds * self.config.words_per_second_max))
        return {"min": minimum, "target": target, "max": maximum}

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.config.base_url,
                    timeout=httpx.Timeout(self.config.timeout),
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    transport=self._transport,
                )
            return self._client

    async def generate_script(
        self,
        topic: str,
        duration_seconds: int,
        platform: str = "instagram",
        content_format: str = "reel",
        language: str = "en",
    ) -> ScriptDraft:
        """
        Write a script for ``duration_seconds`` of speech.

        Raises:
            ProviderError: the chat completions call failed
        """
        topic = sanitize_prompt(topic or "").strip() or "investing insights"
        budget = self.word_budget(duration_seconds)

        if not self.api_key:
            logger.info("No Groq API key configured, using template script")
            return self._fallback(topic, platform, budget)

        user_prompt = self._build_prompt(topic, duration_seconds, platform, content_format, language, budget)

        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": min(700, max(200, round(budget["max"] * 1.8))),
        }

        client = await self._get_client()
        try:
            response = await client.post("/chat/completions", json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Script generation failed: {redact_api_key(str(e))}",
                provider="groq",
            )

        if response.status_code != 200:
            raise ProviderError(
                f"Script generation failed: HTTP {response.status_code}",
                provider="groq",
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

        script = fit_to_budget(clean_script(self._extract_content(response)), budget)

        words = word_count(script)
        logger.info(f"Generated {words}-word script for {duration_seconds}s (target {budget['target']})")

        return ScriptDraft(
            script=script,
            words=words,
            min_words=budget["min"],
            target_words=budget["target"],
            max_words=budget["max"],
        )

    @staticmethod
    def _build_prompt(
        topic: str,
        duration_seconds: int,
        platform: str,
        content_format: str,
        language: str,
        budget: Dict[str, int],
    ) -> str:
        language_name = LANGUAGE_NAMES.get((language or "").lower(), "English")
        return (
            "Write a single spoken script for an AI avatar video.\n\n"
            "Constraints:\n"
            f"- Platform: {platform}\n"
            f"- Format: {content_format}\n"
            f"- Topic: {topic}\n"
            f"- Duration: {duration_seconds} seconds\n"
            f"- Language: {language_name}\n"
            "- Tone: confident, warm, professional.\n"
            f"- Length target: {budget['target']} words.\n"
            f"- Hard word-count range: {budget['min']} to {budget['max']} words.\n"
            "- Compliance: no guaranteed returns, no exaggerated claims, no personalized advice.\n\n"
            "Output rules:\n"
            "- Output ONLY the script text the avatar should speak.\n"
            '- Do NOT include quotation marks or labels like "Script:".'
        )

    @staticmethod
    def _extract_content(response: httpx.Response) -> str:
        """Pull the first choice's message text out of a completions body."""
        try:
            data = response.json()
        except ValueError:
            raise ProviderError(
                "Script generation returned a non-JSON response",
                provider="groq",
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )

        choices = data.get("choices") if isinstance(data, dict) else None
        first = choices[0] if isinstance(choices, list) and choices else None
        message = first.get("message") if isinstance(first, dict) else None
        content = message.get("content") if isinstance(message, dict) else None

        if not isinstance(content, str):
            raise ProviderError(
                "Script generation response has no message content",
                provider="groq",
                status_code=response.status_code,
                response_body=redact_api_key(response.text),
            )
        return content

    @staticmethod
    def _fallback(topic: str, platform: str, budget: Dict[str, int]) -> ScriptDraft:
        hook = "Stop scrolling, quick money tip." if platform == "instagram" else "Quick update."
        script = fit_to_budget(f"{hook} {topic}. Want a simple plan? Talk to us today.", budget)
        words = word_count(script)
        return ScriptDraft(
            script=script,
            words=words,
            min_words=budget["min"],
            target_words=budget["target"],
            max_words=budget["max"],
            generated=False,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        async with self._client_lock:
            if self._client:
                await self._client.aclose()
                self._client = None
