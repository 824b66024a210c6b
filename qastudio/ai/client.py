"""Claude API client wrapper for artifact generation."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Iterable, Optional

import anthropic

from qastudio.errors import GenerationParseError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Configurable debug directory, set by the workspace at startup
_debug_dir: Path | None = None


def set_debug_dir(path: Path) -> None:
    """Set the directory for AI exchange and parse-failure logs."""
    global _debug_dir
    _debug_dir = Path(path)
    _debug_dir.mkdir(parents=True, exist_ok=True)


def _get_debug_dir() -> Path:
    """Get or create the debug directory."""
    global _debug_dir
    if _debug_dir is None:
        _debug_dir = Path("./.qa-studio") / "debug"
    _debug_dir.mkdir(parents=True, exist_ok=True)
    return _debug_dir


def _redact(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret and len(secret) >= 3:
            text = text.replace(secret, "***")
    return text


class AIClient:
    """Wrapper around the Anthropic Claude API."""

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        max_tokens: int = 16000,
        api_key: Optional[str] = None,
    ):
        api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not api_key:
            raise EnvironmentError(
                "ANTHROPIC_API_KEY environment variable is not set. "
                "Please set it before generating artifacts."
            )
        self.client = anthropic.Anthropic(api_key=api_key, timeout=600.0)
        self.model = model
        self.max_tokens = max_tokens
        self._call_count = 0

    @property
    def call_count(self) -> int:
        return self._call_count

    def complete(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.3,
        model: Optional[str] = None,
        redact: Iterable[str] = (),
    ) -> str:
        """Send a completion request to Claude and return the text response.

        Values in ``redact`` are replaced with ``***`` in the exchange log.
        """
        self._call_count += 1
        tokens = max_tokens or self.max_tokens
        model = model or self.model
        redact = list(redact)
        logger.info(
            "Calling AI (call #%d, model=%s, max_tokens=%d)...",
            self._call_count, model, tokens,
        )
        logger.debug("AI prompt length: system=%d chars, user=%d chars",
                     len(system_prompt), len(user_message))

        try:
            call_start = time.time()
            response = self.client.messages.create(
                model=model,
                max_tokens=tokens,
                temperature=temperature,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            )
            call_duration = time.time() - call_start
            text = "".join(
                block.text for block in response.content if getattr(block, "text", None)
            )
            logger.info("AI response received in %.1fs (%d chars)",
                        call_duration, len(text))

            if response.stop_reason == "max_tokens":
                logger.warning(
                    "AI response was truncated! Hit max_tokens limit (%d). "
                    "Response may be incomplete. Consider increasing ai_max_tokens in config.",
                    tokens,
                )

            self._save_exchange_log(
                call_number=self._call_count,
                system_prompt=system_prompt,
                user_message=_redact(user_message, redact),
                response_text=_redact(text, redact),
                error=None,
            )
            return text
        except anthropic.APIError as e:
            logger.error("Claude API error: %s", e)
            self._save_exchange_log(
                call_number=self._call_count,
                system_prompt=system_prompt,
                user_message=_redact(user_message, redact),
                response_text="",
                error=str(e),
            )
            raise

    def complete_json(
        self,
        system_prompt: str,
        user_message: str,
        max_tokens: Optional[int] = None,
        temperature: float = 0.2,
        model: Optional[str] = None,
        redact: Iterable[str] = (),
    ) -> Any:
        """Send a completion request and parse the response as a JSON object or array."""
        redact = list(redact)
        text = self.complete(system_prompt, user_message, max_tokens, temperature,
                             model=model, redact=redact)
        return self._parse_json_response(text, redact=redact)

    # ------------------------------------------------------------------
    # JSON parsing with LLM quirk handling
    # ------------------------------------------------------------------

    @staticmethod
    def _parse_json_response(text: str, redact: Iterable[str] = ()) -> Any:
        """Parse AI response as JSON, handling common LLM output quirks."""
        original_text = text
        text = text.strip()

        # Fenced block anywhere in the text: ```json ... ``` or ``` ... ```
        fence_match = re.search(r"```(?:json|javascript|)?\s*\n?(.*?)\n?```", text, re.DOTALL)
        if fence_match:
            text = fence_match.group(1).strip()
            logger.debug("Stripped markdown code fences from AI response")

        # Attempt 1: Parse with strict=False (handles control chars)
        try:
            return json.loads(text, strict=False)
        except json.JSONDecodeError:
            pass

        cleaned = text

        # Remove // comments (heuristic: after }, ], comma, whitespace or line start)
        cleaned = re.sub(r'(?<=[\s,\]\}])//[^\n]*', '', cleaned)
        cleaned = re.sub(r'^//[^\n]*', '', cleaned, flags=re.MULTILINE)

        # Remove trailing commas
        cleaned = re.sub(r',\s*([}\]])', r'\1', cleaned)

        # Trim to the outermost object or array, whichever opens first
        cleaned = _outermost_json(cleaned)

        # Attempt 2: Parse cleaned text
        try:
            return json.loads(cleaned, strict=False)
        except json.JSONDecodeError as e:
            logger.error("Failed to parse AI response as JSON: %s", e)
            AIClient._save_parse_failure(
                raw_response=_redact(original_text, redact),
                error=str(e),
            )
            raise GenerationParseError(
                f"AI returned invalid JSON: {e}",
                raw_response=_redact(original_text, redact)[:2000],
            ) from e

    # ------------------------------------------------------------------
    # Debug logging
    # ------------------------------------------------------------------

    @staticmethod
    def _save_exchange_log(
        call_number: int,
        system_prompt: str,
        user_message: str,
        response_text: str,
        error: str | None,
    ) -> None:
        """Save the full AI exchange (prompt + response) to a log file."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            log_file = debug_dir / f"ai_call_{ts}_{call_number:03d}.log"

            with open(log_file, "w", encoding="utf-8") as f:
                f.write(f"=== AI CALL #{call_number} at {time.strftime('%Y-%m-%d %H:%M:%S')} ===\n\n")
                f.write(f"=== SYSTEM PROMPT ({len(system_prompt)} chars) ===\n")
                f.write(system_prompt)
                f.write(f"\n\n=== USER MESSAGE ({len(user_message)} chars) ===\n")
                f.write(user_message)
                f.write(f"\n\n=== RESPONSE ({len(response_text)} chars) ===\n")
                f.write(response_text if response_text else "(empty)")
                if error:
                    f.write(f"\n\n=== ERROR ===\n{error}\n")

            logger.debug("AI exchange logged to %s", log_file)
        except OSError as log_err:
            logger.debug("Failed to save AI exchange log: %s", log_err)

    @staticmethod
    def _save_parse_failure(raw_response: str, error: str) -> None:
        """Save the unparseable response for debugging."""
        try:
            debug_dir = _get_debug_dir()
            ts = time.strftime("%Y%m%d_%H%M%S")
            fail_file = debug_dir / f"parse_failure_{ts}.log"
            with open(fail_file, "w", encoding="utf-8") as f:
                f.write("=== JSON PARSE FAILURE ===\n\n")
                f.write(f"Error: {error}\n\n")
                f.write(f"=== FULL RAW RESPONSE ({len(raw_response)} chars) ===\n")
                f.write(raw_response)
            logger.error("JSON parse failure details saved to %s", fail_file)
        except OSError as log_err:
            logger.error("Failed to save parse failure log: %s", log_err)


def _outermost_json(text: str) -> str:
    """Slice text from the first '{' or '[' to its matching last closer."""
    starts = [i for i in (text.find("{"), text.find("[")) if i != -1]
    if not starts:
        return text
    start = min(starts)
    closer = "}" if text[start] == "{" else "]"
    end = text.rfind(closer)
    if end > start:
        return text[start:end + 1]
    return text
