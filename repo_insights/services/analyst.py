"""LLM commentary for the run summary, with retry/backoff."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Optional

from pydantic import ValidationError

from repo_insights.config.app_config import LLMConfig
from repo_insights.models.summary import LLMOutput, SummaryJSON

logger = logging.getLogger(__name__)


class LLMError(Exception):
    """Raised when the LLM call or its response parsing fails after all retries."""


class AnalysisService:
    """Generate analytical commentary on a SummaryJSON via the configured LLM provider"""

    def __init__(
        self,
        config: LLMConfig,
        api_key: Optional[str] = None,
        *,
        llm_call: Optional[Callable[[str], Awaitable[str]]] = None,
        sleeper: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.config = config
        self.provider = config.provider
        self._sleep = sleeper

        if llm_call is not None:
            self._llm_call = llm_call
            return

        if not api_key:
            raise ValueError("LLM_API_KEY is required to call the LLM provider")

        if self.provider == "openai":
            from openai import AsyncOpenAI

            self.openai_client = AsyncOpenAI(
                api_key=api_key,
                base_url=config.base_url or None,
                timeout=config.timeout_seconds,
            )
            self._llm_call = self._call_openai
        elif self.provider == "anthropic":
            from anthropic import AsyncAnthropic

            self.anthropic_client = AsyncAnthropic(api_key=api_key, timeout=config.timeout_seconds)
            self._llm_call = self._call_anthropic
        elif self.provider == "gemini":
            import google.generativeai as genai

            genai.configure(api_key=api_key)
            self.gemini_model = genai.GenerativeModel(config.model)
            self._llm_call = self._call_gemini
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    async def generate_analysis(self, summary: SummaryJSON, report_language: str) -> LLMOutput:
        """
        Ask the LLM for commentary on the summary

        Args:
            summary: Aggregated run summary
            report_language: Language the commentary should be written in

        Returns:
            Validated LLMOutput

        Raises:
            LLMError: If every attempt failed to produce a valid response
        """
        prompt = self.build_prompt(summary, report_language)
        logger.info(f"Calling {self.provider} LLM for analysis")

        max_attempts = self.config.max_retries + 1
        last_error: Optional[Exception] = None

        for attempt in range(max_attempts):
            if attempt > 0:
                backoff = self._next_backoff(attempt)
                logger.warning(f"Retrying LLM call (attempt {attempt + 1}/{max_attempts}) in {backoff:.0f}s")
                await self._sleep(backoff)

            try:
                raw_response = await self._llm_call(prompt)
                output = self.parse_response(raw_response)
            except Exception as e:
                last_error = e
                logger.warning(f"LLM call failed on attempt {attempt + 1}/{max_attempts}: {e}")
                continue

            logger.info("LLM analysis completed successfully")
            return output

        raise LLMError(f"LLM analysis failed after {max_attempts} attempts: {last_error}") from last_error

    def build_prompt(self, summary: SummaryJSON, report_language: str) -> str:
        summary_json = json.dumps(summary.to_dict(), ensure_ascii=False, indent=2)
        return f"""Role: {self.config.role_description}

Task: Analyze the following GitHub repository trending data and provide insights in {report_language}.

Data:
{summary_json}

Instructions:
1. Write a brief introduction (2-3 sentences) summarizing the overall trends
2. For each category, provide 1-2 sentences of analytical commentary
3. Comment on dark horse projects (high score)
4. Comment on repeater projects (consecutive appearances)
5. Select 3-5 highlight repositories and provide specific insights for each
6. Maintain a {self.config.output_tone} tone
7. Do NOT fabricate numbers - only interpret the provided data
8. Output valid JSON in this structure:
{{
  "intro": "...",
  "category_notes": {{"category_name": "..."}},
  "dark_horse_notes": "...",
  "repeaters_notes": "...",
  "highlights": [
    {{"repo": "owner/repo", "comment": "...", "tone": "neutral-analytical"}}
  ]
}}"""

    @staticmethod
    def parse_response(raw_response: Any) -> LLMOutput:
        """
        Parse and validate an LLM response

        Accepts a dict or a JSON string, optionally wrapped in a Markdown
        code fence.

        Raises:
            ValueError: If the payload is not JSON or misses required fields
        """
        if isinstance(raw_response, dict):
            payload = raw_response
        elif isinstance(raw_response, str):
            payload = json.loads(clean_json_response(raw_response))
        else:
            raise TypeError("LLM response must be dict or JSON string")

        try:
            return LLMOutput.model_validate(payload)
        except ValidationError as e:
            raise ValueError(f"invalid LLM response: {e}") from e

    @staticmethod
    def _next_backoff(attempt: int) -> float:
        return float(2 ** attempt)

    async def _call_openai(self, prompt: str) -> str:
        response = await self.openai_client.chat.completions.create(
            model=self.config.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
        )
        if not response.choices:
            raise ValueError("API response contains no choices")
        return response.choices[0].message.content or ""

    async def _call_anthropic(self, prompt: str) -> str:
        response = await self.anthropic_client.messages.create(
            model=self.config.model,
            max_tokens=4096,
            temperature=self.config.temperature,
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.content:
            raise ValueError("API response contains no content")
        return response.content[0].text

    async def _call_gemini(self, prompt: str) -> str:
        import google.generativeai as genai

        # Gemini SDK is sync, run it in executor
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.gemini_model.generate_content(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=self.config.temperature,
                ),
            ),
        )
        return response.text


def clean_json_response(text: str) -> str:
    """Strip surrounding whitespace and a Markdown code fence, if present."""
    text = text.strip()
    if text.startswith("```"):
        first_newline = text.find("\n")
        if first_newline != -1:
            text = text[first_newline + 1:]
        else:
            text = text[3:]
        if text.endswith("```"):
            text = text[:-3]
        text = text.strip()
    return text
