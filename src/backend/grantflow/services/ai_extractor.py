"""
AI-assisted extraction of funding opportunities from page text.

Used by the website crawler when a page has no recognisable listing
markup. Works with either OpenAI or Azure OpenAI, whichever is
configured; when neither is, extraction is reported as unavailable.
"""

import json
import re
from typing import Any

from openai import AsyncAzureOpenAI, AsyncOpenAI, OpenAIError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from grantflow.core.config import get_settings
from grantflow.core.exceptions import AIServiceException
from grantflow.core.logging import get_logger

logger = get_logger(__name__)

MAX_CONTENT_CHARS = 6000

_CODE_FENCE = re.compile(r"```(?:json)?\s*|```")

EXTRACTION_SYSTEM_PROMPT = """You analyze webpage content and extract funding opportunities: grants, scholarships, fellowships, awards and assistance programs.

For each opportunity found, provide:
- title: Title/name of the opportunity
- sponsor: Sponsoring organization
- description: Short description
- amount_min / amount_max: Award amounts as numbers (null if not stated)
- deadline: Deadline as YYYY-MM-DD (null if rolling or not stated)
- eligibility: Who may apply
- focus_areas: List of focus areas/categories

Respond with valid JSON only:
{
  "opportunities": [
    {"title": "Grant Name", "sponsor": "Organization", "description": "...", "amount_min": 1000, "amount_max": 5000, "deadline": "2025-03-01", "eligibility": "...", "focus_areas": ["education", "health"]}
  ]
}

If the page lists no opportunities, return {"opportunities": []}.
"""


def parse_extraction_response(content: str | None) -> list[dict[str, Any]]:
    """
    Decode the model output into a list of opportunity dicts.

    Accepts an object with an ``opportunities`` key or a bare array,
    optionally wrapped in a markdown code fence.

    Raises:
        ValueError: The content is not JSON of either shape
    """
    if not content:
        return []
    payload = json.loads(_CODE_FENCE.sub("", content).strip())
    if isinstance(payload, dict):
        payload = payload.get("opportunities", [])
    if not isinstance(payload, list):
        raise ValueError("Extraction response is not a list of opportunities")
    return [item for item in payload if isinstance(item, dict) and item.get("title")]


class OpportunityExtractor:
    """Extract structured opportunities from free text with an LLM."""

    def __init__(self, client: AsyncOpenAI | None = None, model: str | None = None) -> None:
        settings = get_settings()

        if client is not None:
            self.client: AsyncOpenAI | None = client
            self.model = model or settings.openai_model
        elif settings.azure_openai_endpoint and settings.azure_openai_api_key:
            self.client = AsyncAzureOpenAI(
                azure_endpoint=settings.azure_openai_endpoint,
                api_key=settings.azure_openai_api_key,
                api_version=settings.azure_openai_api_version,
            )
            self.model = model or settings.azure_openai_deployment
        elif settings.openai_api_key:
            self.client = AsyncOpenAI(api_key=settings.openai_api_key)
            self.model = model or settings.openai_model
        else:
            self.client = None
            self.model = model or settings.openai_model

    def is_available(self) -> bool:
        """Whether an OpenAI client is configured."""
        return self.client is not None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=30),
        retry=retry_if_exception_type(OpenAIError),
        reraise=True,
    )
    async def _complete(self, url: str, content: str) -> str | None:
        if self.client is None:
            raise AIServiceException("OpenAI is not configured")
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": EXTRACTION_SYSTEM_PROMPT},
                {"role": "user", "content": f"URL: {url}\n\nContent:\n{content}"},
            ],
            temperature=0.3,
            max_tokens=2000,
            response_format={"type": "json_object"},
        )
        return response.choices[0].message.content

    async def extract_or_raise(self, url: str, text: str) -> list[dict[str, Any]]:
        """
        Extract opportunities, raising on failure.

        Raises:
            AIServiceException: The client is unconfigured, the API call
                failed, or the response could not be parsed
        """
        if self.client is None:
            raise AIServiceException("OpenAI is not configured")

        content = text[:MAX_CONTENT_CHARS]
        try:
            raw = await self._complete(url, content)
            return parse_extraction_response(raw)
        except OpenAIError as e:
            raise AIServiceException(f"Completion failed: {e}") from e
        except ValueError as e:
            raise AIServiceException(f"Unparseable response: {e}") from e

    async def extract(self, url: str, text: str) -> list[dict[str, Any]]:
        """
        Extract opportunities from cleaned page text.

        Args:
            url: Page URL, given to the model as context
            text: Cleaned page text; only the first 6000 characters are sent

        Returns:
            List of opportunity dicts; empty when unavailable or on any failure
        """
        if not self.is_available():
            logger.info("AI extraction unavailable, OpenAI not configured", url=url)
            return []

        try:
            opportunities = await self.extract_or_raise(url, text)
        except AIServiceException as e:
            logger.warning("AI extraction failed", url=url, error=e.message)
            return []

        logger.info("AI extraction completed", url=url, found=len(opportunities))
        return opportunities
