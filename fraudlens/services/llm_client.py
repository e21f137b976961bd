import json
import logging
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from fraudlens.config import settings
from fraudlens.schemas.oracle_schemas import MalformedReply

logger = logging.getLogger(__name__)


ASSESS_SYSTEM_MSG = (
    "You are an AI assistant that analyzes websites for fraud risk. "
    "Identify fraud indicators including, but not limited to:\n"
    "1. Inducing or urgent language\n"
    "2. False promises or unreasonable offers\n"
    "3. Requests for sensitive personal information\n"
    "4. Unfamiliar or suspicious payment methods\n"
    "5. Missing contact details or legitimate identity verification\n"
    "6. Impersonation of well-known brands\n"
    "7. Security flaws such as missing HTTPS\n"
    "8. Spelling or grammar errors\n"
    "Return ONLY valid JSON (no markdown). Schema:\n"
    "{\n"
    '  "riskScore": number (0-100),\n'
    '  "riskLevel": "Safe" | "Low" | "Medium" | "High" | "Critical",\n'
    '  "fraudTypes": [string, ...],\n'
    '  "indicators": [string, ...],\n'
    '  "safetyAdvice": [string, ...]\n'
    "}"
)

REGIONS_SYSTEM_MSG = (
    "You are an expert at spotting fraudulent elements on web pages. "
    "Given fraud indicators and a description of a page, infer which UI "
    "elements should be highlighted on a screenshot of it, such as fake "
    "urgent warnings, forms asking for sensitive data, implausible discounts, "
    "counterfeit brand marks or certifications, and suspicious contact details.\n"
    "Return ONLY valid JSON (no markdown). Schema:\n"
    '{"markers": [{"top": number, "left": number, "width": number, '
    '"height": number, "label": string}, ...]}\n'
    "All positions and sizes are percentages (0-100) of the rendered viewport."
)


def format_assessment_prompt(summary: Dict[str, Any]) -> str:
    return (
        "Analyze the fraud risk of the following website:\n"
        f"URL: {summary['url']}\n\n"
        f"Title: {summary['title']}\n"
        f"Description: {summary['description'] or 'none'}\n\n"
        "Content summary:\n"
        f"{summary['bodyText']}\n\n"
        f"Form count: {summary['formCount']}\n"
        f"Form input fields: {json.dumps(summary['formInputTypes'])}\n\n"
        f"External link count: {summary['externalLinkCount']}\n"
        f"Button text: {json.dumps(summary['buttons'], ensure_ascii=False)}\n"
        f"Alert/popup content: {json.dumps(summary['alerts'], ensure_ascii=False)}\n"
    )


def format_regions_prompt(indicators: List[str], summary: Dict[str, Any]) -> str:
    return (
        f"This website shows the following fraud indicators: {', '.join(indicators)}\n\n"
        "Based on these indicators, identify the suspicious regions of the page "
        "and their approximate positions.\n\n"
        "Page summary:\n"
        f"Title: {summary['title']}\n"
        f"Form count: {summary['formCount']}\n"
        f"Buttons: {json.dumps(summary['buttons'], ensure_ascii=False)}\n"
        f"Alerts/popups: {json.dumps(summary['alerts'], ensure_ascii=False)}\n"
    )


class LLMClient:
    """
    Wrapper around the OpenAI client acting as the risk oracle.

    Errors are raised to the caller; degradation policy lives in the
    services that call this client.
    """

    def __init__(self, model: str | None = None, client: Optional[AsyncOpenAI] = None):
        self._client = client
        self.model = model or settings.openai_model

    @property
    def client(self) -> AsyncOpenAI:
        # Created lazily so a missing key surfaces as a per-call failure.
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.openai_api_key or None,
                timeout=settings.api_timeout_seconds,
            )
        return self._client

    async def _complete_json(self, system_msg: str, user_msg: str) -> Any:
        response = await self.client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            temperature=settings.openai_temperature,
            max_tokens=settings.openai_max_tokens,
            messages=[
                {"role": "system", "content": system_msg},
                {"role": "user", "content": user_msg},
            ],
        )
        content = response.choices[0].message.content or ""
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning(f"Oracle returned non-JSON content: {e}")
            raise MalformedReply(str(e)) from e

    async def assess(self, summary: Dict[str, Any]) -> Any:
        return await self._complete_json(ASSESS_SYSTEM_MSG, format_assessment_prompt(summary))

    async def locate_regions(self, indicators: List[str], summary: Dict[str, Any]) -> Any:
        return await self._complete_json(REGIONS_SYSTEM_MSG, format_regions_prompt(indicators, summary))
