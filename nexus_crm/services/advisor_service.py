"""
Commercial strategy suggestions for a contact.

Uses the OpenAI chat completions API. The suggestion is advisory only: any
failure degrades to a fixed offline message and is never raised.
"""

import openai
from openai import AsyncOpenAI

from nexus_crm.config import settings
from nexus_crm.infrastructure.observability.logging import get_logger
from nexus_crm.models.domain.contact_domain import Contact

logger = get_logger(__name__)

OFFLINE_MESSAGE = "AI offline. Please check connection."
EMPTY_MESSAGE = "Insight not available."

SYSTEM_MESSAGE = (
    "You are a B2B sales strategist. Answer with exactly three short, concrete "
    "commercial strategies as a numbered list. No preamble."
)


class AdvisorService:
    def __init__(self, client: AsyncOpenAI | None = None):
        self.client = client
        if self.client is None and settings.OPENAI_API_KEY:
            self.client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY,
                timeout=settings.OPENAI_TIMEOUT_SECONDS,
                max_retries=0,
            )
            logger.info("OpenAI client initialized", model=settings.OPENAI_MODEL)

    @staticmethod
    def build_prompt(contact: Contact) -> str:
        return (
            "Analyze this client and suggest 3 commercial strategies. "
            f"Name: {contact.name}, Company: {contact.company}, "
            f"Status: {contact.status.value}. Area: {contact.commercial_area}"
        )

    async def suggest(self, contact: Contact) -> str:
        if self.client is None:
            logger.warning("OpenAI not configured, returning offline message")
            return OFFLINE_MESSAGE

        try:
            response = await self.client.chat.completions.create(
                model=settings.OPENAI_MODEL,
                messages=[
                    {"role": "system", "content": SYSTEM_MESSAGE},
                    {"role": "user", "content": self.build_prompt(contact)},
                ],
                max_tokens=settings.OPENAI_MAX_TOKENS,
                temperature=settings.OPENAI_TEMPERATURE,
            )
        except openai.OpenAIError as e:
            logger.warning(
                "Suggestion request failed", contact_id=contact.id, error=str(e), error_type=type(e).__name__
            )
            return OFFLINE_MESSAGE

        if not response.choices or not response.choices[0].message.content:
            return EMPTY_MESSAGE

        suggestion = response.choices[0].message.content.strip()
        logger.info(
            "Suggestion generated",
            contact_id=contact.id,
            response_length=len(suggestion),
            usage_tokens=response.usage.total_tokens if response.usage else 0,
        )
        return suggestion or EMPTY_MESSAGE

    async def close(self) -> None:
        if self.client is not None:
            await self.client.close()
