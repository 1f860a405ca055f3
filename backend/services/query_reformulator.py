"""LLM-assisted rewrite of user questions into search-friendly queries."""
import logging
import re

from services.llm_client import LLMClient
from services.prompts import REFORMULATION_SYSTEM_PROMPT
from config import CHAT_MODEL, REFORMULATION_TIMEOUT

logger = logging.getLogger(__name__)

_SURROUNDING_QUOTES = re.compile(r"^[\"'`]+|[\"'`]+$")


class QueryReformulator:
    """
    Rewrite a question before retrieval: fix typos and add the terms a
    formal document is likely to use.

    Advisory only. Any failure returns the original question.
    """

    def __init__(
        self,
        llm_client: LLMClient,
        model: str = CHAT_MODEL,
        timeout: float = REFORMULATION_TIMEOUT
    ):
        self.llm_client = llm_client
        self.model = model
        self.timeout = timeout

    def reformulate(self, user_query: str) -> str:
        """
        Return a search query for user_query. Never raises.

        Args:
            user_query: The question as typed by the user

        Returns:
            The revised query, or user_query when reformulation fails or
            produces nothing
        """
        if not user_query or not user_query.strip():
            return user_query

        try:
            response = self.llm_client.generate(
                model=self.model,
                prompt=user_query,
                system_prompt=REFORMULATION_SYSTEM_PROMPT,
                max_tokens=200,
                temperature=0.1,
                timeout=self.timeout
            )
            revised = self._clean(response.text)
        except Exception as e:
            logger.error(f"Query reformulation failed, using original: {e}")
            return user_query

        if not revised:
            logger.warning("Query reformulation returned nothing, using original")
            return user_query

        logger.info(
            "Query reformulated",
            extra={
                "original": user_query,
                "revised": revised,
                "tokens": response.tokens_input + response.tokens_output
            }
        )
        return revised

    @staticmethod
    def _clean(text: str) -> str:
        """First non-empty line with surrounding quotes or backticks removed."""
        for line in (text or "").strip().splitlines():
            line = _SURROUNDING_QUOTES.sub("", line.strip()).strip()
            if line:
                return line
        return ""
