"""LLM Client for Groq API integration."""
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
from groq import Groq
from groq import RateLimitError, AuthenticationError, APIError, APITimeoutError
import logging
import tiktoken

from config import GROQ_API_KEY
from models.chunk import RetrievedChunk

logger = logging.getLogger(__name__)

# Llama 3 tokenizer is close enough to o200k_base for usage estimates
_ENCODING_NAME = "o200k_base"


@dataclass
class LLMResponse:
    """Response from LLM generation."""
    text: str
    tokens_input: int
    tokens_output: int
    latency_ms: int
    model_used: str


@dataclass
class LLMError:
    """Structured error response from LLM operations."""
    code: str
    message: str
    details: Dict[str, Any]


class LLMClientError(Exception):
    """Custom exception for LLM client errors with structured error information."""

    def __init__(self, error: LLMError):
        self.error = error
        super().__init__(error.message)


class LLMClient:
    """Client for interfacing with Groq API for text generation."""

    def __init__(self, api_key: Optional[str] = None):
        """
        Initialize LLM client with Groq API key.

        Args:
            api_key: Groq API key (defaults to GROQ_API_KEY from environment)
        """
        self.api_key = api_key or GROQ_API_KEY
        if not self.api_key:
            raise ValueError("GROQ_API_KEY must be provided or set in environment")

        self.client = Groq(api_key=self.api_key)
        self._encoding = None
        logger.info("LLMClient initialized successfully")

    def generate(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 500,
        temperature: float = 0.7,
        timeout: Optional[float] = None
    ) -> LLMResponse:
        """
        Generate response using Groq API.

        Args:
            model: Model name
            prompt: User message
            system_prompt: Optional system message sent before the prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature
            timeout: Request timeout in seconds (client default when None)

        Returns:
            LLMResponse with text, token counts, and latency

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()

        try:
            logger.debug(f"Generating response with model: {model}")

            response = self.client.chat.completions.create(
                **self._request_args(model, prompt, system_prompt, max_tokens, temperature, timeout)
            )

            latency_ms = int((time.time() - start_time) * 1000)
            text = response.choices[0].message.content or ""
            tokens_input = response.usage.prompt_tokens
            tokens_output = response.usage.completion_tokens

            logger.info(
                f"Generated response: model={model}, "
                f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
                f"latency={latency_ms}ms"
            )

            return LLMResponse(
                text=text,
                tokens_input=tokens_input,
                tokens_output=tokens_output,
                latency_ms=latency_ms,
                model_used=model
            )

        except Exception as e:
            raise self._client_error(e, model, start_time) from e

    def generate_stream(
        self,
        model: str,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 1500,
        temperature: float = 0.2,
        timeout: Optional[float] = None
    ) -> Iterator[Dict[str, Any]]:
        """
        Stream a response token by token.

        Yields {"type": "token", "content": str} for each content delta and
        finally {"type": "metadata", "data": {...}} with token usage and
        latency. Usage comes from the provider when it reports it, otherwise
        it is estimated with tiktoken.

        Raises:
            LLMClientError: Structured error with code, message, and details
        """
        start_time = time.time()
        accumulated: List[str] = []
        usage = None

        try:
            stream = self.client.chat.completions.create(
                stream=True,
                **self._request_args(model, prompt, system_prompt, max_tokens, temperature, timeout)
            )

            for chunk in stream:
                if chunk.choices:
                    content = chunk.choices[0].delta.content
                    if content:
                        accumulated.append(content)
                        yield {"type": "token", "content": content}

                x_groq = getattr(chunk, "x_groq", None)
                if x_groq is not None and getattr(x_groq, "usage", None) is not None:
                    usage = x_groq.usage

        except Exception as e:
            raise self._client_error(e, model, start_time) from e

        latency_ms = int((time.time() - start_time) * 1000)
        if usage is not None:
            tokens_input = usage.prompt_tokens
            tokens_output = usage.completion_tokens
        else:
            tokens_input = self.count_tokens((system_prompt or "") + prompt)
            tokens_output = self.count_tokens("".join(accumulated))

        logger.info(
            f"Streamed response: model={model}, "
            f"input_tokens={tokens_input}, output_tokens={tokens_output}, "
            f"latency={latency_ms}ms"
        )

        yield {
            "type": "metadata",
            "data": {
                "tokens_input": tokens_input,
                "tokens_output": tokens_output,
                "latency_ms": latency_ms,
                "model_used": model
            }
        }

    def count_tokens(self, text: str) -> int:
        """Estimate the token count of text."""
        if self._encoding is None:
            self._encoding = tiktoken.get_encoding(_ENCODING_NAME)
        return len(self._encoding.encode(text))

    @staticmethod
    def _request_args(
        model: str,
        prompt: str,
        system_prompt: Optional[str],
        max_tokens: int,
        temperature: float,
        timeout: Optional[float]
    ) -> Dict[str, Any]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        args: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_tokens": max_tokens,
            "temperature": temperature
        }
        if timeout is not None:
            args["timeout"] = timeout
        return args

    @staticmethod
    def _client_error(exc: Exception, model: str, start_time: float) -> LLMClientError:
        """Map a provider exception to a structured LLMClientError and log it."""
        latency_ms = int((time.time() - start_time) * 1000)
        details: Dict[str, Any] = {
            "model": model,
            "latency_ms": latency_ms,
            "original_error": str(exc)
        }

        if isinstance(exc, RateLimitError):
            code = "RATE_LIMIT_ERROR"
            message = "Rate limit exceeded. Please try again in a few moments."
            details["retry_after"] = 60
        elif isinstance(exc, AuthenticationError):
            code = "AUTHENTICATION_ERROR"
            message = "Authentication failed. Please check your API key."
        elif isinstance(exc, APITimeoutError):
            code = "TIMEOUT_ERROR"
            message = "Request timed out. Please try again."
        elif isinstance(exc, APIError):
            code = "API_ERROR"
            message = f"Groq API error: {str(exc)}"
        else:
            code = "UNKNOWN_ERROR"
            message = f"Unexpected error during generation: {str(exc)}"
            details["error_type"] = type(exc).__name__

        error = LLMError(code=code, message=message, details=details)
        logger.error(
            f"{code}: model={model}, latency={latency_ms}ms, error={exc}",
            exc_info=exc,
            extra={"error_code": error.code, "error_details": error.details}
        )
        return LLMClientError(error)

    @staticmethod
    def build_context(chunks: List[RetrievedChunk]) -> str:
        """
        Format chunks as numbered excerpts for the answer prompt.

        Each excerpt is headed `[n]`, followed by ` | Section: ...` and
        ` | Page n` when that metadata exists.
        """
        excerpts = []
        for number, chunk in enumerate(chunks, start=1):
            header = f"[{number}]"
            if chunk.metadata.section_header:
                header += f" | Section: {chunk.metadata.section_header}"
            if chunk.metadata.page:
                header += f" | Page {chunk.metadata.page}"
            excerpts.append(f"{header}\n{chunk.content}")
        return "\n\n---\n\n".join(excerpts)

    @staticmethod
    def build_prompt(question: str, chunks: List[RetrievedChunk]) -> str:
        """
        Build the user message carrying excerpts and the question.

        Args:
            question: User question
            chunks: Reranked chunks, in citation order

        Returns:
            Complete prompt string
        """
        return (
            f"### Document Excerpts\n\n{LLMClient.build_context(chunks)}"
            f"\n\n---\n\n### Question\n\n{question}"
        )
