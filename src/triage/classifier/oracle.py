"""Classifier oracle: the text-completion capability behind model stages.

Pipeline stages that need a model judgement send a rendered prompt to an
oracle and get back a short verdict token (or, for answer-generation
prompts, free text). The oracle never raises for transport or response
problems; it returns an OracleResult that is either a success carrying the
raw text or a failure carrying an OracleFailureKind. Pipelines turn a
failure into an OracleError and stop processing the request.

LLMOracle is the production implementation. It uses LangChain with any
OpenAI-compatible endpoint (OpenAI, GitHub Models, vLLM).
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage
from langchain_openai import ChatOpenAI


logger = logging.getLogger(__name__)


class OracleFailureKind(str, Enum):
    """Why an oracle call produced no usable text.

    Attributes:
        TRANSPORT: The request failed (network, timeout, HTTP error).
        EMPTY_RESPONSE: The model returned blank content.
        MALFORMED_RESPONSE: The response had an unexpected shape.
    """

    TRANSPORT = "transport"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"


class OracleError(Exception):
    """Raised by a pipeline when an oracle call fails.

    Attributes:
        message: Human-readable error description.
        purpose: The oracle purpose (stage prompt) that failed.
        kind: The failure kind reported by the oracle.
        cause: The underlying exception, when there was one.
    """

    def __init__(
        self,
        message: str,
        purpose: str = "",
        kind: OracleFailureKind = OracleFailureKind.TRANSPORT,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.purpose = purpose
        self.kind = kind
        self.cause = cause
        super().__init__(message)


@dataclass(frozen=True)
class OracleResult:
    """Outcome of one oracle call: success(text) or failure(kind)."""

    text: Optional[str] = None
    failure_kind: Optional[OracleFailureKind] = None
    detail: str = ""
    cause: Optional[Exception] = None

    @classmethod
    def success(cls, text: str) -> "OracleResult":
        return cls(text=text)

    @classmethod
    def failure(
        cls,
        kind: OracleFailureKind,
        detail: str = "",
        cause: Optional[Exception] = None,
    ) -> "OracleResult":
        return cls(failure_kind=kind, detail=detail, cause=cause)

    @property
    def ok(self) -> bool:
        return self.failure_kind is None and self.text is not None

    def unwrap(self, purpose: str) -> str:
        """Return the text, or raise OracleError for a failure.

        Args:
            purpose: Purpose label used in the error message.

        Raises:
            OracleError: If this result is a failure.
        """
        if self.ok:
            return self.text
        kind = self.failure_kind or OracleFailureKind.MALFORMED_RESPONSE
        raise OracleError(
            f"Oracle call for {purpose} failed ({kind.value}): {self.detail}",
            purpose=purpose,
            kind=kind,
            cause=self.cause,
        )


class ClassifierOracle(Protocol):
    """Capability interface for model-backed classification."""

    async def classify(self, prompt: str, purpose: str) -> OracleResult:
        """Send a prompt and return the model's raw reply."""
        ...


class LLMOracle:
    """Oracle backed by an OpenAI-compatible chat completion endpoint.

    Attributes:
        llm_url: Base URL of the OpenAI-compatible API.
        model_name: Model identifier.
        api_key: API key for the endpoint.
        timeout: Request timeout in seconds.
        temperature: Sampling temperature.
        max_tokens: Maximum tokens in the reply.

    Example:
        >>> oracle = LLMOracle(
        ...     llm_url="https://models.github.ai/inference",
        ...     model_name="openai/gpt-4o",
        ...     api_key="ghp_xxx",
        ... )
        >>> result = await oracle.classify("Is this spam? ...", "issue_spam")
        >>> result.text
        'NOT_SPAM'
    """

    def __init__(
        self,
        llm_url: str,
        model_name: str,
        api_key: str = "not-needed",
        timeout: float = 30.0,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ):
        self.llm_url = llm_url
        self.model_name = model_name
        self.api_key = api_key
        self.timeout = timeout
        self.temperature = temperature
        self.max_tokens = max_tokens
        self._llm: Optional[ChatOpenAI] = None

    @property
    def llm(self) -> ChatOpenAI:
        """Get the LLM client, creating it if necessary."""
        if self._llm is None:
            self._llm = ChatOpenAI(
                base_url=self.llm_url,
                model=self.model_name,
                temperature=self.temperature,
                timeout=self.timeout,
                max_tokens=self.max_tokens,
                api_key=self.api_key,
            )
        return self._llm

    async def classify(self, prompt: str, purpose: str) -> OracleResult:
        """Send a single-message prompt to the model.

        Args:
            prompt: Fully rendered prompt text.
            purpose: Short label for logging (e.g. "issue_spam").

        Returns:
            OracleResult with the stripped reply text, or a failure.
        """
        logger.info(
            "Calling classifier oracle",
            extra={
                "purpose": purpose,
                "model": self.model_name,
                "prompt_length": len(prompt),
            },
        )

        try:
            response = await self.llm.ainvoke([HumanMessage(content=prompt)])
        except Exception as e:
            logger.error(
                "Oracle call failed",
                extra={
                    "purpose": purpose,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            return OracleResult.failure(
                OracleFailureKind.TRANSPORT,
                detail=str(e),
                cause=e,
            )

        content = getattr(response, "content", None)
        if not isinstance(content, str):
            logger.warning(
                "Unexpected oracle response type",
                extra={"purpose": purpose, "response_type": type(content).__name__},
            )
            return OracleResult.failure(
                OracleFailureKind.MALFORMED_RESPONSE,
                detail=f"Unexpected response type: {type(content).__name__}",
            )

        text = content.strip()
        if not text:
            return OracleResult.failure(
                OracleFailureKind.EMPTY_RESPONSE,
                detail="Model returned an empty reply",
            )

        logger.info(
            "Oracle call succeeded",
            extra={"purpose": purpose, "result_preview": text[:100]},
        )
        return OracleResult.success(text)

    async def health_check(self) -> bool:
        """Check if the LLM endpoint is reachable."""
        try:
            await self.llm.ainvoke([HumanMessage(content="Hello")])
            return True
        except Exception as e:
            logger.warning(
                "LLM health check failed",
                extra={"error": str(e)},
            )
            return False
