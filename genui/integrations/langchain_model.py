"""
LangChain Generation Model
Adapts any LangChain language model to the GenerationModel protocol.
"""

from typing import Any, AsyncIterator

from langchain_core.language_models import BaseLanguageModel

from ..core.json import JSONParseError, extract_json
from ..core.logging_config import get_logger
from ..monitoring import metrics_collector
from .interfaces import (
    DesignInput,
    ExtractComponentsInput,
    ExtractComponentsResult,
    normalize_extraction,
)
from .prompts import PromptBuilder

logger = get_logger(__name__)


def _text(message: Any) -> str:
    content = message.content if hasattr(message, "content") else message
    return content if isinstance(content, str) else str(content)


class LangChainGenerationModel:
    """Generation model backed by a LangChain LLM or chat model."""

    def __init__(self, llm: BaseLanguageModel, prompts: PromptBuilder | None = None) -> None:
        self.llm = llm
        self.prompts = prompts or PromptBuilder()

    async def extract_components(self, data: ExtractComponentsInput) -> ExtractComponentsResult:
        """Ask for the component list; unparseable replies yield an empty result."""
        reply = _text(await self.llm.ainvoke(self.prompts.build_extract(data)))
        logger.debug("extract_reply", length=len(reply))

        try:
            payload = extract_json(reply, repair=True)
        except JSONParseError as e:
            logger.warning("extract_parse_failed", error=str(e), preview=reply[:200])
            metrics_collector.record_error("JSONParseError", "model")
            return ExtractComponentsResult()

        result = normalize_extraction(payload)
        logger.info(
            "extract_complete",
            components=len(result.components),
            intent=result.intent_type,
            confidence=result.confidence,
        )
        return result

    async def stream_design(self, data: DesignInput) -> AsyncIterator[str]:
        """Stream raw model text; object extraction is the caller's job."""
        prompt = self.prompts.build_design(data)
        logger.info("design_stream", attempt=data.attempt.attempt, prompt_length=len(prompt))

        async for token in self.llm.astream(prompt):
            text = _text(token)
            if text:
                yield text
