"""OpenAI-compatible LLM integration with system prompt management.

Handles the reasoning layer of the RAG pipeline: takes the retrieval
result, renders it into a context document and synthesizes a Markdown
answer.  Works against Azure OpenAI, OpenAI, or any OpenAI-compatible
server (e.g. a local Ollama instance via ``base_url``).
"""

from __future__ import annotations

from typing import Iterator, Sequence

import structlog
from openai import AzureOpenAI, OpenAI

from cartograph.config import settings
from cartograph.models.retrieval import IssueContext, RetrievalMatch

logger = structlog.get_logger(__name__)

# ------------------------------------------------------------------
# Prompts
# ------------------------------------------------------------------

SYSTEM_PROMPT = """You are a Senior Technical Lead analyzing a codebase. You have been given \
code fragments retrieved from the repository, grouped by file, and possibly an issue \
the developer is working on.

Answer the developer's question using ONLY the provided context. Follow these rules:

1. **Cite your sources**: Always reference the file path when discussing code.

2. **Explain the logic flow**: When several files are involved, explain how they connect \
   (which module imports which, which function calls which).

3. **Be precise**: Quote relevant code from the provided context in fenced code blocks \
   with the appropriate language tag.

4. **Structured output**: Organize your answer with Markdown headings, bullet points and \
   code blocks.

5. **Honesty guardrail**: If the provided context does not contain enough information to \
   answer the question, clearly state: "I could not find sufficient information in the \
   current codebase context to answer this question." Do NOT invent code that is not in \
   the context.
"""

NO_CONTEXT_RESPONSE = """## No Relevant Code Found

The retriever could not find any code relevant to your question. This could mean:

- The repository has not been analyzed yet, or its index has not been built.
- The question may need to be rephrased to match the codebase terminology.
- The functionality you're asking about may not exist in the analyzed repository.

**Suggestion**: Rebuild the index via the `/index/rebuild` endpoint, or mention the \
file you are interested in with back-ticks (e.g. `` `src/app.js` ``).
"""

NO_CONTEXT_DOCUMENT = "No relevant code context found. Answering based on general knowledge."


# ------------------------------------------------------------------
# Context formatting
# ------------------------------------------------------------------


def build_context(
    files: Sequence[tuple[str, Sequence[RetrievalMatch]]],
    issue: IssueContext | None = None,
) -> str:
    """Render retrieval results as the context document sent to the LLM.

    Args:
        files: ``(file_id, matches)`` pairs in retrieval order.
        issue: Optional issue appended after the code.

    Returns:
        The context document.
    """
    if files:
        parts: list[str] = ["RELEVANT CODE CONTEXT:\n"]
        for file_id, matches in files:
            parts.append(f"\nFile: `{file_id}`\n")
            for match in matches:
                parts.append(f"\n```{match.language or 'text'}\n{match.text}\n```\n")
        context = "".join(parts)
    else:
        context = NO_CONTEXT_DOCUMENT

    if issue is not None and issue.body:
        context += f"\n\nCURRENT GITHUB ISSUE:\nTitle: {issue.title}\nBody: {issue.body}"
    return context


# ------------------------------------------------------------------
# LLM Service
# ------------------------------------------------------------------


class LLMService:
    """Synchronous chat-completion wrapper for the RAG pipeline.

    Uses :class:`AzureOpenAI` when an Azure endpoint is configured and
    :class:`OpenAI` otherwise.

    Args:
        api_key: API key; defaults to :pyattr:`Settings.openai_api_key`.
        model: Model (or Azure deployment) name.
        azure_endpoint: Azure OpenAI endpoint URL.
        base_url: Base URL of an OpenAI-compatible server.
        max_tokens: Maximum tokens in the completion response.
        api_version: Azure OpenAI API version.

    Raises:
        RuntimeError: If no API key is configured.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        azure_endpoint: str | None = None,
        base_url: str | None = None,
        max_tokens: int | None = None,
        api_version: str = "2024-12-01-preview",
    ) -> None:
        api_key = api_key or settings.openai_api_key
        if not api_key:
            raise RuntimeError(
                "OpenAI API key not configured. "
                "Set CARTOGRAPH_OPENAI_API_KEY in your .env file."
            )
        azure_endpoint = azure_endpoint or settings.azure_endpoint
        base_url = base_url or settings.openai_base_url

        if azure_endpoint:
            self._client = AzureOpenAI(
                api_key=api_key,
                azure_endpoint=azure_endpoint,
                api_version=api_version,
            )
        else:
            self._client = OpenAI(api_key=api_key, base_url=base_url or None)

        self.model = model or settings.openai_model
        self.max_tokens = max_tokens or settings.llm_max_tokens

    def synthesize(self, question: str, context: str) -> str:
        """Generate an answer for *question* from a rendered *context*.

        Args:
            question: The developer's natural-language question.
            context: Document produced by :func:`build_context`.

        Returns:
            A Markdown-formatted answer string.
        """
        messages = self._messages(question, context)
        logger.info("llm_request", model=self.model, context_chars=len(context))

        response = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
        )
        answer = response.choices[0].message.content or ""

        logger.info(
            "llm_response",
            model=self.model,
            tokens_prompt=response.usage.prompt_tokens if response.usage else 0,
            tokens_completion=response.usage.completion_tokens if response.usage else 0,
        )
        return answer

    def stream(self, question: str, context: str) -> Iterator[str]:
        """Like :meth:`synthesize` but yields the answer as text deltas."""
        messages = self._messages(question, context)
        logger.info("llm_stream_request", model=self.model, context_chars=len(context))

        completion = self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=self.max_tokens,
            stream=True,
        )
        for event in completion:
            if not event.choices:
                continue
            delta = event.choices[0].delta.content
            if delta:
                yield delta

    @staticmethod
    def _messages(question: str, context: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": f"{context}\n\n## Developer Question\n\n{question}"},
        ]
