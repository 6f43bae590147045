"""
Prompt templates for the support assistant.
"""

from __future__ import annotations

from typing import Sequence

NO_CONTEXT_REPLY = "I don't have information about that in our documentation"

CHAT_SYSTEM_PROMPT = f"""You are a helpful support assistant for a customer support portal.
Your job is to help users troubleshoot issues and find answers.

IMPORTANT RULES:
1. ONLY use information from the provided documentation context
2. If the answer isn't in the context, say "{NO_CONTEXT_REPLY}"
3. Be conversational and helpful
4. Ask clarifying questions if the user's issue is unclear
5. Keep responses concise but complete

DOCUMENTATION CONTEXT:
"""

EMPTY_CONTEXT_MARKER = (
    "(No documentation matched this question. You must reply that the "
    "information is not available in our documentation.)"
)


def build_context(documents: Sequence[tuple[str, str]]) -> str:
    """Render (title, content) pairs as markdown sections separated by rules."""
    if not documents:
        return EMPTY_CONTEXT_MARKER
    return "\n\n---\n\n".join(f"### {title}\n{content}" for title, content in documents)


def build_system_prompt(documents: Sequence[tuple[str, str]]) -> str:
    return CHAT_SYSTEM_PROMPT + build_context(documents)
