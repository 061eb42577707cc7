# =============================================================================
# Synthesizer — Retrieved Rows → Human-Readable Answer
# =============================================================================
#
# Gives the LLM the tenant's name, the original question and the rows the
# executor returned, and asks for a short answer grounded in those rows.
#
# DESIGN DECISION: No LLM call when nothing was retrieved. The answer is a
# fixed message, which costs nothing and can't hallucinate figures.
# =============================================================================

from __future__ import annotations

import json
import logging
from typing import Any

from finquery.services.llm import LLMProvider

logger = logging.getLogger(__name__)

# Rows beyond this are summarised as a count to keep prompts bounded
MAX_ROWS_IN_PROMPT = 200

SYSTEM_PROMPT = (
    "You are a helpful personal finance assistant. Answer the user's "
    "question using ONLY the data retrieved from their records.\n\n"
    "Rules:\n"
    "- Format amounts as Indian Rupees (₹) where appropriate\n"
    "- Be specific with amounts and details; never estimate\n"
    "- If the data doesn't answer the question, say so plainly\n"
    "- Address the user by name when it reads naturally\n"
    "- Keep it concise"
)


async def synthesize(
    tenant_name: str,
    question: str,
    retrieved_data: list[dict[str, Any]],
    llm: LLMProvider,
) -> str:
    """Return the answer text for `question` given `retrieved_data`."""
    if not retrieved_data:
        return (
            f"Sorry {tenant_name}, I couldn't find any records that match "
            "your question."
        )

    user_message = (
        f"User: {tenant_name}\n"
        f"Question: {question}\n\n"
        f"Retrieved data ({len(retrieved_data)} record(s)):\n"
        f"{format_records(retrieved_data)}"
    )

    logger.info("Synthesizing answer from %d record(s)", len(retrieved_data))

    response = await llm.complete(
        messages=[{"role": "user", "content": user_message}],
        system=SYSTEM_PROMPT,
    )

    logger.info(
        "Synthesis complete: model=%s, tokens=%d+%d",
        response.model, response.input_tokens, response.output_tokens,
    )
    return response.content


def format_records(records: list[dict[str, Any]]) -> str:
    shown = records[:MAX_ROWS_IN_PROMPT]
    text = json.dumps(shown, indent=2, default=str, ensure_ascii=False)
    if len(records) > len(shown):
        text += f"\n... and {len(records) - len(shown)} more record(s)"
    return text
