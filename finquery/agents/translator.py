# =============================================================================
# Translator — Natural-Language Question → StructuredQuery
# =============================================================================
#
# Asks the LLM for a MongoDB-style query as JSON and parses the reply.
#
# The reply is text first: models wrap JSON in ```json fences, prepend a
# sentence, or use shell spellings ("query", "findOne"). We strip fences,
# cut to the outermost {...}, parse, then validate with Pydantic. Anything
# that still doesn't fit raises TranslationParseError carrying the raw
# output for diagnosis.
#
# The prompt asks the model to scope by tenant, but nothing downstream
# relies on it doing so. The isolation guard rewrites the result anyway.
# =============================================================================

from __future__ import annotations

import json
import logging
import re

import pydantic

from finquery.errors import TranslationParseError
from finquery.models.query import StructuredQuery
from finquery.services.llm import LLMProvider
from finquery.services.schema import TENANT_FIELD

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json|JSON)?\s*(.*?)```", re.DOTALL)

SYSTEM_PROMPT = (
    "You translate questions about a person's finances into a single "
    "MongoDB query. Reply with ONLY a JSON object, no prose, no markdown.\n\n"
    "JSON shape:\n"
    "{\n"
    '  "collection": "<collection name>",\n'
    '  "operation": "find" | "find_one" | "aggregate",\n'
    '  "filter": { },\n'
    '  "projection": { },\n'
    '  "pipeline": [ ]\n'
    "}\n\n"
    "Rules:\n"
    "- Use \"filter\" (and optionally \"projection\") for find/find_one\n"
    "- Use \"pipeline\" for aggregate; sums, averages and grouping need it\n"
    f"- Every query on a collection other than users MUST filter on "
    f"{TENANT_FIELD}; for aggregate, make a $match on {TENANT_FIELD} the "
    f"first stage\n"
    "- Never write, update or delete"
)


async def translate(
    schema_description: str,
    tenant_id: str,
    question: str,
    llm: LLMProvider,
) -> StructuredQuery:
    """
    Produce a StructuredQuery for `question` on behalf of `tenant_id`.

    The result is untrusted. Callers must run it through the isolation
    guard before execution.

    Raises:
        TranslationParseError: the LLM reply is not a usable query.
    """
    user_message = (
        f"{schema_description}\n\n"
        f"The question is asked by the tenant with {TENANT_FIELD} "
        f'"{tenant_id}".\n\n'
        f"Question: {question}\n\n"
        "JSON:"
    )

    response = await llm.complete(
        messages=[{"role": "user", "content": user_message}],
        system=SYSTEM_PROMPT,
    )

    logger.info(
        "Translation complete: model=%s, tokens=%d+%d",
        response.model, response.input_tokens, response.output_tokens,
    )

    return parse_structured_query(response.content)


def parse_structured_query(raw: str) -> StructuredQuery:
    """Parse an LLM reply into a StructuredQuery."""
    text = _extract_json_text(raw)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error("Translation output is not JSON: %r", raw)
        raise TranslationParseError(
            "Failed to parse query from LLM response", raw_output=raw,
        ) from e

    if not isinstance(data, dict):
        logger.error("Translation output is not a JSON object: %r", raw)
        raise TranslationParseError(
            "LLM response is not a JSON object", raw_output=raw,
        )

    try:
        return StructuredQuery.model_validate(data)
    except pydantic.ValidationError as e:
        logger.error("Translation output has the wrong shape: %r (%s)", raw, e)
        raise TranslationParseError(
            "LLM response does not describe a query", raw_output=raw,
        ) from e


def _extract_json_text(raw: str) -> str:
    text = raw.strip()
    fenced = _FENCE_RE.search(text)
    if fenced:
        text = fenced.group(1).strip()

    # Tolerate a leading or trailing sentence around the object
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text
