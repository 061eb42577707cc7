# =============================================================================
# API Request Models — Pydantic V2 Schemas
# =============================================================================
#
# Shape of data coming INTO the HTTP layer. Length limits on the question
# are enforced again by the orchestrator, which is the authority; the
# bounds here only keep absurd bodies out and document the contract.
# =============================================================================

from pydantic import BaseModel, ConfigDict, Field


class QueryRequest(BaseModel):
    """
    Request body for POST /api/query.

    Example:
        {
            "question": "How much did I spend on food?",
            "tenant_id": "0b6f4b3e-...",
            "tenant_name": "Rahul Sharma"
        }
    """

    question: str = Field(
        ...,
        description="Natural-language question about the tenant's finances",
        examples=["How much did I spend on food?"],
    )
    tenant_id: str = Field(
        ...,
        description="Identifier of the tenant the question is asked for",
    )
    tenant_name: str = Field(
        ...,
        description="Display name of the tenant, used in the answer",
    )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "question": "How much did I spend on food?",
                    "tenant_id": "0b6f4b3e-5a8e-4d0c-9c3e-2f6d1a7b8c90",
                    "tenant_name": "Rahul Sharma",
                },
                {
                    "question": "What is my total equity value?",
                    "tenant_id": "0b6f4b3e-5a8e-4d0c-9c3e-2f6d1a7b8c90",
                    "tenant_name": "Rahul Sharma",
                },
            ]
        }
    )
