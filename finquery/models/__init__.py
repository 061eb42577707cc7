# =============================================================================
# Models Package — Pydantic V2 Schemas
# =============================================================================
#   - query.py: pipeline models (StructuredQuery, TenantContext, QueryResult)
#   - requests.py / responses.py: HTTP wire contract
# The cached payload is a QueryResult, never an HTTP response model.
# =============================================================================
