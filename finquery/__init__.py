# =============================================================================
# Financial Query Service
# =============================================================================
# Answers natural-language questions about one tenant's financial records
# (bank transactions, mutual funds, equities) by translating them into a
# MongoDB query with an LLM, forcing that query onto the tenant's own rows,
# running it, and phrasing the result. Answers are cached per tenant.
#
# Package structure:
#   finquery/
#   ├── api/          → FastAPI routers (query, tenants, cache, health)
#   ├── agents/       → LangGraph orchestrator + LLM-backed translation
#   │                    and synthesis steps
#   ├── models/       → Pydantic V2 pipeline models and HTTP schemas
#   ├── services/     → Schema descriptor, isolation guard, executor,
#   │                    document store, response cache, LLM providers
#   ├── errors.py     → Exception taxonomy
#   ├── observability.py → Pipeline checkpoint logging
#   └── main.py       → App factory and connection lifecycle
# =============================================================================
