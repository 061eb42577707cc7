# =============================================================================
# Services Package — Data Access and Safety
# =============================================================================
#   - schema.py: the four fixed collections, tenant field, allow-lists
#   - isolation.py: tenant isolation guard (pure query rewrite)
#   - executor.py: allow-listed, read-only query execution
#   - document_store.py: DocumentStore protocol + MongoDB implementation
#   - cache.py: CacheStore protocol, Redis implementation, fail-open
#     response cache manager
#   - llm.py: multi-provider LLM abstraction (Anthropic, OpenAI-compatible)
# =============================================================================
