# =============================================================================
# Agents Package — LLM-Backed Pipeline Steps and Their Orchestration
# =============================================================================
#   - orchestrator.py: LangGraph graph — cache lookup, translate, isolate,
#     execute, synthesize, cache store
#   - translator.py: question → StructuredQuery (untrusted output)
#   - synthesizer.py: retrieved rows → answer text
# =============================================================================
