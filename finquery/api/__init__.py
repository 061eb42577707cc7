# =============================================================================
# API Package — FastAPI Route Handlers
# =============================================================================
#   - query.py: POST /api/query, GET /api/tenants, GET /api/query/examples
#   - cache.py: cache statistics and invalidation
#   - health.py: liveness plus backing-store reachability
#   - deps.py: access to the pipeline objects on app.state
# =============================================================================
