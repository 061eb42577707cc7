# =============================================================================
# Schema Descriptor — The Four Fixed Collections
# =============================================================================
#
# Static description of the financial data model. Two consumers:
#   - the translation prompt (SCHEMA_DESCRIPTION), so the LLM knows which
#     collections and fields exist
#   - the isolation guard and executor (TENANT_FIELD, the allow-lists)
#
# Every collection except `users` holds tenant-owned rows keyed by
# TENANT_FIELD. `users` is globally readable so tenants can be listed.
# =============================================================================

from __future__ import annotations

from dataclasses import dataclass

TENANT_FIELD = "tenant_id"

USERS = "users"
BANK_TRANSACTIONS = "bank_transactions"
MUTUAL_FUND_HOLDINGS = "mutual_fund_holdings"
EQUITY_HOLDINGS = "equity_holdings"

TRANSACTION_CATEGORIES = ("food", "travel", "shopping", "bills", "other")


@dataclass(frozen=True)
class FieldSpec:
    name: str
    type: str
    description: str


@dataclass(frozen=True)
class CollectionSpec:
    name: str
    tenant_scoped: bool
    fields: tuple[FieldSpec, ...]


COLLECTIONS: dict[str, CollectionSpec] = {
    USERS: CollectionSpec(
        name=USERS,
        tenant_scoped=False,
        fields=(
            FieldSpec("_id", "string", "Primary key, the tenant identifier"),
            FieldSpec("name", "string", "Tenant's full name"),
        ),
    ),
    BANK_TRANSACTIONS: CollectionSpec(
        name=BANK_TRANSACTIONS,
        tenant_scoped=True,
        fields=(
            FieldSpec("_id", "string", "Primary key"),
            FieldSpec(TENANT_FIELD, "string", "Owning tenant (users._id)"),
            FieldSpec("amount", "number", "Transaction amount in INR"),
            FieldSpec(
                "category",
                "string",
                "One of: " + ", ".join(f'"{c}"' for c in TRANSACTION_CATEGORIES),
            ),
            FieldSpec("merchant", "string", "Name of the merchant"),
            FieldSpec("transaction_date", "date", "When the transaction occurred"),
        ),
    ),
    MUTUAL_FUND_HOLDINGS: CollectionSpec(
        name=MUTUAL_FUND_HOLDINGS,
        tenant_scoped=True,
        fields=(
            FieldSpec("_id", "string", "Primary key"),
            FieldSpec(TENANT_FIELD, "string", "Owning tenant (users._id)"),
            FieldSpec("scheme_name", "string", "Name of the mutual fund scheme"),
            FieldSpec("invested_value", "number", "Total amount invested in INR"),
            FieldSpec("current_value", "number", "Current market value in INR"),
        ),
    ),
    EQUITY_HOLDINGS: CollectionSpec(
        name=EQUITY_HOLDINGS,
        tenant_scoped=True,
        fields=(
            FieldSpec("_id", "string", "Primary key"),
            FieldSpec(TENANT_FIELD, "string", "Owning tenant (users._id)"),
            FieldSpec("stock_name", "string", "Name of the stock"),
            FieldSpec("quantity", "integer", "Number of shares held"),
            FieldSpec("current_price", "number", "Current price per share in INR"),
        ),
    ),
}

ALLOWED_COLLECTIONS = frozenset(COLLECTIONS)
ALLOWED_OPERATIONS = frozenset({"find", "find_one", "aggregate"})


def is_tenant_scoped(collection: str) -> bool:
    """True for every collection except `users`, including unknown names."""
    spec = COLLECTIONS.get(collection)
    return spec is None or spec.tenant_scoped


def describe_schema() -> str:
    """Render the collections as prompt text for the translation step."""
    lines = [
        "You have read access to a MongoDB database with these collections:",
        "",
    ]
    for i, spec in enumerate(COLLECTIONS.values(), 1):
        lines.append(f"{i}. {spec.name}:")
        for f in spec.fields:
            lines.append(f"   - {f.name} ({f.type}): {f.description}")
        lines.append("")
    lines.extend([
        "Query guidance:",
        "- Use aggregation pipelines for sums, averages and grouping",
        "- Match transactions by category on the 'category' field",
        "- Equity value is derived: quantity * current_price (never stored)",
        "- For mutual funds, current_value is the current portfolio value",
    ])
    return "\n".join(lines)


SCHEMA_DESCRIPTION = describe_schema()
