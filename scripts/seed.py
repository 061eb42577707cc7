#!/usr/bin/env python3
"""
Load sample tenants and their financial records into MongoDB.

Drops and recreates the four collections, builds the indexes the query
pipeline relies on, and inserts two tenants with transactions, mutual
fund holdings and equity holdings. All figures are synthetic.

Usage:
    python scripts/seed.py

Reads MONGODB_URL / MONGODB_DB_NAME from the environment or .env.
"""

import logging
import uuid
from datetime import datetime

from pymongo import ASCENDING, DESCENDING, MongoClient

from finquery.config import settings
from finquery.services.schema import (
    BANK_TRANSACTIONS,
    COLLECTIONS,
    EQUITY_HOLDINGS,
    MUTUAL_FUND_HOLDINGS,
    TENANT_FIELD,
    USERS,
)

logger = logging.getLogger("seed")

TENANTS = ["Rahul Sharma", "Priya Patel"]

# (tenant index, amount, category, merchant, date)
TRANSACTIONS = [
    (0, 2500.00, "food", "Swiggy", "2024-12-15"),
    (0, 15000.00, "travel", "MakeMyTrip", "2024-12-10"),
    (0, 5000.00, "shopping", "Amazon", "2024-12-08"),
    (0, 3500.00, "bills", "Electricity Board", "2024-12-05"),
    (0, 1800.00, "food", "Zomato", "2024-12-03"),
    (0, 8500.00, "shopping", "Flipkart", "2024-12-01"),
    (0, 2000.00, "bills", "Jio", "2024-11-28"),
    (0, 12000.00, "other", "Medical Store", "2024-11-25"),
    (1, 1200.00, "food", "Zomato", "2024-12-14"),
    (1, 8000.00, "shopping", "Flipkart", "2024-12-12"),
    (1, 25000.00, "travel", "IRCTC", "2024-12-09"),
    (1, 4500.00, "bills", "Gas Agency", "2024-12-06"),
    (1, 3200.00, "food", "Swiggy", "2024-12-04"),
    (1, 15000.00, "other", "Insurance Premium", "2024-12-02"),
]

# (tenant index, scheme name, invested value, current value)
MUTUAL_FUNDS = [
    (0, "HDFC Top 100 Fund", 50000.00, 58500.00),
    (0, "SBI Bluechip Fund", 30000.00, 33200.00),
    (0, "ICICI Prudential Value Discovery", 25000.00, 28750.00),
    (1, "Axis Long Term Equity Fund", 75000.00, 82000.00),
    (1, "Mirae Asset Large Cap Fund", 40000.00, 45200.00),
]

# (tenant index, stock name, quantity, current price)
EQUITIES = [
    (0, "Reliance Industries", 25, 2680.50),
    (0, "TCS", 15, 3450.00),
    (0, "HDFC Bank", 30, 1680.00),
    (1, "Infosys", 30, 1520.75),
    (1, "HDFC Bank", 20, 1680.00),
    (1, "Wipro", 50, 450.25),
    (1, "Bharti Airtel", 40, 1250.00),
]


def _new_id() -> str:
    return str(uuid.uuid4())


def seed(db) -> list[str]:
    """Reset the collections in `db` and insert the sample data."""
    for name in COLLECTIONS:
        db.drop_collection(name)
        db.create_collection(name)

    for name in (BANK_TRANSACTIONS, MUTUAL_FUND_HOLDINGS, EQUITY_HOLDINGS):
        db[name].create_index([(TENANT_FIELD, ASCENDING)])
    db[BANK_TRANSACTIONS].create_index([("category", ASCENDING)])
    db[BANK_TRANSACTIONS].create_index([("transaction_date", DESCENDING)])
    db[EQUITY_HOLDINGS].create_index([("stock_name", ASCENDING)])

    tenant_ids = [_new_id() for _ in TENANTS]
    db[USERS].insert_many(
        [{"_id": tid, "name": name} for tid, name in zip(tenant_ids, TENANTS)]
    )

    db[BANK_TRANSACTIONS].insert_many([
        {
            "_id": _new_id(),
            TENANT_FIELD: tenant_ids[t],
            "amount": amount,
            "category": category,
            "merchant": merchant,
            "transaction_date": datetime.fromisoformat(date),
        }
        for t, amount, category, merchant, date in TRANSACTIONS
    ])
    db[MUTUAL_FUND_HOLDINGS].insert_many([
        {
            "_id": _new_id(),
            TENANT_FIELD: tenant_ids[t],
            "scheme_name": scheme,
            "invested_value": invested,
            "current_value": current,
        }
        for t, scheme, invested, current in MUTUAL_FUNDS
    ])
    db[EQUITY_HOLDINGS].insert_many([
        {
            "_id": _new_id(),
            TENANT_FIELD: tenant_ids[t],
            "stock_name": stock,
            "quantity": quantity,
            "current_price": price,
        }
        for t, stock, quantity, price in EQUITIES
    ])
    return tenant_ids


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(message)s")

    client = MongoClient(settings.mongodb_url)
    try:
        db = client[settings.mongodb_db_name]
        tenant_ids = seed(db)

        for name in COLLECTIONS:
            logger.info("%s: %d documents", name, db[name].count_documents({}))
        for tid, name in zip(tenant_ids, TENANTS):
            logger.info("Tenant %s (id: %s)", name, tid)
    finally:
        client.close()


if __name__ == "__main__":
    main()
