"""SQLite schema definitions for the expense ledger."""

SCHEMA_SQL = """
-- Persisted ledger slots (serialized transactions, budgets, reminders)
CREATE TABLE IF NOT EXISTS ledger_state (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    key TEXT NOT NULL UNIQUE,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

-- Archive import history
CREATE TABLE IF NOT EXISTS imports (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    source TEXT,
    transactions INTEGER DEFAULT 0,
    budgets INTEGER DEFAULT 0,
    payment_reminders INTEGER DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""
