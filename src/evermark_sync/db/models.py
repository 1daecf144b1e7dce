"""SQLite database schema for the voting cache."""

SCHEMA = """
-- Vote totals per evermark per cycle, re-derived from chain state on every write
CREATE TABLE IF NOT EXISTS voting_cache (
    evermark_id TEXT NOT NULL,
    cycle_number INTEGER NOT NULL,
    total_votes TEXT NOT NULL DEFAULT '0',
    voter_count INTEGER NOT NULL DEFAULT 0,
    last_updated TIMESTAMP NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (evermark_id, cycle_number)
);

-- Each user's delegation per evermark per cycle, last write wins
CREATE TABLE IF NOT EXISTS user_votes_cache (
    user_address TEXT NOT NULL,
    evermark_id TEXT NOT NULL,
    cycle_number INTEGER NOT NULL,
    vote_amount TEXT NOT NULL DEFAULT '0',
    transaction_hash TEXT,
    block_number INTEGER,
    updated_at TIMESTAMP NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    PRIMARY KEY (user_address, evermark_id, cycle_number)
);

-- Cycle metadata; is_active is derived at write time, never authoritative
CREATE TABLE IF NOT EXISTS voting_cycles_cache (
    cycle_number INTEGER PRIMARY KEY,
    start_time TIMESTAMP NOT NULL,
    end_time TIMESTAMP NOT NULL,
    total_votes TEXT NOT NULL DEFAULT '0',
    total_voters INTEGER NOT NULL DEFAULT 0,
    active_evermarks_count INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 0,
    finalized INTEGER NOT NULL DEFAULT 0,
    updated_at TIMESTAMP NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Indexes for common queries
CREATE INDEX IF NOT EXISTS idx_voting_cache_cycle ON voting_cache(cycle_number);
CREATE INDEX IF NOT EXISTS idx_voting_cache_updated ON voting_cache(last_updated);
CREATE INDEX IF NOT EXISTS idx_user_votes_user ON user_votes_cache(user_address);
CREATE INDEX IF NOT EXISTS idx_user_votes_evermark ON user_votes_cache(evermark_id, cycle_number);
CREATE INDEX IF NOT EXISTS idx_voting_cycles_active ON voting_cycles_cache(is_active);
"""

# Column sets per table, used to validate generic upsert/count/select calls
TABLE_COLUMNS = {
    "voting_cache": {
        "evermark_id",
        "cycle_number",
        "total_votes",
        "voter_count",
        "last_updated",
        "created_at",
    },
    "user_votes_cache": {
        "user_address",
        "evermark_id",
        "cycle_number",
        "vote_amount",
        "transaction_hash",
        "block_number",
        "updated_at",
        "created_at",
    },
    "voting_cycles_cache": {
        "cycle_number",
        "start_time",
        "end_time",
        "total_votes",
        "total_voters",
        "active_evermarks_count",
        "is_active",
        "finalized",
        "updated_at",
        "created_at",
    },
}

TALLY_TABLE = "voting_cache"
USER_VOTE_TABLE = "user_votes_cache"
CYCLE_TABLE = "voting_cycles_cache"
