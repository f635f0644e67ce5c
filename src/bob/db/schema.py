"""SQLite database schema definitions."""

SCHEMA_SQL = """
-- User profiles; daily_calorie_target is the single current target
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    goal TEXT NOT NULL DEFAULT 'maintain' CHECK(goal IN ('cut', 'gain', 'maintain')),
    daily_calorie_target INTEGER NOT NULL,
    protein_target REAL,
    current_weight REAL,
    target_weight REAL,
    preferred_units TEXT NOT NULL DEFAULT 'metric' CHECK(preferred_units IN ('metric', 'imperial')),
    onboarding_completed BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMP NOT NULL,
    updated_at TIMESTAMP NOT NULL
);

-- Weight log; entries are immutable and may be in kg or lbs
CREATE TABLE IF NOT EXISTS weight_log (
    log_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    weight REAL NOT NULL CHECK(weight > 0),
    unit TEXT NOT NULL CHECK(unit IN ('kg', 'lbs')),
    date DATE NOT NULL,
    timestamp TIMESTAMP NOT NULL,
    notes TEXT,
    FOREIGN KEY (user_id) REFERENCES user_profiles(user_id)
);

CREATE INDEX IF NOT EXISTS idx_weight_log_user_ts ON weight_log(user_id, timestamp);

-- Food log; one row per logged meal
CREATE TABLE IF NOT EXISTS food_log (
    log_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date DATE NOT NULL,
    meal_label TEXT NOT NULL,
    items_json TEXT NOT NULL DEFAULT '[]',
    total_calories REAL NOT NULL,
    total_protein REAL NOT NULL DEFAULT 0,
    total_carbs REAL NOT NULL DEFAULT 0,
    total_fat REAL NOT NULL DEFAULT 0,
    created_at TIMESTAMP NOT NULL,
    FOREIGN KEY (user_id) REFERENCES user_profiles(user_id)
);

CREATE INDEX IF NOT EXISTS idx_food_log_user_date ON food_log(user_id, date);

-- Append-only audit of calorie target adjustments
CREATE TABLE IF NOT EXISTS calibration_history (
    record_id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    date DATE NOT NULL,
    old_target INTEGER NOT NULL,
    new_target INTEGER NOT NULL,
    reason TEXT NOT NULL,
    data_points_analyzed INTEGER NOT NULL,
    confidence TEXT NOT NULL CHECK(confidence IN ('high', 'medium', 'low')),
    created_at TIMESTAMP NOT NULL,
    FOREIGN KEY (user_id) REFERENCES user_profiles(user_id)
);

CREATE INDEX IF NOT EXISTS idx_calibration_history_user ON calibration_history(user_id, created_at);
"""


def get_schema_sql() -> str:
    """Return the complete schema SQL."""
    return SCHEMA_SQL
