# SQL schema for MathDrill database

SCHEMA_VERSION = 3

SCHEMA_SQL = """
-- Modules (reference data)
CREATE TABLE IF NOT EXISTS modules (
    id INTEGER PRIMARY KEY CHECK(id BETWEEN 0 AND 20),
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT ''
);

-- Micro-skills within a module
CREATE TABLE IF NOT EXISTS micro_skills (
    id INTEGER PRIMARY KEY,
    module_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    estimated_time_seconds INTEGER NOT NULL DEFAULT 60,
    position INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY (module_id) REFERENCES modules (id) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS micro_skill_prerequisites (
    micro_skill_id INTEGER NOT NULL,
    prerequisite_id INTEGER NOT NULL,
    PRIMARY KEY (micro_skill_id, prerequisite_id),
    FOREIGN KEY (micro_skill_id) REFERENCES micro_skills (id) ON DELETE CASCADE,
    FOREIGN KEY (prerequisite_id) REFERENCES micro_skills (id) ON DELETE CASCADE
);

-- Question bank (owned by content management, read-only for the engine)
CREATE TABLE IF NOT EXISTS questions (
    id TEXT PRIMARY KEY,
    module_id INTEGER NOT NULL,
    micro_skill_id INTEGER NOT NULL,
    difficulty_level INTEGER NOT NULL CHECK(difficulty_level BETWEEN 1 AND 10),
    expected_time_seconds INTEGER NOT NULL DEFAULT 60,
    points INTEGER NOT NULL DEFAULT 10,
    text TEXT NOT NULL,
    type TEXT NOT NULL CHECK(type IN ('mcq', 'numeric', 'text')),
    options TEXT NOT NULL DEFAULT '[]',
    correct_answer TEXT NOT NULL,
    solution_steps TEXT NOT NULL DEFAULT '[]',
    hints TEXT NOT NULL DEFAULT '[]',
    explanation TEXT,
    status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('draft', 'active', 'published', 'archived')),
    FOREIGN KEY (module_id) REFERENCES modules (id),
    FOREIGN KEY (micro_skill_id) REFERENCES micro_skills (id)
);

-- Per-user, per-micro-skill mastery
CREATE TABLE IF NOT EXISTS mastery_records (
    user_id TEXT NOT NULL,
    micro_skill_id INTEGER NOT NULL,
    module_id INTEGER,
    current_difficulty INTEGER NOT NULL DEFAULT 1 CHECK(current_difficulty BETWEEN 1 AND 10),
    recent_results TEXT NOT NULL DEFAULT '[]',
    rolling_accuracy REAL,
    total_attempts INTEGER NOT NULL DEFAULT 0,
    correct_attempts INTEGER NOT NULL DEFAULT 0,
    avg_time_seconds REAL NOT NULL DEFAULT 0,
    last_practiced_at TEXT,
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    PRIMARY KEY (user_id, micro_skill_id)
);

-- Sessions (practice or drill)
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    session_type TEXT NOT NULL CHECK(session_type IN ('practice', 'drill')),
    module_id INTEGER,
    drill_number INTEGER,
    total_questions INTEGER NOT NULL,
    current_position INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL DEFAULT 'active' CHECK(status IN ('active', 'completed', 'abandoned')),
    started_at TEXT NOT NULL,
    completed_at TEXT,
    summary TEXT,
    archived INTEGER NOT NULL DEFAULT 0
);

-- Ordered session plan
CREATE TABLE IF NOT EXISTS session_questions (
    session_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    question_id TEXT NOT NULL,
    micro_skill_id INTEGER NOT NULL,
    PRIMARY KEY (session_id, position),
    UNIQUE (session_id, question_id),
    FOREIGN KEY (session_id) REFERENCES sessions (id) ON DELETE CASCADE
);

-- Answer trail (append-only)
CREATE TABLE IF NOT EXISTS answer_trail (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    session_id TEXT NOT NULL,
    position INTEGER NOT NULL,
    question_id TEXT NOT NULL,
    micro_skill_id INTEGER NOT NULL,
    difficulty INTEGER NOT NULL,
    user_answer TEXT,
    is_correct INTEGER NOT NULL,
    time_spent_seconds REAL NOT NULL DEFAULT 0,
    expected_time_seconds INTEGER NOT NULL DEFAULT 60,
    confidence_score REAL NOT NULL,
    hints_used INTEGER NOT NULL DEFAULT 0,
    points_earned INTEGER NOT NULL DEFAULT 0,
    answered_at TEXT NOT NULL,
    UNIQUE (session_id, position),
    FOREIGN KEY (session_id) REFERENCES sessions (id) ON DELETE CASCADE
);

-- Drill progress per user/module/drill
CREATE TABLE IF NOT EXISTS drill_progress (
    user_id TEXT NOT NULL,
    module_id INTEGER NOT NULL,
    drill_number INTEGER NOT NULL,
    status TEXT NOT NULL DEFAULT 'available' CHECK(status IN ('locked', 'available', 'in_progress', 'completed')),
    accuracy REAL,
    completed_at TEXT,
    session_id TEXT,
    PRIMARY KEY (user_id, module_id, drill_number)
);
"""

# Indexes for performance
INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_micro_skills_module ON micro_skills (module_id, position);
CREATE INDEX IF NOT EXISTS idx_questions_lookup ON questions (module_id, micro_skill_id, difficulty_level);
CREATE INDEX IF NOT EXISTS idx_questions_status ON questions (status);
CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions (user_id, status);
CREATE INDEX IF NOT EXISTS idx_sessions_drill ON sessions (user_id, module_id, session_type, drill_number);
CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_active ON sessions (user_id) WHERE status = 'active';
CREATE INDEX IF NOT EXISTS idx_answer_trail_session ON answer_trail (session_id, position);
CREATE INDEX IF NOT EXISTS idx_mastery_user_module ON mastery_records (user_id, module_id);
CREATE INDEX IF NOT EXISTS idx_drill_progress_module ON drill_progress (user_id, module_id);
"""
