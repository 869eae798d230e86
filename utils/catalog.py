"""Built-in module and micro-skill catalog, seeded into the database on init."""
from __future__ import annotations

from typing import Dict, List, Optional, Tuple

MODULES: List[Tuple[int, str, str]] = [
    (0, "Magic Maths", "Master magical calculation techniques and mental math tricks"),
    (1, "Speed Addition", "Learn rapid addition techniques for quick mental calculations"),
    (2, "Speed Subtraction", "Master fast subtraction methods and mental calculation shortcuts"),
    (3, "Speed Multiplication", "Learn advanced multiplication techniques for lightning-fast calculations"),
    (4, "Speed Division", "Master quick division methods and mental division strategies"),
    (5, "Squaring Techniques", "Learn efficient techniques for squaring numbers mentally"),
    (6, "Cubing Techniques", "Master methods for calculating cubes of numbers quickly"),
    (7, "Cube Rooting Techniques", "Learn techniques for finding cube roots efficiently"),
    (8, "Square Rooting Techniques", "Master methods for calculating square roots mentally"),
    (9, "Percentage", "Apply percentage concepts to real-world scenarios including profit, loss, and discounts"),
    (10, "Ratio", "Understand and solve problems involving ratios and proportional relationships"),
    (11, "Average", "Master calculation of averages and mean values in various contexts"),
    (12, "Fractions", "Build a strong foundation in understanding and working with fractions"),
    (13, "Indices", "Learn the rules and applications of indices and exponents"),
    (14, "Surds", "Master operations with surds and irrational numbers"),
    (15, "VBODMAS", "Master the order of operations using VBODMAS rule"),
    (16, "Approximation Techniques", "Learn efficient approximation methods for quick estimation"),
    (17, "Simple Equations", "Solve linear equations and simple algebraic expressions"),
    (18, "Factorisation", "Master factorisation techniques for algebraic expressions"),
    (19, "DI + QA Application", "Apply calculation techniques to Data Interpretation and Quantitative Aptitude problems"),
    (20, "Miscellaneous", "Practice mixed calculation problems and advanced problem-solving techniques"),
]

# (id, module_id, name, estimated_time_seconds); listed in teaching order
MICRO_SKILLS: List[Tuple[int, int, str, int]] = [
    (1, 1, "2 Digit Numbers", 45),
    (2, 1, "3 Digit Numbers", 60),
    (3, 1, "4 Digit Numbers", 75),
    (4, 2, "2 Digit Numbers", 45),
    (5, 2, "3 Digit Numbers", 60),
    (6, 2, "4 Digit Numbers", 75),
    (7, 3, "Series of 9s", 60),
    (8, 3, "Series of 1s", 60),
    (9, 3, "Similar digits in the multiplier", 70),
    (10, 3, "Powers of 5", 55),
    (11, 3, "Criss-Cross Method: 2 Digit Numbers", 65),
    (12, 3, "Criss-Cross Method: 3 Digit Numbers", 90),
    (13, 3, "Criss-Cross Method: 4 Digit Numbers", 120),
    (14, 3, "Base 10", 70),
    (15, 3, "Base is a multiple of 10", 80),
    (16, 3, "Base 100", 75),
    (17, 3, "Base is a multiple of 100", 90),
    (18, 3, "Base is a submultiple of 100", 90),
    (19, 3, "Base 1000", 100),
    (20, 3, "Base is a multiple of 1000", 110),
    (21, 3, "Base is a submultiple of 1000", 110),
    (22, 3, "Multiplying numbers with different base values", 120),
    (23, 4, "Base Method: Divisor is smaller than base", 90),
    (24, 4, "Base Method: Divisor is greater than base", 100),
    (25, 5, "When unit digit is 5", 50),
    (26, 5, "2 digit numbers", 65),
    (27, 5, "Higher digit numbers", 85),
    (28, 5, "Sum and difference of squares", 75),
    (29, 6, "2 digit numbers", 90),
    (30, 6, "Base 100", 95),
    (31, 6, "Base 1000", 105),
    (32, 6, "Any other base", 120),
    (33, 7, "Perfect Cubes", 60),
    (34, 7, "Imperfect Cubes", 80),
    (35, 8, "Perfect Squares", 50),
    (36, 8, "Imperfect Squares", 70),
    (37, 9, "Percentage Calculations", 90),
    (38, 9, "Percentage Change", 100),
    (39, 9, "Multiplying Factor Concept", 110),
    (40, 9, "Successive Percentage Change", 130),
    (41, 10, "Combination of Ratios", 100),
    (42, 10, "Various Patterns", 115),
    (43, 11, "Various Patterns", 95),
    (44, 12, "Addition of Fractions", 80),
    (45, 12, "Subtraction of Fractions", 80),
    (46, 12, "HCF and LCM of Fractions", 100),
    (47, 12, "Comparison of Fractions", 70),
    (48, 13, "Properties of Indices", 85),
    (49, 14, "Properties of Surds", 95),
    (50, 15, "VBODMAS Rule", 90),
    (51, 16, "Various Approximation Patterns", 80),
    (52, 17, "Equation Formation from Word Problems", 130),
    (53, 17, "Equation Solving Techniques", 100),
    (54, 17, "System of Solutions and Plotting the Graph", 150),
    (55, 18, "Factorisation of Simple Quadratics", 95),
    (56, 18, "Factorisation of Harder Quadratics", 120),
    (57, 18, "Factorisation of Cubics", 150),
    (58, 18, "Highest Common Factor", 100),
    (59, 19, "Percentage Applications", 140),
    (60, 19, "Ratio, Proportion and Average Applications", 150),
    (61, 19, "Approximation, Estimation and Option Elimination", 120),
    (62, 19, "Data Simplification and Table Handling", 160),
    (63, 19, "Multi-Skill Application & Decision Intelligence", 180),
    (64, 20, "Unitary Method and its Applications", 105),
]

# micro_skill_id -> prerequisite micro_skill ids
PREREQUISITES: Dict[int, List[int]] = {}


def seed_catalog(conn) -> None:
    """Insert catalog rows that are not in the database yet. Existing rows are left untouched."""
    cursor = conn.cursor()
    cursor.executemany(
        "INSERT OR IGNORE INTO modules (id, name, description) VALUES (?, ?, ?)",
        MODULES,
    )
    positions: Dict[int, int] = {}
    rows = []
    for skill_id, module_id, name, seconds in MICRO_SKILLS:
        position = positions.get(module_id, 0)
        positions[module_id] = position + 1
        rows.append((skill_id, module_id, name, seconds, position))
    cursor.executemany(
        """
        INSERT OR IGNORE INTO micro_skills (id, module_id, name, estimated_time_seconds, position)
        VALUES (?, ?, ?, ?, ?)
        """,
        rows,
    )
    cursor.executemany(
        "INSERT OR IGNORE INTO micro_skill_prerequisites (micro_skill_id, prerequisite_id) VALUES (?, ?)",
        [(skill_id, prereq) for skill_id, prereqs in PREREQUISITES.items() for prereq in prereqs],
    )


def get_module_name(conn, module_id: Optional[int]) -> str:
    if module_id is None:
        return "Mixed Practice"
    row = conn.execute("SELECT name FROM modules WHERE id = ?", (module_id,)).fetchone()
    return row["name"] if row else f"Module {module_id}"


def get_micro_skill_name(conn, micro_skill_id: int) -> str:
    row = conn.execute("SELECT name FROM micro_skills WHERE id = ?", (micro_skill_id,)).fetchone()
    return row["name"] if row else f"Skill {micro_skill_id}"


def module_exists(conn, module_id: int) -> bool:
    return conn.execute("SELECT 1 FROM modules WHERE id = ?", (module_id,)).fetchone() is not None


def get_module_skills(conn, module_id: int) -> List[Dict]:
    """Micro-skills of a module in teaching order, with their prerequisite ids."""
    cursor = conn.cursor()
    cursor.execute(
        """
        SELECT id, module_id, name, description, estimated_time_seconds
        FROM micro_skills
        WHERE module_id = ?
        ORDER BY position, id
        """,
        (module_id,),
    )
    skills = [dict(row) for row in cursor.fetchall()]
    for skill in skills:
        cursor.execute(
            "SELECT prerequisite_id FROM micro_skill_prerequisites WHERE micro_skill_id = ? ORDER BY prerequisite_id",
            (skill["id"],),
        )
        skill["prerequisite_ids"] = [row[0] for row in cursor.fetchall()]
    return skills
