"""
Seed rows for the in-memory Snowflake mock.

Table and column names match the real schema so the repository's queries
work unchanged in mock mode. One logbook entry stores its training focus
as plain text rather than JSON, the way rows written by older app versions
look.
"""

import copy

SAMPLE_TABLES: dict[str, list[dict]] = {
    "programs": [
        {
            "program_id": "prog-dink-foundations",
            "name": "Dink Foundations",
            "description": "Build a patient, consistent soft game at the kitchen line.",
            "category": "Dinks",
            "tier": "Beginner",
            "thumbnail_url": None,
            "rating": "4.7",
            "added_count": 128,
            "created_at": "2024-02-01T09:00:00",
            "is_published": True,
            "is_featured": True,
        },
        {
            "program_id": "prog-third-shot",
            "name": "Third Shot Drop Lab",
            "description": "Turn the third shot into a reliable transition weapon.",
            "category": "Transition",
            "tier": "Intermediate",
            "thumbnail_url": None,
            "rating": "4.5",
            "added_count": 64,
            "created_at": "2024-03-12T09:00:00",
            "is_published": True,
            "is_featured": False,
        },
        {
            "program_id": "prog-draft",
            "name": "Erne Clinic (draft)",
            "description": "Unpublished.",
            "category": "Volleys",
            "tier": "Advanced",
            "thumbnail_url": None,
            "rating": None,
            "added_count": 0,
            "created_at": "2024-04-01T09:00:00",
            "is_published": False,
            "is_featured": False,
        },
    ],
    "routines": [
        {
            "routine_id": "rt-dink-warmup",
            "program_id": "prog-dink-foundations",
            "name": "Kitchen Warm-up",
            "description": "Cross-court and straight-ahead dinks.",
            "order_index": 1,
            "time_estimate_minutes": 15,
        },
        {
            "routine_id": "rt-dink-pressure",
            "program_id": "prog-dink-foundations",
            "name": "Dink Under Pressure",
            "description": "Speed-up recognition and resets.",
            "order_index": 2,
            "time_estimate_minutes": 20,
        },
        {
            "routine_id": "rt-drop-basics",
            "program_id": "prog-third-shot",
            "name": "Drop Basics",
            "description": "Drops from the baseline to the kitchen.",
            "order_index": 1,
            "time_estimate_minutes": 25,
        },
    ],
    "routine_exercises": [
        {"routine_id": "rt-dink-warmup", "exercise_id": "ex-1-1", "order_index": 1,
         "custom_target_value": None, "is_optional": False},
        {"routine_id": "rt-dink-warmup", "exercise_id": "ex-1-2", "order_index": 2,
         "custom_target_value": 15, "is_optional": False},
        {"routine_id": "rt-dink-pressure", "exercise_id": "ex-1-3", "order_index": 1,
         "custom_target_value": None, "is_optional": True},
        {"routine_id": "rt-drop-basics", "exercise_id": "ex-5-1", "order_index": 1,
         "custom_target_value": None, "is_optional": False},
    ],
    "exercises": [
        {"exercise_id": "ex-1-1", "code": "1.1", "title": "Cross-court Dinks",
         "description": "Rally cross-court without popping the ball up.",
         "difficulty": 1, "target_value": 20, "target_unit": "in a row"},
        {"exercise_id": "ex-1-2", "code": "1.2", "title": "Straight Dinks",
         "description": "Keep it low and unattackable.",
         "difficulty": 1, "target_value": 10, "target_unit": "in a row"},
        {"exercise_id": "ex-1-3", "code": "1.3", "title": "Reset the Speed-up",
         "description": "Block hard balls back into the kitchen.",
         "difficulty": 3, "target_value": 6, "target_unit": "out of 10"},
        {"exercise_id": "ex-5-1", "code": "5.1", "title": "Baseline Drops",
         "description": "Land the drop in the kitchen from the baseline.",
         "difficulty": 2, "target_value": 7, "target_unit": "out of 10"},
    ],
    "coaches": [
        {
            "coach_id": "coach-maria",
            "name": "Maria Lopez",
            "bio": "Former tennis pro, now teaching the soft game.",
            "dupr_rating": 5.2,
            "hourly_rate": 8500,
            "rating_avg": 4.9,
            "rating_count": 57,
            "specialties": '["Dinks", "Strategy"]',
            "location": "Austin, TX",
            "is_verified": True,
            "avatar_url": None,
            "is_active": True,
        },
        {
            "coach_id": "coach-dev",
            "name": "Dev Patel",
            "bio": "Drills-first coaching for 3.0-4.0 players.",
            "dupr_rating": 4.8,
            "hourly_rate": 6000,
            "rating_avg": 4.7,
            "rating_count": 31,
            "specialties": '["Third Shot", "Footwork"]',
            "location": "Denver, CO",
            "is_verified": True,
            "avatar_url": None,
            "is_active": True,
        },
        {
            "coach_id": "coach-sam",
            "name": "Sam Okafor",
            "bio": "Beginner clinics and group sessions.",
            "dupr_rating": 4.1,
            "hourly_rate": None,
            "rating_avg": None,
            "rating_count": 0,
            "specialties": '["Beginners"]',
            "location": "Tampa, FL",
            "is_verified": False,
            "avatar_url": None,
            "is_active": True,
        },
    ],
    "logbook_entries": [
        {
            "entry_id": "log-3",
            "user_id": "demo-user",
            "entry_date": "2024-05-18",
            "hours": 2.0,
            "session_type": "Match Play",
            "training_focus": '["Dinks", "Resets"]',
            "difficulty": '["Hard"]',
            "feeling": 4,
            "notes": "Held up well at the kitchen.",
            "location": "Riverside Courts",
            "created_at": "2024-05-18T19:30:00",
        },
        {
            "entry_id": "log-2",
            "user_id": "demo-user",
            "entry_date": "2024-05-15",
            "hours": 1.5,
            "session_type": "Drill Session",
            "training_focus": "Third shot drops",
            "difficulty": '"Medium"',
            "feeling": 3,
            "notes": None,
            "location": "Community Center",
            "created_at": "2024-05-15T18:00:00",
        },
        {
            "entry_id": "log-1",
            "user_id": "demo-user",
            "entry_date": "2024-05-12",
            "hours": 1.0,
            "session_type": "Lesson",
            "training_focus": '["Serves"]',
            "difficulty": '["Easy"]',
            "feeling": 5,
            "notes": "Lesson with Maria.",
            "location": "Riverside Courts",
            "created_at": "2024-05-12T10:00:00",
        },
    ],
}


def sample_tables() -> dict[str, list[dict]]:
    """A fresh copy, so one mock connection can't leak edits into another."""
    return copy.deepcopy(SAMPLE_TABLES)
