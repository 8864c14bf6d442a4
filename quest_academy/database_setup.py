import logging

from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)


async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create database indexes for optimal query performance
    Called during application startup
    """

    # Users
    await db.users.create_index("email", unique=True)
    await db.users.create_index("role")
    await db.users.create_index([("role", 1), ("student_profile.exp", -1)])
    await db.users.create_index([("role", 1), ("student_profile.gold", -1)])

    # Curriculum
    await db.subjects.create_index("code", unique=True)
    await db.units.create_index([("subject_id", 1), ("grade", 1), ("order", 1)])
    await db.questions.create_index([("unit_id", 1), ("is_active", 1)])
    await db.questions.create_index("created_by")

    # Attempts
    await db.question_attempts.create_index([("student_id", 1), ("created_at", -1)])
    await db.question_attempts.create_index("question_id")
    await db.question_attempts.create_index("created_at")

    # Stages
    await db.stages.create_index([("is_active", 1), ("order", 1)])
    await db.player_stage_progress.create_index([("player_id", 1), ("stage_id", 1)], unique=True)

    # Classes
    await db.classes.create_index("invite_code", unique=True)
    await db.classes.create_index([("teacher_id", 1), ("is_active", 1)])
    await db.classes.create_index("students")

    # Daily tasks
    await db.daily_tasks.create_index("code", unique=True)
    await db.player_daily_tasks.create_index([("player_id", 1), ("task_id", 1), ("date", 1)], unique=True)
    await db.player_daily_tasks.create_index([("player_id", 1), ("date", 1)])

    # Achievements
    await db.achievements.create_index("code", unique=True)
    await db.achievements.create_index([("category", 1), ("is_active", 1)])
    await db.player_achievements.create_index([("player_id", 1), ("achievement_id", 1)], unique=True)
    await db.player_achievements.create_index([("player_id", 1), ("is_new", 1)])

    # Items and inventory
    await db.items.create_index([("is_active", 1), ("order", 1)])
    await db.player_items.create_index([("player_id", 1), ("item_id", 1)], unique=True)
    await db.active_effects.create_index([("player_id", 1), ("effect_type", 1), ("expires_at", 1)])

    # Announcements
    await db.announcements.create_index([("type", 1), ("is_active", 1)])

    # Game maps
    await db.game_maps.create_index([("is_active", 1), ("order", 1)])
    await db.player_map_states.create_index([("player_id", 1), ("map_id", 1)], unique=True)

    # Paper doll
    await db.avatar_parts.create_index([("category", 1), ("is_active", 1)])
    await db.student_avatars.create_index("user_id", unique=True)

    logger.info("Database indexes created")
