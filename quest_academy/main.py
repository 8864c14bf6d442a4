import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from quest_academy import config
from quest_academy.achievements.achievement_router import router as achievement_router
from quest_academy.announcements.announcement_router import router as announcement_router
from quest_academy.attempts.attempt_router import router as attempt_router
from quest_academy.auth.auth_router import router as auth_router
from quest_academy.classes.class_router import router as class_router
from quest_academy.common.errors import register_error_handlers
from quest_academy.curriculum.curriculum_router import subject_router, unit_router
from quest_academy.daily_tasks.daily_task_router import router as daily_task_router
from quest_academy.database import get_db_instance
from quest_academy.database_setup import create_indexes
from quest_academy.game_maps.map_router import router as game_map_router
from quest_academy.inventory.inventory_router import avatar_router, router as inventory_router
from quest_academy.items.item_router import router as item_router
from quest_academy.leaderboard.leaderboard_router import router as leaderboard_router
from quest_academy.paper_doll.paper_doll_router import router as paper_doll_router
from quest_academy.questions.question_router import router as question_router
from quest_academy.reports.report_router import router as report_router
from quest_academy.shop.shop_router import router as shop_router
from quest_academy.stages.stage_router import router as stage_router
from quest_academy.students.student_router import router as student_router
from quest_academy.system.health_router import router as health_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Quest Academy API")


@app.on_event("startup")
async def startup_event():
    await create_indexes(get_db_instance())
    logger.info("Quest Academy API started")


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)


# ==================== ROUTER REGISTRATION ====================
app.include_router(auth_router, prefix=config.API_PREFIX)
app.include_router(subject_router, prefix=config.API_PREFIX)
app.include_router(unit_router, prefix=config.API_PREFIX)
app.include_router(question_router, prefix=config.API_PREFIX)
app.include_router(attempt_router, prefix=config.API_PREFIX)
app.include_router(daily_task_router, prefix=config.API_PREFIX)
app.include_router(achievement_router, prefix=config.API_PREFIX)
app.include_router(stage_router, prefix=config.API_PREFIX)
app.include_router(class_router, prefix=config.API_PREFIX)
app.include_router(student_router, prefix=config.API_PREFIX)
app.include_router(report_router, prefix=config.API_PREFIX)
app.include_router(shop_router, prefix=config.API_PREFIX)
app.include_router(item_router, prefix=config.API_PREFIX)
app.include_router(inventory_router, prefix=config.API_PREFIX)
app.include_router(avatar_router, prefix=config.API_PREFIX)
app.include_router(announcement_router, prefix=config.API_PREFIX)
app.include_router(leaderboard_router, prefix=config.API_PREFIX)
app.include_router(game_map_router, prefix=config.API_PREFIX)
app.include_router(paper_doll_router, prefix=config.API_PREFIX)
app.include_router(health_router, prefix=config.API_PREFIX)
