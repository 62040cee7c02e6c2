import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bank import QuestionBank
from routers.admin import router as admin_router

# Routers
from routers.attempts import router as attempts_router
from routers.health import router as health_router
from routers.marking import router as marking_router
from routers.questions import router as questions_router
from settings import LOG_LEVEL, QUESTIONS_DIR

logger = logging.getLogger("physquiz-grading")
logging.basicConfig(level=LOG_LEVEL)

app = FastAPI(title="PhysQuiz – Question & Grading API")

# Templates are read once; POST /admin/reload re-reads them
app.state.bank = QuestionBank(QUESTIONS_DIR)
logger.info("Question bank ready: %d templates", len(app.state.bank.load()))

# Allow calls from the Next.js dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(questions_router)  # /courses, /questions/..., /quiz
app.include_router(marking_router)  # /evaluate, /validate
app.include_router(attempts_router)  # /attempts/..., /progress/...
app.include_router(admin_router)  # /admin/...
app.include_router(health_router)  # /health/...
