# Training Desk backend entrypoint: session booking and credit consumption API.

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trainingdesk.app.api import machines
from trainingdesk.app.api import planning
from trainingdesk.app.api import training_sessions
from trainingdesk.app.core.dev_seed import seed_studio
from trainingdesk.app.core.errors import TrainingDeskError
from trainingdesk.app.core.logging import configure_logging
from trainingdesk.app.core.settings import get_settings
from trainingdesk.app.db.base import Base
from trainingdesk.app.db.session import SessionLocal, engine

settings = get_settings()
logger = configure_logging()

app = FastAPI(title=settings.app_name, version=settings.api_version)

origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(training_sessions.router)
app.include_router(machines.router)
app.include_router(planning.router)


@app.exception_handler(TrainingDeskError)
async def training_desk_error_handler(request: Request, exc: TrainingDeskError):
    logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/")
def read_root():
    return {"app": settings.app_name, "status": "ok"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.on_event("startup")
def prepare_database():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_studio(db)
    finally:
        db.close()
