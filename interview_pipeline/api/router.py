from fastapi import APIRouter

from interview_pipeline.api.routes import candidates
from interview_pipeline.api.routes import interviews
from interview_pipeline.api.routes import stages

api_router = APIRouter()
api_router.include_router(candidates.router)
api_router.include_router(stages.router)
api_router.include_router(interviews.router)
