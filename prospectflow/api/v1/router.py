from fastapi import APIRouter
from prospectflow.api.v1.endpoints import auth, leads, imports, analysis, interest, decisions, pipeline, tasks

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(leads.router, prefix="/leads", tags=["leads"])
api_router.include_router(imports.router, prefix="/import", tags=["import"])
api_router.include_router(analysis.router, prefix="/analysis", tags=["analysis"])
api_router.include_router(interest.router, prefix="/interest", tags=["interest"])
api_router.include_router(decisions.router, prefix="/decisions", tags=["decisions"])
api_router.include_router(pipeline.router, prefix="/pipeline", tags=["pipeline"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
