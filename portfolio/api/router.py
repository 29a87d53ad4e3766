from fastapi import APIRouter

from portfolio.api.routes import about, certifications, cron, experience, health, projects, uploads

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(about.router, prefix="/about", tags=["content"])
api_router.include_router(experience.router, prefix="/experience", tags=["content"])
api_router.include_router(projects.router, prefix="/projects", tags=["content"])
api_router.include_router(certifications.router, prefix="/certifications", tags=["certifications"])
api_router.include_router(cron.router, prefix="/cron", tags=["cron"])
api_router.include_router(uploads.router, tags=["uploads"])
