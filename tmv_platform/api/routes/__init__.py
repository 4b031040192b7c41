"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from tmv_platform.api.routes.auth_routes import router as auth_router
from tmv_platform.api.routes.job_routes import router as job_router
from tmv_platform.api.routes.jobseeker_routes import router as jobseeker_router
from tmv_platform.api.routes.employer_routes import router as employer_router
from tmv_platform.api.routes.management_routes import router as management_router
from tmv_platform.api.routes.admin_routes import router as admin_router
from tmv_platform.api.routes.company_routes import router as company_router
from tmv_platform.api.routes.project_routes import router as project_router
from tmv_platform.api.routes.cart_routes import router as cart_router
from tmv_platform.api.routes.payment_routes import router as payment_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(job_router)
api_router.include_router(jobseeker_router)
api_router.include_router(employer_router)
api_router.include_router(management_router)
api_router.include_router(admin_router)
api_router.include_router(company_router)
api_router.include_router(project_router)
api_router.include_router(cart_router)
api_router.include_router(payment_router)
