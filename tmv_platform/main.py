"""
TMV Business Platform - Main Application

FastAPI backend with:
- MySQL (SQLAlchemy, raw SQL) for all structured data
- JWT authentication with role and permission checks
- Local document storage with CV text extraction
- Yoco hosted checkout for payments

Run: uvicorn tmv_platform.main:app --reload
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tmv_platform import __version__
from tmv_platform.api.routes import api_router
from tmv_platform.core.config import get_settings
from tmv_platform.core.errors import setup_exception_handlers
from tmv_platform.db.database import init_db, check_database_connection
from tmv_platform.utils.logger import get_logger

settings = get_settings()
logger = get_logger(__name__)

# Create FastAPI app
app = FastAPI(
    title="TMV Business Platform",
    description="""
    Recruitment and business-services backend.

    ## Features
    - **Authentication**: JWT auth for job seekers, employers, clients, management and admins
    - **Jobs**: Public listings, applications, approval workflow
    - **Employers**: Job postings, applicant tracking, HR team and permissions
    - **Management**: Job approvals, drafts, tasks, team messages, reports
    - **Business services**: Company registrations, architecture projects, cart and orders
    - **Payments**: Yoco checkout and webhooks
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Create missing tables on startup."""
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")


@app.get("/", tags=["System"])
async def root():
    return {"status": "running", "app": "TMV Business Platform", "version": __version__}


@app.get("/health", tags=["System"])
async def health_check():
    """Database connectivity check."""
    connected = check_database_connection()
    return {
        "status": "healthy" if connected else "degraded",
        "database": "connected" if connected else "disconnected",
    }
