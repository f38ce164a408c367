import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gradebook.api import analytics, dashboard, grades, reports
from gradebook.config import settings
from gradebook.database import engine, Base
from gradebook.exceptions import InvalidRecord
from gradebook.middleware.logging import add_logging_middleware, request_id, setup_logging
import gradebook.models  # noqa: F401  registers the tables on Base.metadata

# Initialize FastAPI app
app = FastAPI(
    title="Gradebook API",
    description="Grade entry, class rankings, analytics and report cards for schools",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)
add_logging_middleware(app)

@app.exception_handler(InvalidRecord)
async def invalid_record_handler(request: Request, exc: InvalidRecord):
    logger.warning(
        f"Invalid grade record for student {exc.student_id}: {str(exc)} "
        f"[request_id: {request_id(request)}]"
    )
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc)},
    )

# Custom exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {str(exc)} [request_id: {request_id(request)}]", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred. Please try again later."},
    )

# Create database tables
@app.on_event("startup")
async def startup():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created or verified")

# Include routers
app.include_router(grades.router, prefix="/api", tags=["Grades"])
app.include_router(analytics.router, prefix="/api", tags=["Analytics"])
app.include_router(reports.router, prefix="/api", tags=["Reports"])
app.include_router(dashboard.router, prefix="/api", tags=["Dashboard"])

@app.get("/health", tags=["Root"])
async def health_check():
    return {"status": "ok"}

@app.get("/", tags=["Root"])
async def root():
    return {"message": "Welcome to the Gradebook API. Visit /docs for documentation."}

# Run the server
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("gradebook.main:app", host="0.0.0.0", port=8000, reload=True)
