from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from spa_admin.core.config import settings
from spa_admin.core.errors import BookingNotFound, InvalidBooking, InvalidTransition, PersistenceFailure
from spa_admin.api import bookings, catalog, maintenance
from spa_admin.core.logger import setup_logging, logger
from contextlib import asynccontextmanager
from datetime import datetime

setup_logging()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("🚀 Starting Spa Admin Backend")
    yield
    # Shutdown
    logger.info("🛑 Shutting down backend")

app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

@app.exception_handler(InvalidTransition)
async def invalid_transition_handler(request: Request, exc: InvalidTransition):
    logger.warning(f"⛔ Rejected transition: {exc}")
    return JSONResponse(status_code=409, content={"message": "Invalid status change", "detail": str(exc)})

@app.exception_handler(InvalidBooking)
async def invalid_booking_handler(request: Request, exc: InvalidBooking):
    logger.warning(f"⛔ Rejected booking command: {exc}")
    return JSONResponse(status_code=422, content={"message": "Invalid booking", "detail": str(exc)})

@app.exception_handler(BookingNotFound)
async def booking_not_found_handler(request: Request, exc: BookingNotFound):
    return JSONResponse(status_code=404, content={"message": "Not found", "detail": str(exc)})

@app.exception_handler(PersistenceFailure)
async def persistence_failure_handler(request: Request, exc: PersistenceFailure):
    logger.error(f"❌ Store rejected request: {exc}")
    return JSONResponse(status_code=502, content={"message": "Database error", "detail": "The booking store rejected the change. Please try again."})

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"🔥 UNHANDLED ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "detail": "An unexpected error occurred. Please contact support."}
    )

# Include routers
app.include_router(bookings.router, tags=["Bookings"])
app.include_router(maintenance.router, tags=["Maintenance"])
app.include_router(catalog.router, tags=["Catalog"])

@app.get("/health")
async def health_check():
    return {"status": "ok", "environment": settings.ENVIRONMENT, "timestamp": datetime.now().isoformat()}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("spa_admin.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
