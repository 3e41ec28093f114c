# fairway/main.py
from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import ResponseValidationError
from fastapi.exception_handlers import http_exception_handler
from sqlalchemy import text
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request

from fairway.database import Base, engine, get_db, DB_SOURCE, DB_INFO
from fairway import catalog_models  # noqa: F401  (registers tables on Base)
from fairway.routers import prices, promotions, pricing

# -----------------------------------------
# Create app instance
# -----------------------------------------
app = FastAPI(title="Fairway Pricing")

# -----------------------------------------
# Global Error Handling (Keep JSON Responses)
# -----------------------------------------
@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
    print(f"[DB] SQLAlchemy error: {str(exc)[:240]}")
    return JSONResponse(status_code=503, content={"detail": "Database connection unavailable"})

@app.exception_handler(ResponseValidationError)
async def response_validation_error_handler(request: Request, exc: ResponseValidationError):
    print(f"[API] Response validation error: {str(exc)[:240]}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        return await http_exception_handler(request, exc)

    print(f"[API] Unhandled {type(exc).__name__}: {str(exc)[:240]}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})

# -----------------------------------------
# CORS Settings
# -----------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        db.execute(text("select 1"))
        db_status = "ok"
    except SQLAlchemyError as e:
        print(f"[HEALTH] Database error: {str(e)[:200]}")
        db_status = "error"
    return {
        "ok": db_status == "ok",
        "db": db_status,
        "db_source": DB_SOURCE,
        "db_driver": (DB_INFO or {}).get("driver"),
    }

# -----------------------------------------
# Database initialization
# -----------------------------------------
try:
    Base.metadata.create_all(bind=engine)
    print("[DB] Database connected successfully")
except Exception as e:
    print(f"[DB] Warning: Could not create tables: {str(e)[:100]}")
    print("[DB] Pricing will quote base prices until the database is reachable")

# -----------------------------------------
# Routers
# -----------------------------------------
app.include_router(prices.router)
app.include_router(promotions.router)
app.include_router(pricing.router)
