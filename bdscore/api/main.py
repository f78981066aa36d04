"""FastAPI application setup."""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bdscore.errors import BDScoreError, ConfigurationError, InputError
from .routes import router

__version__ = "0.1.0"

app = FastAPI(
    title="BD Scoring & Valuation Engine",
    description="Score biotech companies across six pillars and value them against comparable transactions",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BDScoreError)
async def bdscore_error_handler(request: Request, exc: BDScoreError):
    if isinstance(exc, InputError):
        status = 400
    elif isinstance(exc, ConfigurationError):
        status = 422
    else:
        status = 500
    return JSONResponse(status_code=status, content={"detail": str(exc), "code": exc.code})


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


app.include_router(router, prefix="/api")
