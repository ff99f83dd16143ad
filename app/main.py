import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routers.employees import router as employees_router
from app.core.config import settings
from app.services.scope_mode import PermissionOracleUnavailable

logger = logging.getLogger(__name__)

app = FastAPI(title="HRM Employees API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o for o in settings.CORS_ALLOW_ORIGINS.split(",") if o] or ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PermissionOracleUnavailable)
def permission_oracle_unavailable_handler(request: Request, exc: PermissionOracleUnavailable):
    logger.error("permission_oracle_unavailable path=%s error=%s", request.url.path, exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": {
                "error": "Permission service unavailable",
                "detail": "Access could not be evaluated. Please retry shortly.",
                "code": "PERMISSION_ORACLE_UNAVAILABLE",
            }
        },
        headers={"Retry-After": "5"},
    )


app.include_router(employees_router)


@app.get("/health")
def health():
    return {"status": "up"}
