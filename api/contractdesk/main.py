import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import LOG_LEVEL
from .routers import users, contracts, fields, signing, audit_log
from .db import init_db
from .annotation.errors import EmptyCapture, FieldNotFound, InvalidMutation

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Contract Desk API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.on_event("startup")
def on_startup():
    init_db()

@app.exception_handler(FieldNotFound)
def field_not_found(request: Request, exc: FieldNotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(InvalidMutation)
def invalid_mutation(request: Request, exc: InvalidMutation):
    logger.warning("rejected field change on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(EmptyCapture)
def empty_capture(request: Request, exc: EmptyCapture):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(contracts.router, prefix="/api/contracts", tags=["contracts"])
app.include_router(fields.router, prefix="/api/contracts", tags=["fields"])  # nested
app.include_router(signing.router, prefix="/api/sign", tags=["signing"])
app.include_router(audit_log.router, prefix="/api/audit", tags=["audit"])

@app.get("/")
def root():
    return {"ok": True, "service": "contract-desk"}
