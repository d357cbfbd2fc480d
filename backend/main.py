"""SEO workspace API – FastAPI app for technical page audits."""

import logging

from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ai_service import build_client, generate_audit_insights
from analyzer import analyze_html, analyze_url
from config import LOG_LEVEL
from database import get_audit, get_audit_by_public_id, init_db, insert_audit, list_audits
from errors import AnalysisFailed, AuditError, BotProtectionDetected, InvalidUrl
from schemas import (
    AuditInsightsResponse,
    CreateAuditRequest,
    InsightItemResponse,
    ManualAuditRequest,
    StoredAudit,
)

logging.basicConfig(level=LOG_LEVEL)
log = logging.getLogger("seo-workspace")

ERROR_STATUS = {
    BotProtectionDetected: 422,
    InvalidUrl: 400,
    AnalysisFailed: 502,
}

app = FastAPI(
    title="SEO Workspace API",
    description="Technical SEO audits with AI insights",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    init_db()
    app.state.ai_client = build_client()


@app.exception_handler(AuditError)
def audit_error_handler(request: Request, exc: AuditError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 500)
    log.warning("audit failed url=%s code=%s: %s", exc.url, exc.code, exc.message)
    return JSONResponse(status_code=status_code, content={"code": exc.code, "message": exc.message})


@app.post("/api/audits", response_model=StoredAudit, status_code=201)
def create_audit(body: CreateAuditRequest, x_user_id: int | None = Header(default=None)) -> StoredAudit:
    """Pipeline: fetch page -> analyze -> store -> return stored audit."""
    result = analyze_url(body.url)
    return insert_audit(result, user_id=x_user_id)


@app.post("/api/audits/html", response_model=StoredAudit, status_code=201)
def create_manual_audit(
    body: ManualAuditRequest, x_user_id: int | None = Header(default=None)
) -> StoredAudit:
    """Audit pasted HTML for sites that block the audit bot."""
    result = analyze_html(body.url, body.html, load_time=body.load_time)
    return insert_audit(result, user_id=x_user_id)


@app.get("/api/audits", response_model=list[StoredAudit])
def get_audits(limit: int = 20, user_id: int | None = None) -> list[StoredAudit]:
    """Return recent audits for the history page."""
    return list_audits(limit=limit, user_id=user_id)


@app.get("/api/audits/{audit_id}", response_model=StoredAudit)
def get_audit_result(audit_id: int) -> StoredAudit:
    audit = get_audit(audit_id)
    if audit is None:
        raise HTTPException(status_code=404, detail="Audit not found")
    return audit


@app.get("/api/share/{public_id}", response_model=StoredAudit)
def get_shared_audit(public_id: str) -> StoredAudit:
    """Return an audit by its public share token."""
    audit = get_audit_by_public_id(public_id)
    if audit is None:
        raise HTTPException(status_code=404, detail="Audit not found")
    return audit


@app.post("/api/audits/{audit_id}/insights", response_model=AuditInsightsResponse)
def get_audit_insights(audit_id: int, request: Request) -> AuditInsightsResponse:
    """Summarize a stored audit and prioritize its fixes with Claude."""
    audit = get_audit(audit_id)
    if audit is None:
        raise HTTPException(status_code=404, detail="Audit not found")

    client = getattr(request.app.state, "ai_client", None)
    insights = generate_audit_insights(audit, client=client)
    return AuditInsightsResponse(
        audit_id=audit_id,
        summary=insights["summary"],
        priorities=[InsightItemResponse(**item) for item in insights["priorities"]],
    )


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}
