"""
Automation Webhook API

A single API-key-guarded endpoint through which automation tools
(n8n and the like) can record transactions.

DESIGN DECISION: The body is parsed and validated by hand instead of
letting FastAPI reject it with a 422, so callers get the documented
contract: 400 with per-field details for bad input, 401 for a bad key,
500 when the server itself is not configured.
"""

import hmac
import json
from datetime import date
from typing import Literal, Optional

import structlog
import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictStr,
    ValidationError,
    field_validator,
)

from finflow.config import WebhookSettings, get_settings
from finflow.models.transaction import TransactionCreate
from finflow.orchestrator import AppComponents, create_app_components


WEBHOOK_PATH = "/api/transactions/n8n"
API_KEY_HEADER = "X-N8N-API-KEY"
INGESTION_CHANNEL = "n8n"

logger = structlog.get_logger(__name__)


class WebhookTransactionIn(BaseModel):
    """Body accepted by the webhook. Stricter than TransactionCreate on types."""

    model_config = ConfigDict(str_strip_whitespace=True)

    type: Literal["income", "expense"]
    description: StrictStr = Field(..., min_length=1, max_length=255)
    amount: float = Field(..., gt=0, strict=True)
    date: StrictStr = Field(..., pattern=r"^\d{4}-\d{2}-\d{2}$")
    category: Optional[StrictStr] = None
    source: Optional[StrictStr] = None

    @field_validator("date")
    @classmethod
    def must_be_calendar_date(cls, v: str) -> str:
        date.fromisoformat(v)
        return v

    def to_create(self) -> TransactionCreate:
        return TransactionCreate(
            type=self.type,
            description=self.description,
            amount=str(self.amount),
            date=self.date,
            category=self.category,
            source=self.source,
        )


def field_errors(error: ValidationError) -> dict[str, list[str]]:
    """Group validation messages by top-level field name."""
    details: dict[str, list[str]] = {}
    for item in error.errors():
        field = str(item["loc"][0]) if item["loc"] else "body"
        details.setdefault(field, []).append(item["msg"])
    return details


def _error(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse({"error": message, **extra}, status_code=status_code)


def get_components(request: Request) -> AppComponents:
    return request.app.state.components


def get_webhook_settings(request: Request) -> WebhookSettings:
    return request.app.state.webhook_settings


router = APIRouter()


@router.get(WEBHOOK_PATH)
async def describe_endpoint():
    return {
        "message": (
            "n8n transaction endpoint. POST a JSON transaction with the "
            f"{API_KEY_HEADER} header to record it."
        )
    }


@router.post(WEBHOOK_PATH)
async def ingest_transaction(
    request: Request,
    api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER),
    components: AppComponents = Depends(get_components),
    webhook_settings: WebhookSettings = Depends(get_webhook_settings),
):
    expected_key = webhook_settings.n8n_api_secret_key
    if not expected_key:
        logger.error("webhook_secret_missing")
        return _error(500, "n8n integration is not configured on the server.")

    if not api_key or not hmac.compare_digest(api_key.encode(), expected_key.encode()):
        logger.warning("webhook_unauthorized")
        return _error(401, "Invalid or missing API key.")

    try:
        body = json.loads(await request.body())
    except ValueError:
        return _error(400, "Invalid request body. Expected JSON.")

    if not isinstance(body, dict):
        return _error(400, "Invalid transaction data.", details={"body": ["Expected a JSON object"]})

    try:
        payload = WebhookTransactionIn.model_validate(body)
        data = payload.to_create()
    except ValidationError as e:
        return _error(400, "Invalid transaction data.", details=field_errors(e))

    # record() does blocking file and HTTP I/O
    transaction, alert = await run_in_threadpool(
        components.transaction_flow.record,
        data,
        via=INGESTION_CHANNEL,
    )
    logger.info("webhook_transaction_recorded", transaction_id=transaction.id)

    content = {
        "message": "Transaction recorded.",
        "transaction": transaction.model_dump(mode="json"),
    }
    if alert is not None:
        content["goal_alert"] = {"sent": alert[0], "details": alert[1]}
    return JSONResponse(content, status_code=201)


def create_app(
    components: Optional[AppComponents] = None,
    webhook_settings: Optional[WebhookSettings] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        components: Wired repositories and flows (created from settings if None)
        webhook_settings: Webhook secret settings (loaded from env if None)
    """
    app = FastAPI(
        title="FinFlow Automation API",
        description="Webhook ingestion of transactions into local FinFlow data",
        version="1.0.0",
    )
    app.state.components = components or create_app_components()
    app.state.webhook_settings = webhook_settings or get_settings().webhook
    app.include_router(router)
    return app


def run() -> None:
    """Serve the API with uvicorn (FINFLOW_API_HOST / FINFLOW_API_PORT)."""
    api_settings = get_settings().api
    uvicorn.run(
        "finflow.api.webhook:create_app",
        factory=True,
        host=api_settings.host,
        port=api_settings.port,
    )
