from datetime import date
from functools import lru_cache
from typing import Any, Dict, Optional, Union

from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

import settings
from ai_quote import suggest_quote
from config_store import ConfigStore
from errors import ValidationError
from job_service import list_jobs, submit_quote
from job_store import JobStore, create_supabase_client
from local_storage import LocalStorage
from logging_config import get_logger, setup_logging
from pricing_engine import PricingConfig, parse_quote_form

setup_logging(log_level=settings.LOG_LEVEL, enable_file_logging=settings.LOG_TO_FILE)
logger = get_logger(__name__)


# ----------------------------
# App + config
# ----------------------------
app = FastAPI(title="Fabrication Quote API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@lru_cache(maxsize=1)
def _local_storage() -> LocalStorage:
    return LocalStorage()


def get_job_store() -> JobStore:
    return JobStore(client=_supabase(), storage=_local_storage())


@lru_cache(maxsize=1)
def _supabase():
    return create_supabase_client()


def get_config_store() -> ConfigStore:
    return ConfigStore(_local_storage())


# ----------------------------
# Helpers
# ----------------------------
def _require_api_key(x_api_key: Optional[str]) -> None:
    if settings.API_KEY:
        if not x_api_key or x_api_key != settings.API_KEY:
            raise HTTPException(status_code=401, detail="Unauthorized")


def _validation_error(e: ValidationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"message": e.message, "errors": e.errors})


# ----------------------------
# Request models
# ----------------------------
class QuoteRequest(BaseModel):
    part_type: str = ""
    material: str = ""
    # Kept loose so the form validator owns the error messages
    quantity: Union[int, str, None] = None
    complexity: str = "medium"
    deadline: Optional[date] = None


class PricingConfigModel(BaseModel):
    material_prices: Dict[str, float]
    rush_fee_enabled: bool = False
    rush_fee_amount: float = Field(default=50, ge=0)
    margin_percentage: int = Field(default=20, ge=0)

    @classmethod
    def from_config(cls, config: PricingConfig) -> "PricingConfigModel":
        return cls(
            material_prices=dict(config.material_prices),
            rush_fee_enabled=config.rush_fee_enabled,
            rush_fee_amount=config.rush_fee_amount,
            margin_percentage=config.margin_percentage,
        )

    def to_config(self) -> PricingConfig:
        return PricingConfig(
            material_prices=dict(self.material_prices),
            rush_fee_enabled=self.rush_fee_enabled,
            rush_fee_amount=self.rush_fee_amount,
            margin_percentage=self.margin_percentage,
        )


# ----------------------------
# Routes
# ----------------------------
@app.get("/health")
def health():
    return {"ok": True}


@app.post("/quote")
def quote(
    req: QuoteRequest,
    x_api_key: Optional[str] = Header(default=None),
    store: JobStore = Depends(get_job_store),
    configs: ConfigStore = Depends(get_config_store),
) -> Dict[str, Any]:
    """
    Price the job and save it. The quote is returned even when the save
    degraded to local storage (demo_mode) or failed (status == "error").
    """
    _require_api_key(x_api_key)

    try:
        sub = submit_quote(req.model_dump(), configs.load(), store)
    except ValidationError as e:
        raise _validation_error(e)

    save_error = sub.save_result.error
    return {
        "quote": sub.quote,
        "breakdown": sub.breakdown,
        "job": sub.job.to_record(),
        "status": sub.status,
        "message": sub.message,
        "demo_mode": sub.demo_mode,
        "error": save_error.as_dict() if save_error else None,
    }


@app.get("/jobs")
def jobs(
    limit: Optional[int] = None,
    x_api_key: Optional[str] = Header(default=None),
    store: JobStore = Depends(get_job_store),
):
    _require_api_key(x_api_key)
    found, error = list_jobs(store, limit=limit)
    return {"jobs": [j.to_record() for j in found], "error": error}


@app.get("/jobs/local")
def local_jobs(
    x_api_key: Optional[str] = Header(default=None),
    store: JobStore = Depends(get_job_store),
):
    _require_api_key(x_api_key)
    return {"jobs": store.load_local(settings.JOBS_TABLE)}


@app.post("/ai-suggestion")
def ai_suggestion(
    req: QuoteRequest,
    x_api_key: Optional[str] = Header(default=None),
    store: JobStore = Depends(get_job_store),
    configs: ConfigStore = Depends(get_config_store),
):
    _require_api_key(x_api_key)

    try:
        inputs = parse_quote_form(req.model_dump())
    except ValidationError as e:
        raise _validation_error(e)

    return suggest_quote(inputs, configs.load(), store).as_dict()


@app.get("/pricing-config")
def get_pricing_config(
    x_api_key: Optional[str] = Header(default=None),
    configs: ConfigStore = Depends(get_config_store),
):
    _require_api_key(x_api_key)
    config = configs.load()
    return {**PricingConfigModel.from_config(config).model_dump(), "customized": config.is_customized()}


@app.put("/pricing-config")
def put_pricing_config(
    req: PricingConfigModel,
    x_api_key: Optional[str] = Header(default=None),
    configs: ConfigStore = Depends(get_config_store),
):
    _require_api_key(x_api_key)
    configs.save(req.to_config())
    config = configs.load()
    logger.info("Pricing configuration updated (customized=%s)", config.is_customized())
    return {**PricingConfigModel.from_config(config).model_dump(), "customized": config.is_customized()}
