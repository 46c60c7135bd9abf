from __future__ import annotations

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from gotocard import (
    RecommendationService,
    SqlStore,
    create_db_and_tables,
    engine,
    load_config,
)
from gotocard.errors import NotFoundError, RecommendationError, TransientIOError

config = load_config()
logging.basicConfig(level=config.log_level)

app = FastAPI(title="GoToCard Recommendation API", version="0.1.0")

_service = RecommendationService(SqlStore(engine), config)

ERROR_STATUS = {
    NotFoundError: 404,
    TransientIOError: 503,
}


def get_service() -> RecommendationService:
    return _service


@app.on_event("startup")
def _startup() -> None:
    create_db_and_tables()


@app.exception_handler(RecommendationError)
async def _recommendation_error(request: Request, exc: RecommendationError) -> JSONResponse:
    status_code = next(
        (code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 422
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


class CategoryOut(BaseModel):
    id: int
    name: str
    description: str
    icon: str


class CardOut(BaseModel):
    id: int
    name: str
    bank: str
    card_type: str
    annual_fee: float
    min_income: float
    welcome_bonus: str | None = None
    image_url: str | None = None


class RecommendationOut(BaseModel):
    rank: int
    card: CardOut
    category: CategoryOut
    score: int
    estimated_reward: float
    reward_type: str | None = None
    reason: str


class RecommendationsResponse(BaseModel):
    recommendations: list[RecommendationOut]
    message: str | None = None
    status: str | None = None
    used_defaults: bool | None = None


def _to_out(recommendations) -> list[RecommendationOut]:
    return [RecommendationOut.model_validate(r.to_dict()) for r in recommendations]


@app.get("/api/v1/health")
def http_health():
    return {"status": "ok"}


@app.post(
    "/api/v1/recommendations/users/{user_id}/generate",
    response_model=RecommendationsResponse,
)
def http_generate_recommendations(
    user_id: int, service: RecommendationService = Depends(get_service)
):
    outcome = service.generate_outcome(user_id)
    return RecommendationsResponse(
        message="Recommendations generated successfully",
        status=outcome.status,
        used_defaults=outcome.used_defaults,
        recommendations=_to_out(outcome.recommendations),
    )


@app.get(
    "/api/v1/recommendations/users/{user_id}",
    response_model=RecommendationsResponse,
)
def http_get_recommendations(
    user_id: int, service: RecommendationService = Depends(get_service)
):
    return RecommendationsResponse(recommendations=_to_out(service.get(user_id)))


@app.get(
    "/api/v1/recommendations/users/{user_id}/categories/{category_id}",
    response_model=RecommendationsResponse,
)
def http_get_recommendations_by_category(
    user_id: int,
    category_id: int,
    service: RecommendationService = Depends(get_service),
):
    return RecommendationsResponse(
        recommendations=_to_out(service.get_by_category(user_id, category_id))
    )
