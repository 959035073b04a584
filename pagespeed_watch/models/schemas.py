"""Audit value objects and pydantic schemas for API responses."""

import enum
from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ─── DOMAIN ──────────────────────────────────────────────────────────────────

class Category(str, enum.Enum):
    """PSI audit categories, in the order they are fetched and stored."""

    PERFORMANCE = "performance"
    BEST_PRACTICES = "best-practices"
    ACCESSIBILITY = "accessibility"
    SEO = "seo"

    @property
    def lighthouse_key(self) -> str:
        return self.value


CATEGORIES = tuple(Category)


class TriggerKind(str, enum.Enum):
    SCHEDULED = "scheduled"
    WEBHOOK = "webhook"


@dataclass(frozen=True)
class AuditRequest:
    target_url: str
    trigger_kind: TriggerKind
    deployment_id: str = ""
    access_key: str = ""

    def __post_init__(self):
        has_deployment = bool(self.deployment_id)
        if has_deployment != (self.trigger_kind is TriggerKind.WEBHOOK):
            raise ValueError(
                f"deployment_id must be set iff trigger is webhook "
                f"(trigger={self.trigger_kind.value}, deployment_id={self.deployment_id!r})"
            )

    @classmethod
    def scheduled(cls, target_url: str) -> "AuditRequest":
        return cls(target_url=target_url, trigger_kind=TriggerKind.SCHEDULED)

    @classmethod
    def webhook(cls, target_url: str, deployment_id: str, access_key: str) -> "AuditRequest":
        return cls(
            target_url=target_url,
            trigger_kind=TriggerKind.WEBHOOK,
            deployment_id=deployment_id,
            access_key=access_key,
        )

    @property
    def is_live(self) -> bool:
        return self.trigger_kind is TriggerKind.SCHEDULED


@dataclass(frozen=True)
class CategoryScore:
    category: Category
    value: Optional[float]  # None when PSI omitted the category score


@dataclass(frozen=True)
class AuditResult:
    url: str
    deployment_id: str
    is_live: bool
    scores: tuple[CategoryScore, ...]

    def __post_init__(self):
        if tuple(s.category for s in self.scores) != CATEGORIES:
            raise ValueError("scores must hold exactly one entry per category, in order")

    @classmethod
    def from_request(cls, request: AuditRequest, scores) -> "AuditResult":
        return cls(
            url=request.target_url,
            deployment_id=request.deployment_id,
            is_live=request.is_live,
            scores=tuple(scores),
        )

    def score(self, category: Category) -> Optional[float]:
        return self.scores[CATEGORIES.index(category)].value

    def to_response(self) -> "AuditResponse":
        return AuditResponse(
            url=self.url,
            deploymentId=self.deployment_id,
            live=self.is_live,
            PERFORMANCE=self.score(Category.PERFORMANCE),
            BEST_PRACTICES=self.score(Category.BEST_PRACTICES),
            ACCESSIBILITY=self.score(Category.ACCESSIBILITY),
            SEO=self.score(Category.SEO),
        )


# ─── API ─────────────────────────────────────────────────────────────────────

class AuditResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    deployment_id: str = Field(alias="deploymentId")
    live: bool
    performance: Optional[float] = Field(alias="PERFORMANCE")
    best_practices: Optional[float] = Field(alias="BEST_PRACTICES")
    accessibility: Optional[float] = Field(alias="ACCESSIBILITY")
    seo: Optional[float] = Field(alias="SEO")


class ErrorResponse(BaseModel):
    error: str


class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    db_type: str
