"""Pydantic models for the resolution API."""

from pydantic import BaseModel

from food_resolver.domain.food import QueryKind, ResolutionResult, ResolvedFood


class ResolveRequest(BaseModel):
    """Inbound resolution request."""

    query_kind: QueryKind
    query: str
    quantity: float = 100.0
    unit: str = "g"
    source_confidence: float | None = None
    subject_key: str | None = None


class NutritionModel(BaseModel):
    """Nutrient values for a resolved food."""

    calories: float | None = None
    protein_g: float | None = None
    carbs_g: float | None = None
    fat_g: float | None = None
    fiber_g: float | None = None
    sodium_mg: float | None = None
    sugar_g: float | None = None
    saturated_fat_g: float | None = None


class ResolvedFoodModel(BaseModel):
    """A ranked nutrition record."""

    name: str
    brand: str | None = None
    barcode: str | None = None
    quantity: float
    unit: str
    nutrition: NutritionModel
    confidence: float
    source: str

    @classmethod
    def from_domain(cls, food: ResolvedFood) -> "ResolvedFoodModel":
        return cls(
            name=food.name,
            brand=food.brand,
            barcode=food.barcode,
            quantity=food.quantity,
            unit=food.unit,
            nutrition=NutritionModel(**food.nutrition.as_dict()),
            confidence=food.confidence,
            source=food.source.value,
        )


class ResolveResponse(BaseModel):
    """Outbound resolution result."""

    items: list[ResolvedFoodModel]
    estimated: bool
    quota_exceeded: bool
    degraded_providers: list[str]

    @classmethod
    def from_domain(cls, result: ResolutionResult) -> "ResolveResponse":
        return cls(
            items=[ResolvedFoodModel.from_domain(item) for item in result.items],
            estimated=result.estimated,
            quota_exceeded=result.quota_exceeded,
            degraded_providers=[p.value for p in result.degraded_providers],
        )


class UsageResponse(BaseModel):
    """Remaining fallback estimates for a subject."""

    subject_key: str
    remaining: int
    quota: int
