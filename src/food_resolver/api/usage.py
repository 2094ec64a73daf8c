"""Usage ledger endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from food_resolver.api.models import UsageResponse

if TYPE_CHECKING:
    from food_resolver.containers import AppContainer

router = APIRouter(prefix="/usage", tags=["usage"])


def _get_admin_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str | None = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not admin_token or not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/{subject_key}", dependencies=[Depends(require_admin)])
async def get_usage(subject_key: str, request: Request) -> UsageResponse:
    """Return how many fallback estimates a subject has left."""
    container: AppContainer = request.app.state.container
    return UsageResponse(
        subject_key=subject_key,
        remaining=container.ledger.remaining(subject_key),
        quota=container.settings.free_fallback_quota,
    )


@router.delete("/{subject_key}", dependencies=[Depends(require_admin)])
async def reset_usage(subject_key: str, request: Request) -> dict[str, str]:
    """Clear a subject's usage, e.g. on sign-out or guest data removal."""
    container: AppContainer = request.app.state.container
    container.ledger.reset(subject_key)
    return {"status": "ok"}
