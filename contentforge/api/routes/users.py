"""User Routes — local account records, quota and subscription state.

Invariants:
    - Registration binds the local record to the caller's X-User-Id
    - Subscription changes and quota resets by id are admin-only; a user may
      only cancel their own subscription
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from contentforge.api.deps import (
    Caller, authorize, get_caller, get_caller_id, get_quota_ledger, get_user_accounts,
)
from contentforge.schemas.user import (
    CountResponse, QuotaResponse, SubscriptionUpdate, UserRegister, UserResponse,
)
from contentforge.services.quota_ledger import QuotaLedger
from contentforge.services.user_accounts import UserAccounts

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    body: UserRegister,
    user_id: UUID = Depends(get_caller_id),
    accounts: UserAccounts = Depends(get_user_accounts),
):
    user = (await accounts.register(
        body.username, body.email, body.full_name, user_id=user_id,
    )).unwrap()
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: UUID = Depends(get_caller_id),
    accounts: UserAccounts = Depends(get_user_accounts),
):
    user = (await accounts.get(user_id)).unwrap()
    return UserResponse.model_validate(user)


@router.get("/me/quota", response_model=QuotaResponse)
async def get_my_quota(
    user_id: UUID = Depends(get_caller_id),
    ledger: QuotaLedger = Depends(get_quota_ledger),
):
    snapshot = (await ledger.get_quota(user_id)).unwrap()
    return QuotaResponse.model_validate(snapshot)


@router.post("/me/subscription/cancel", response_model=UserResponse)
async def cancel_my_subscription(
    user_id: UUID = Depends(get_caller_id),
    accounts: UserAccounts = Depends(get_user_accounts),
):
    user = (await accounts.cancel_subscription(user_id)).unwrap()
    return UserResponse.model_validate(user)


# ─── Admin ───────────────────────────────────────────────────────

@router.put("/{user_id}/subscription", response_model=UserResponse)
async def update_subscription(
    user_id: UUID,
    body: SubscriptionUpdate,
    caller: Caller = Depends(get_caller),
    accounts: UserAccounts = Depends(get_user_accounts),
):
    authorize(caller, UserAccounts.update_subscription)
    user = (await accounts.update_subscription(
        user_id, body.tier, body.expires_at, body.exports_limit,
    )).unwrap()
    return UserResponse.model_validate(user)


@router.post("/{user_id}/quota/reset", response_model=QuotaResponse)
async def reset_user_quota(
    user_id: UUID,
    caller: Caller = Depends(get_caller),
    ledger: QuotaLedger = Depends(get_quota_ledger),
):
    authorize(caller, QuotaLedger.reset_monthly)
    (await ledger.reset_monthly(user_id)).unwrap()
    snapshot = (await ledger.get_quota(user_id)).unwrap()
    return QuotaResponse.model_validate(snapshot)


@router.post("/quota/reset-all", response_model=CountResponse)
async def reset_all_quotas(
    caller: Caller = Depends(get_caller),
    ledger: QuotaLedger = Depends(get_quota_ledger),
):
    authorize(caller, QuotaLedger.reset_all_monthly)
    count = (await ledger.reset_all_monthly()).unwrap()
    return CountResponse(count=count)


@router.post("/subscriptions/downgrade-expired", response_model=CountResponse)
async def downgrade_expired(
    caller: Caller = Depends(get_caller),
    accounts: UserAccounts = Depends(get_user_accounts),
):
    authorize(caller, UserAccounts.downgrade_expired)
    count = (await accounts.downgrade_expired()).unwrap()
    return CountResponse(count=count)
