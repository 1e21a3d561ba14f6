"""Credits API - plan catalog and Stripe checkout."""
from fastapi import APIRouter, Depends, Request

from intellichat.auth import get_current_user
from intellichat.db import Store, get_db
from intellichat.db.models import CamelModel, User
from intellichat.services.payments import PaymentGateway
from intellichat.services.plans import PLANS
from intellichat.services.purchases import start_purchase

from .deps import get_payment_gateway


router = APIRouter(prefix="/api/credit", tags=["credits"])


class PurchaseRequest(CamelModel):
    plan_id: str


@router.get("/plan")
async def list_plans():
    """List available credit plans."""
    return {"success": True, "plans": [plan.model_dump(by_alias=True) for plan in PLANS]}


@router.post("/purchase")
async def purchase_plan(
    body: PurchaseRequest,
    request: Request,
    current_user: User = Depends(get_current_user),
    store: Store = Depends(get_db),
    payments: PaymentGateway = Depends(get_payment_gateway),
):
    """Start a Stripe checkout for a plan."""
    origin = request.headers.get("origin") or str(request.base_url).rstrip("/")
    url = await start_purchase(store, payments, current_user, body.plan_id, origin)
    return {"success": True, "url": url}
