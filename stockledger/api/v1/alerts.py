from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from stockledger.core.context import RequestContext, get_request_context
from stockledger.schemas.response import SuccessResponse
from stockledger.services.alerts import AlertSeverity
from stockledger.services.low_stock_service import check_low_stock

router = APIRouter()


@router.get("/low-stock", response_model=SuccessResponse)
async def low_stock_alerts_endpoint(
    outlet_id: Optional[UUID] = None,
    severity: Optional[AlertSeverity] = None,
    ctx: RequestContext = Depends(get_request_context),
):
    """Current low-stock alerts, most depleted first. Optionally narrowed to one severity."""
    alerts = await check_low_stock(ctx, outlet_id)
    if severity:
        alerts = [a for a in alerts if a.severity == severity]
    return SuccessResponse(data=[a.model_dump() for a in alerts], meta={"total": len(alerts)})
