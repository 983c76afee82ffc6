import logging

from fastapi import APIRouter, Depends, HTTPException, status

from stockledger.core.context import RequestContext, get_request_context
from stockledger.core.errors import InventoryError
from stockledger.schemas.inventory import OutletRequest, OutletResponse
from stockledger.schemas.response import SuccessResponse
from stockledger.services.outlet_service import create_outlet, list_outlets

router = APIRouter()
log = logging.getLogger("uvicorn")


@router.post("/", status_code=status.HTTP_201_CREATED, response_model=SuccessResponse)
async def create_outlet_endpoint(payload: OutletRequest, ctx: RequestContext = Depends(get_request_context)):
    """Registers a new outlet (kitchen, store, warehouse) for the tenant."""
    try:
        outlet = await create_outlet(ctx, payload.name, payload.is_active)
        log.info(f"Outlet {outlet.id} ({outlet.name}) created for tenant {ctx.tenant_id}.")
        return SuccessResponse(
            message=f"Outlet '{outlet.name}' created successfully.",
            data=OutletResponse.model_validate(outlet).model_dump(),
        )
    except InventoryError:
        raise
    except Exception as e:
        log.error(f"Error creating outlet: {e}")
        raise HTTPException(status_code=500, detail="Server failed to create outlet.")


@router.get("/", response_model=SuccessResponse)
async def list_outlets_endpoint(ctx: RequestContext = Depends(get_request_context)):
    outlets = await list_outlets(ctx)
    data = [OutletResponse.model_validate(o).model_dump() for o in outlets]
    return SuccessResponse(data=data, meta={"total": len(data)})
