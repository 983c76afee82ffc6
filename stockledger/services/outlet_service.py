from typing import Any, List
from uuid import UUID

from stockledger.core.context import RequestContext
from stockledger.core.errors import ResourceNotFoundError
from stockledger.models.outlet import Outlet


async def create_outlet(ctx: RequestContext, name: str, is_active: bool = True) -> Outlet:
    return await Outlet.create(tenant_id=ctx.tenant_id, name=name, is_active=is_active)


async def list_outlets(ctx: RequestContext) -> List[Outlet]:
    return await Outlet.filter(tenant_id=ctx.tenant_id).order_by("name")


async def get_active_outlet(tenant_id: str, outlet_id: UUID, conn: Any = None) -> Outlet:
    """Resolves an outlet of the tenant; inactive or foreign outlets count as missing."""
    outlet = await Outlet.get_or_none(id=outlet_id, tenant_id=tenant_id).using_db(conn)
    if not outlet or not outlet.is_active:
        raise ResourceNotFoundError("Outlet", outlet_id)
    return outlet
