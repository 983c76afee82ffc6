from dataclasses import dataclass
from typing import Optional

from fastapi import Header, HTTPException, status


@dataclass(frozen=True)
class RequestContext:
    """Tenant and user identity supplied by the upstream auth layer (trusted as-is)."""
    tenant_id: str
    user_id: Optional[str] = None


async def get_request_context(
    x_tenant_id: Optional[str] = Header(default=None),
    x_user_id: Optional[str] = Header(default=None),
) -> RequestContext:
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="X-Tenant-ID header is required.")
    return RequestContext(tenant_id=x_tenant_id, user_id=x_user_id)
