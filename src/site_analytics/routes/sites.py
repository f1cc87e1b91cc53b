"""
Site registry endpoints, scoped to the authenticated account.
"""

from fastapi import APIRouter, Header, HTTPException, Response

from ..core.client import AnalyticsClient
from ..core.models import SiteCreate
from ..errors import NotFoundError
from ..identity import IdentityClient
from .common import require_site, require_user


def create_sites_router(client: AnalyticsClient, identity: IdentityClient) -> APIRouter:
    router = APIRouter(prefix="/sites", tags=["sites"])

    @router.get("")
    async def list_sites(authorization: str | None = Header(None)):
        """List the caller's sites, newest first."""
        user = await require_user(identity, authorization)
        sites = await client.list_sites(user.id)
        return {"sites": [s.model_dump(mode="json") for s in sites]}

    @router.post("", status_code=201)
    async def create_site(body: SiteCreate, authorization: str | None = Header(None)):
        """Register a site. The access key is generated server-side."""
        user = await require_user(identity, authorization)

        domain = (body.domain or "").strip()
        if not domain:
            raise HTTPException(status_code=400, detail="Domain is required")

        site = await client.create_site(user.id, domain, (body.goal_url or "").strip() or None)
        return {"site": site.model_dump(mode="json")}

    @router.get("/{site_id}")
    async def get_site(site_id: str, authorization: str | None = Header(None)):
        user = await require_user(identity, authorization)
        site = await require_site(client, site_id, user)
        return {"site": site.model_dump(mode="json")}

    @router.delete("/{site_id}", status_code=204)
    async def delete_site(site_id: str, authorization: str | None = Header(None)):
        """Delete a site together with its pageviews."""
        user = await require_user(identity, authorization)
        if not await client.delete_site(site_id, user.id):
            raise NotFoundError("Site not found")
        return Response(status_code=204)

    return router
