from fastapi import APIRouter, Depends

from portal.dependencies import get_identity, get_identity_provider, get_registry, get_token
from portal.pipeline import SessionRegistry
from portal.services.identity import SupabaseIdentityProvider

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/signout")
async def sign_out(
    token: str = Depends(get_token),
    identity: str = Depends(get_identity),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
    registry: SessionRegistry = Depends(get_registry),
):
    provider.sign_out(token)
    registry.drop(identity)
    return {"status": "SIGNED_OUT"}
