from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from portal.config import get_settings
from portal.pipeline import SessionRegistry
from portal.services.documents import DocumentResolver
from portal.services.identity import IdentityError, SupabaseIdentityProvider
from portal.services.sources import JsonSource
from portal.services.supabase_client import get_supabase

security = HTTPBearer(auto_error=False)

_registry: SessionRegistry | None = None


def get_identity_provider() -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider(get_supabase())


def get_registry() -> SessionRegistry:
    global _registry
    if _registry is None:
        settings = get_settings()
        _registry = SessionRegistry(
            scope_source=JsonSource(settings.scope_url, timeout=settings.http_timeout),
            dataset_source=JsonSource(settings.dataset_url, timeout=settings.http_timeout),
            resolver=DocumentResolver(
                get_supabase(),
                bucket=settings.documents_bucket,
                expires_in=settings.signed_url_ttl,
            ),
            ttl=settings.session_ttl,
            idle_timeout=settings.session_idle_timeout,
        )
    return _registry


def get_token(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    return credentials.credentials


def get_identity(
    token: str = Depends(get_token),
    provider: SupabaseIdentityProvider = Depends(get_identity_provider),
) -> str:
    try:
        return provider.identify(token)
    except IdentityError as e:
        raise HTTPException(status_code=401, detail=str(e))
