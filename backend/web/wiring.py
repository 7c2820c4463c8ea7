"""
Application service wiring (Supabase-backed or in-memory).

Why:
    Routes need a session manager, a registry repository scoped to the caller's
    access token, an image store, the live feed and the sheets bridge. The app
    factory receives all of them in one `AppServices` container so tests can
    inject in-memory variants and no request handler reaches for a module
    global.

Behavior:
    - `build_services_from_env()` wires Supabase when SUPABASE_URL and
      SUPABASE_ANON_KEY are set; otherwise it logs a warning and builds the
      in-memory dev stack with one seeded MasterAdmin.
    - Supabase repositories run under the caller's access token so row-level
      security applies; only the public landing aggregates and auth admin calls
      use the service-role client.

Security:
    The service-role key never leaves the server process.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Callable, Optional

from identity_access.auth_client import AuthGateway, InMemoryAuthGateway, SupabaseAuthGateway
from identity_access.domain import AccountStatus, Role
from identity_access.profiles import InMemoryProfileStore, SupabaseProfileStore
from identity_access.resolver import IdentityResolver
from identity_access.sessions import SessionManager
from identity_access.stores import SessionStore
from registry.live_feed import LiveFeed, RealtimeBridge
from registry.repo import InMemoryRegistryRepo, RegistryRepo
from registry.repo_supabase import SupabaseRegistryRepo
from registry.services import AccountService, MemberService, OrganisationService, VolunteerService
from registry.sheets_sync import SheetsSync
from storage.adapters import ImageStorageProtocol, InMemoryStorageAdapter, SupabaseStorageAdapter
from storage.bootstrap import ensure_buckets_from_env
from storage.config import get_max_image_bytes, get_member_images_bucket

from .config import get_session_ttl_seconds, realtime_enabled, supabase_configured

logger = logging.getLogger("ssk.web")

DEV_ADMIN_EMAIL = "admin@ssk.local"
DEV_ADMIN_PASSWORD = "admin123"


@dataclass
class AppServices:
    sessions: SessionManager
    gateway: AuthGateway
    repo_factory: Callable[[Optional[str]], RegistryRepo]
    public_repo: RegistryRepo
    storage: ImageStorageProtocol
    feed: LiveFeed
    sheets: SheetsSync
    bucket: str
    max_image_bytes: int
    realtime: Optional[RealtimeBridge] = None
    dev_mode: bool = False

    def repo(self, access_token: Optional[str]) -> RegistryRepo:
        return self.repo_factory(access_token)

    def organisations(self, access_token: Optional[str]) -> OrganisationService:
        return OrganisationService(self.repo(access_token), self.gateway, self.sheets)

    def volunteers(self, access_token: Optional[str]) -> VolunteerService:
        return VolunteerService(self.repo(access_token), self.gateway, self.sheets)

    def members(self, access_token: Optional[str]) -> MemberService:
        return MemberService(
            self.repo(access_token),
            self.storage,
            bucket=self.bucket,
            max_image_bytes=self.max_image_bytes,
            sheets=self.sheets,
        )

    def accounts(self, access_token: Optional[str]) -> AccountService:
        return AccountService(self.repo(access_token), self.gateway)


def build_dev_services(
    *,
    admin_email: Optional[str] = DEV_ADMIN_EMAIL,
    admin_password: str = DEV_ADMIN_PASSWORD,
    sheets: Optional[SheetsSync] = None,
) -> AppServices:
    """In-memory stack for local development and tests.

    The registry repo and the profile store share one dict of profile rows, so
    writes made through the registry are visible to identity resolution.
    """
    repo = InMemoryRegistryRepo()
    gateway = InMemoryAuthGateway()
    profiles = InMemoryProfileStore(repo.profiles, organisations=repo.organisation_name)
    resolver = IdentityResolver(lambda _token: profiles)
    sessions = SessionManager(
        store=SessionStore(),
        gateway=gateway,
        resolver=resolver,
        ttl_seconds=get_session_ttl_seconds(),
    )
    if admin_email:
        admin_id = gateway.add_user(admin_email, admin_password, {"role": Role.MASTER_ADMIN.value, "name": "Master Admin"})
        repo.upsert_profile(
            {
                "id": admin_id,
                "name": "Master Admin",
                "email": admin_email,
                "role": Role.MASTER_ADMIN.value,
                "status": AccountStatus.ACTIVE.value,
            }
        )
    return AppServices(
        sessions=sessions,
        gateway=gateway,
        repo_factory=lambda _token: repo,
        public_repo=repo,
        storage=InMemoryStorageAdapter(),
        feed=LiveFeed(),
        sheets=sheets or SheetsSync(),
        bucket=get_member_images_bucket(),
        max_image_bytes=get_max_image_bytes(),
        dev_mode=True,
    )


def build_supabase_services() -> AppServices:
    from supabase import create_client  # type: ignore

    url = (os.getenv("SUPABASE_URL") or "").strip()
    anon_key = (os.getenv("SUPABASE_ANON_KEY") or "").strip()
    service_key = (os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "").strip() or anon_key
    service_client = create_client(url, service_key)

    def anon_client() -> Any:
        return create_client(url, anon_key)

    def user_client(access_token: Optional[str]) -> Any:
        # RLS is the only authorization layer: a missing token gets the anon role.
        client = create_client(url, anon_key)
        if not access_token:
            return client
        client.postgrest.auth(access_token)
        return client

    gateway = SupabaseAuthGateway(anon_client, service_client)
    resolver = IdentityResolver(lambda token: SupabaseProfileStore(user_client(token)))
    sessions = SessionManager(
        store=SessionStore(),
        gateway=gateway,
        resolver=resolver,
        ttl_seconds=get_session_ttl_seconds(),
        jwt_secret=(os.getenv("SUPABASE_JWT_SECRET") or "").strip() or None,
    )
    # Dev convenience: create the member image bucket when AUTO_CREATE_STORAGE_BUCKETS=true.
    ensure_buckets_from_env()
    feed = LiveFeed()
    realtime = RealtimeBridge(feed, url, anon_key) if realtime_enabled() else None
    logger.info("Registry wired: Supabase (realtime=%s)", "on" if realtime else "off")
    return AppServices(
        sessions=sessions,
        gateway=gateway,
        repo_factory=lambda token: SupabaseRegistryRepo(user_client(token)),
        public_repo=SupabaseRegistryRepo(service_client),
        storage=SupabaseStorageAdapter(service_client),
        feed=feed,
        sheets=SheetsSync.from_env(),
        bucket=get_member_images_bucket(),
        max_image_bytes=get_max_image_bytes(),
        realtime=realtime,
    )


def build_services_from_env() -> AppServices:
    if supabase_configured():
        return build_supabase_services()
    logger.warning(
        "Supabase is not configured; running on in-memory backends (dev mode). Sign in as %s.",
        DEV_ADMIN_EMAIL,
    )
    return build_dev_services(sheets=SheetsSync.from_env())


__all__ = ["AppServices", "build_dev_services", "build_services_from_env", "build_supabase_services"]
