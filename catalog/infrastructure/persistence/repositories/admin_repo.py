"""Admin repository: accounts, roles and the last-super-admin guard.

At least one active super admin must remain. Demoting, deactivating or
deleting the last one is refused; the check always reads fresh rows.
password_hash is never part of a read-model and is redacted in audit
entries by the recorder.
"""

from typing import Any

from sqlalchemy import func, select

from catalog.application.dtos.admin import AdminResult
from catalog.core.constants import CACHE_NS_ADMIN
from catalog.domain.exceptions import DomainRuleException, ValidationException
from catalog.domain.value_objects import lifecycle_of
from catalog.infrastructure.cache.read_through import CacheTtlPolicy, ReadThroughCache
from catalog.infrastructure.persistence.criteria import QuerySpec, apply_criteria
from catalog.infrastructure.persistence.models.admin import Admin
from catalog.infrastructure.persistence.repositories.cached_repo import CachedRepository
from catalog.infrastructure.persistence.transaction import TransactionCoordinator
from catalog.shared.enums import AdminRole, AuditAction
from catalog.shared.utils.datetime import ensure_utc, utc_now


class AdminRepository(CachedRepository[Admin, AdminResult]):
    namespace = CACHE_NS_ADMIN
    entity_type = "admin"
    default_order = ("username", "id")

    def __init__(
        self,
        coordinator: TransactionCoordinator,
        cache: ReadThroughCache,
        ttls: CacheTtlPolicy | None = None,
    ) -> None:
        super().__init__(coordinator, cache, Admin, AdminResult, ttls)

    def _to_result(self, obj: Admin) -> AdminResult:
        return AdminResult(
            id=obj.id,
            username=obj.username,
            email=obj.email,
            role=AdminRole(obj.role),
            active=obj.active,
            last_login_at=ensure_utc(obj.last_login_at),
            created_at=ensure_utc(obj.created_at),
            lifecycle=lifecycle_of(ensure_utc(obj.deleted_at)),
        )

    # Cached reads

    async def _find_one_by(self, action: str, filters: dict[str, Any]) -> AdminResult | None:
        spec = QuerySpec.of(filters)

        async def load() -> AdminResult | None:
            obj = await self._fetch_one(apply_criteria(select(Admin), Admin, spec))
            return self._to_result(obj) if obj is not None else None

        return await self._remember(
            self.query_key(action, spec.to_params()), self.ttls.entity, load, AdminResult | None
        )

    async def find_by_username(self, username: str) -> AdminResult | None:
        return await self._find_one_by("username", {"username": username})

    async def find_by_email(self, email: str) -> AdminResult | None:
        return await self._find_one_by("email", {"email": email})

    async def find_super_admins(self) -> list[AdminResult]:
        spec = QuerySpec.of({"role": AdminRole.SUPER_ADMIN.value}, order_by=self.default_order)
        return await self._cached_list("super_admins", spec)

    async def find_active_admins(self) -> list[AdminResult]:
        return await self._cached_list(
            "active", QuerySpec.of({"active": True}, order_by=self.default_order)
        )

    async def count_super_admins(self) -> int:
        """Active super admins."""
        return await self._remember(
            self.query_key("super_admin_count"),
            self.ttls.query,
            self._count_active_super_admins,
            int,
        )

    # Fresh reads used by guards

    async def _count_active_super_admins(self) -> int:
        return int(
            await self._scalar(
                select(func.count())
                .select_from(Admin)
                .where(
                    Admin.role == AdminRole.SUPER_ADMIN.value,
                    Admin.active.is_(True),
                    Admin.deleted_at.is_(None),
                )
            )
        )

    async def is_last_super_admin(self, admin_id: int) -> bool:
        obj = await self._load_live(admin_id)
        if obj is None or not _is_active_super_admin(obj):
            return False
        return await self._count_active_super_admins() <= 1

    async def _load_live(self, admin_id: int) -> Admin | None:
        return await self._fetch_one(
            select(Admin).where(Admin.id == admin_id, Admin.deleted_at.is_(None))
        )

    # Writes

    async def promote_to_super_admin(self, admin_id: int) -> AdminResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            if obj.role == AdminRole.SUPER_ADMIN.value:
                return self._to_result(obj)
            return await self._apply_changes(
                obj, {"role": AdminRole.SUPER_ADMIN.value}, AuditAction.ROLE_CHANGED
            )

    async def demote_to_admin(self, admin_id: int) -> AdminResult:
        """Refused with ValidationException when it would leave no active super admin."""
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            if obj.role != AdminRole.SUPER_ADMIN.value:
                return self._to_result(obj)
            if await self.is_last_super_admin(admin_id):
                raise ValidationException("Cannot demote the last active super admin", field="role")
            return await self._apply_changes(
                obj, {"role": AdminRole.ADMIN.value}, AuditAction.ROLE_CHANGED
            )

    async def activate_account(self, admin_id: int) -> AdminResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            return await self._apply_changes(obj, {"active": True}, AuditAction.ACTIVATED)

    async def deactivate_account(self, admin_id: int) -> AdminResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            if await self.is_last_super_admin(admin_id):
                raise DomainRuleException(
                    f"Admin {admin_id} cannot be deactivated",
                    reasons=["cannot deactivate: last active super admin"],
                )
            return await self._apply_changes(obj, {"active": False}, AuditAction.DEACTIVATED)

    async def record_login(self, admin_id: int) -> AdminResult:
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            return await self._apply_changes(obj, {"last_login_at": utc_now()}, AuditAction.UPDATED)

    async def update_password(self, admin_id: int, password_hash: str) -> AdminResult:
        if not password_hash:
            raise ValidationException("password_hash is required", field="password_hash")
        async with self.coordinator.transaction():
            obj = await self.get_entity(admin_id)
            return await self._apply_changes(
                obj, {"password_hash": password_hash}, AuditAction.UPDATED
            )

    async def _check_can_delete(self, obj: Admin) -> None:
        if await self.is_last_super_admin(obj.id):
            raise DomainRuleException(
                f"Admin {obj.id} cannot be deleted",
                reasons=["cannot delete: last active super admin"],
            )

    async def _validate(self, data: dict[str, Any], existing: Admin | None) -> None:
        for field in ("username", "email", "password_hash"):
            if existing is None or field in data:
                value = data.get(field)
                if not isinstance(value, str) or not value.strip():
                    raise ValidationException(f"{field} is required", field=field)
        if "role" in data:
            role = data["role"]
            if role not in AdminRole.values():
                raise ValidationException(f"Unknown admin role {role!r}", field="role")
            data["role"] = AdminRole(role).value
            if (
                existing is not None
                and data["role"] != AdminRole.SUPER_ADMIN.value
                and await self.is_last_super_admin(existing.id)
            ):
                raise ValidationException("Cannot demote the last active super admin", field="role")
        if existing is not None and data.get("active") is False:
            if await self.is_last_super_admin(existing.id):
                raise DomainRuleException(
                    f"Admin {existing.id} cannot be deactivated",
                    reasons=["cannot deactivate: last active super admin"],
                )


def _is_active_super_admin(obj: Admin) -> bool:
    return obj.role == AdminRole.SUPER_ADMIN.value and obj.active and obj.deleted_at is None
