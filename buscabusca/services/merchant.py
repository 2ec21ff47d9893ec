"""Merchant registration service: validation and owner-scoped CRUD.

Every action is written to the audit log under the ``REGISTROS_*`` events.
Storage errors are logged, rolled back and re-raised.
"""

from typing import Any

from sqlalchemy.orm import Session

from buscabusca.models.merchant import MERCHANT_FIELDS, REQUIRED_FIELDS, Merchant
from buscabusca.services.audit import AuditLog, get_audit_log


class MerchantService:
    """Handles merchant registrations belonging to a single owner."""

    def __init__(self, audit: AuditLog | None = None) -> None:
        self.audit = audit or get_audit_log()

    def missing_required_field(self, data: dict[str, Any], partial: bool = False) -> str | None:
        """Return the first required field that is absent or blank, or None if all are present.

        With ``partial`` only the fields present in ``data`` are checked.
        """
        for name in REQUIRED_FIELDS:
            if partial and name not in data:
                continue
            value = data.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                return name
        return None

    def check_required(
        self, data: dict[str, Any], user_id: int, partial: bool = False, ip: str | None = None
    ) -> str | None:
        """Like missing_required_field, but a missing field is audited."""
        missing = self.missing_required_field(data, partial=partial)
        if missing:
            event = "REGISTROS_ATUALIZAR_VALIDATION" if partial else "REGISTROS_CRIAR_VALIDATION"
            self.audit.warning(event, _context(ip, user_id=user_id, missing_field=missing))
        return missing

    def list_merchants(self, db: Session, user_id: int, ip: str | None = None) -> list[Merchant]:
        """Get all merchants for a user, oldest first."""
        try:
            merchants = db.query(Merchant).filter(Merchant.user_id == user_id).order_by(Merchant.id).all()
        except Exception as e:
            self._fail(db, "REGISTROS_LISTAR_ERROR", e, _context(ip, user_id=user_id))
            raise
        self.audit.info("REGISTROS_LISTAR", _context(ip, user_id=user_id, total=len(merchants)))
        return merchants

    def get_merchant(self, db: Session, merchant_id: int, user_id: int) -> Merchant | None:
        """Get a single merchant by ID, scoped to user."""
        return db.query(Merchant).filter(Merchant.id == merchant_id, Merchant.user_id == user_id).first()

    def create_merchant(self, db: Session, user_id: int, data: dict[str, Any], ip: str | None = None) -> Merchant:
        merchant = Merchant(user_id=user_id)
        self._apply(merchant, data)
        try:
            db.add(merchant)
            db.commit()
            db.refresh(merchant)
        except Exception as e:
            self._fail(db, "REGISTROS_CRIAR_ERROR", e, _context(ip, user_id=user_id))
            raise
        self.audit.info("REGISTROS_CRIADO", _context(ip, user_id=user_id, merchant_id=merchant.id))
        return merchant

    def update_merchant(
        self, db: Session, merchant_id: int, user_id: int, data: dict[str, Any], ip: str | None = None
    ) -> Merchant | None:
        """Overwrite only the fields present in ``data``. Returns None if the user owns no such record."""
        context = _context(ip, user_id=user_id, merchant_id=merchant_id)
        merchant = self.get_merchant(db, merchant_id, user_id)
        if merchant is None:
            self.audit.warning("REGISTROS_ATUALIZAR_NOT_FOUND", context)
            return None

        self._apply(merchant, data)
        try:
            db.commit()
            db.refresh(merchant)
        except Exception as e:
            self._fail(db, "REGISTROS_ATUALIZAR_ERROR", e, context)
            raise
        self.audit.info("REGISTROS_ATUALIZADO", context)
        return merchant

    def delete_merchant(self, db: Session, merchant_id: int, user_id: int, ip: str | None = None) -> bool:
        context = _context(ip, user_id=user_id, merchant_id=merchant_id)
        merchant = self.get_merchant(db, merchant_id, user_id)
        if merchant is None:
            self.audit.warning("REGISTROS_DELETAR_NOT_FOUND", context)
            return False

        try:
            db.delete(merchant)
            db.commit()
        except Exception as e:
            self._fail(db, "REGISTROS_DELETAR_ERROR", e, context)
            raise
        self.audit.info("REGISTROS_DELETADO", context)
        return True

    def _fail(self, db: Session, event: str, error: Exception, context: dict[str, Any]) -> None:
        db.rollback()
        self.audit.error(event, {**context, "error": str(error)}, exc_info=True)

    @staticmethod
    def _apply(merchant: Merchant, data: dict[str, Any]) -> None:
        columns = Merchant.__table__.c
        for name in MERCHANT_FIELDS:
            if name not in data:
                continue
            # null on a NOT NULL column keeps the current value (or the column default)
            if data[name] is None and not columns[name].nullable:
                continue
            setattr(merchant, name, data[name])


def _context(ip: str | None, **fields: Any) -> dict[str, Any]:
    if ip is not None:
        fields["ip"] = ip
    return fields


_merchant_service: MerchantService | None = None


def get_merchant_service() -> MerchantService:
    """Get singleton merchant service instance."""
    global _merchant_service
    if _merchant_service is None:
        _merchant_service = MerchantService()
    return _merchant_service
