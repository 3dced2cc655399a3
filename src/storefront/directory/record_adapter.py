"""Directory adapter over the ``directory`` provider records."""

from protean.utils.globals import current_domain

from storefront.directory.port import CustomerProfile, ProjectDirectory
from storefront.directory.records import CustomerRecord, StaffRecord


def _first(record_cls, **filters):
    return current_domain.repository_for(record_cls)._dao.query.filter(**filters).all().first


def _project(record):
    if record is None or not record.project_id:
        return None
    return str(record.project_id)


class RecordDirectory(ProjectDirectory):
    def project_for_customer(self, email: str) -> str | None:
        return _project(_first(CustomerRecord, email=email))

    def project_for_staff(self, username: str) -> str | None:
        return _project(_first(StaffRecord, username=username))

    def customer_id_for_email(self, email: str) -> str | None:
        record = _first(CustomerRecord, email=email)
        return str(record.id) if record else None

    def customer_id_for_document(self, dni: str) -> str | None:
        record = _first(CustomerRecord, dni=str(dni).strip())
        return str(record.id) if record else None

    def customer_profile(self, customer_id: str) -> CustomerProfile | None:
        record = _first(CustomerRecord, id=str(customer_id))
        if record is None:
            return None
        return CustomerProfile(
            customer_id=str(record.id),
            email=record.email,
            dni=record.dni,
            project_id=_project(record),
            first_names=record.first_names,
            last_names=record.last_names,
            cellphone=record.cellphone,
        )
