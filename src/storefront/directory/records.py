"""Directory records, kept in the relational ``directory`` provider."""

from protean.fields import Identifier, String

from storefront.domain import storefront


@storefront.aggregate(provider="directory")
class CustomerRecord:
    email = String(required=True, max_length=255, unique=True)
    dni = String(max_length=20)
    project_id = Identifier()
    first_names = String(max_length=150)
    last_names = String(max_length=150)
    cellphone = String(max_length=30)


@storefront.aggregate(provider="directory")
class StaffRecord:
    username = String(required=True, max_length=150, unique=True)
    project_id = Identifier()
