import json

import pytest
from protean.integrations.pytest import DomainFixture
from protean.utils.globals import current_domain

from storefront.catalogue.management import AddProjectDetail, CreateProduct
from storefront.directory import reset_directory
from storefront.directory.records import CustomerRecord, StaffRecord
from storefront.payments.gateway import reset_gateway

PROJECT = "10"
OTHER_PROJECT = "20"
CUSTOMER_EMAIL = "ana@example.com"
STAFF_USER = "admin10"


@pytest.fixture(scope="session")
def storefront_bed():
    from storefront.domain import storefront

    bed = DomainFixture(storefront)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(storefront_bed):
    with storefront_bed.domain_context():
        yield
    reset_gateway()
    reset_directory()


def create_product(product_id, name="Arroz Costeño", categories=("cat-abarrotes",)):
    return current_domain.process(
        CreateProduct(product_id=product_id, name=name, category_ids=json.dumps(list(categories))),
        asynchronous=False,
    )


def add_detail(product_id, project_id=PROJECT, stock=5, sale_price=10.0, purchase_price=7.0):
    current_domain.process(
        AddProjectDetail(
            product_id=product_id,
            project_id=project_id,
            purchase_price=purchase_price,
            sale_price=sale_price,
            stock=stock,
        ),
        asynchronous=False,
    )


@pytest.fixture()
def stocked_product():
    """Factory: a product sold by ``project_id`` with ``stock`` on hand."""

    def _make(product_id="P1", stock=5, project_id=PROJECT, name="Arroz Costeño", sale_price=10.0):
        create_product(product_id, name=name)
        add_detail(product_id, project_id=project_id, stock=stock, sale_price=sale_price)
        return product_id

    return _make


@pytest.fixture()
def customer():
    """Factory: a shopper registered in the directory."""

    def _make(email=CUSTOMER_EMAIL, project_id=PROJECT, dni="45678912", first_names="Ana", last_names="Quispe"):
        record = CustomerRecord(
            email=email,
            dni=dni,
            project_id=project_id,
            first_names=first_names,
            last_names=last_names,
            cellphone="999888777",
        )
        current_domain.repository_for(CustomerRecord).add(record)
        return record

    return _make


@pytest.fixture()
def staff():
    """Factory: a staff member administering ``project_id``."""

    def _make(username=STAFF_USER, project_id=PROJECT):
        record = StaffRecord(username=username, project_id=project_id)
        current_domain.repository_for(StaffRecord).add(record)
        return record

    return _make
