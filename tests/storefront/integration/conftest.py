import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from storefront.api.errors import register_error_handlers
from storefront.api.routes import cart_router, payment_router, product_router, report_router, sale_router


@pytest.fixture()
def client():
    app = FastAPI()
    for router in (cart_router, sale_router, product_router, report_router, payment_router):
        app.include_router(router)
    register_error_handlers(app)
    return TestClient(app)


@pytest.fixture()
def shopper_headers():
    return {"X-Customer-Email": "ana@example.com"}


@pytest.fixture()
def staff_headers():
    return {"X-Staff-User": "admin10"}
