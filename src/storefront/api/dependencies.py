"""Caller identity for the API.

Authentication happens upstream; the gateway in front of this service
forwards who the caller is in ``X-Customer-Email`` (shoppers) or
``X-Staff-User`` (store staff). Here that identity is only resolved to the
project it may act on.
"""

from fastapi import Header

from storefront.directory import get_directory
from storefront.exceptions import NotAuthenticated, NotAuthorized


async def customer_email(x_customer_email: str = Header(default="")) -> str:
    email = x_customer_email.strip()
    if not email:
        raise NotAuthenticated()
    return email


async def staff_user(x_staff_user: str = Header(default="")) -> str:
    username = x_staff_user.strip()
    if not username:
        raise NotAuthenticated()
    return username


async def customer_project(x_customer_email: str = Header(default="")) -> tuple[str, str]:
    """(email, project_id) of the calling shopper."""
    email = await customer_email(x_customer_email)
    project_id = get_directory().project_for_customer(email)
    if not project_id:
        raise NotAuthorized()
    return email, project_id


async def staff_project(x_staff_user: str = Header(default="")) -> str:
    """Project administered by the calling staff member."""
    project_id = get_directory().project_for_staff(await staff_user(x_staff_user))
    if not project_id:
        raise NotAuthorized()
    return project_id
