"""Customer/project directory port (abstract interface).

The directory lives in the relational store and answers one question for the
checkout: which project does this customer or staff member belong to. Only
lookups are part of the contract; maintaining the records is somebody else's
job.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class CustomerProfile:
    customer_id: str
    email: str | None
    dni: str | None
    project_id: str | None
    first_names: str | None = None
    last_names: str | None = None
    cellphone: str | None = None

    @property
    def full_name(self) -> str:
        return " ".join(part for part in (self.first_names, self.last_names) if part)


class ProjectDirectory(ABC):
    """Abstract directory interface."""

    @abstractmethod
    def project_for_customer(self, email: str) -> str | None:
        """Project assigned to the customer with ``email``, or None."""
        ...

    @abstractmethod
    def project_for_staff(self, username: str) -> str | None:
        """Project the staff member administers, or None."""
        ...

    @abstractmethod
    def customer_id_for_email(self, email: str) -> str | None: ...

    @abstractmethod
    def customer_id_for_document(self, dni: str) -> str | None:
        """Resolve a customer by national identity number."""
        ...

    @abstractmethod
    def customer_profile(self, customer_id: str) -> CustomerProfile | None: ...
