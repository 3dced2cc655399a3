"""Per-project sale numbering.

One ``SaleSequence`` per project holds the last number handed out. Numbers are
taken with ``next_number()`` inside the unit of work that records the sale,
while the project's settlement lock is held, so two sales of a project never
share a number.
"""

from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer
from protean.utils.globals import current_domain

from storefront.domain import storefront


@storefront.aggregate
class SaleSequence:
    project_id = Identifier(identifier=True)
    last_nro = Integer(default=0, min_value=0)

    def next_number(self):
        self.last_nro = (self.last_nro or 0) + 1
        return self.last_nro


def allocate_sale_number(project_id):
    """Increment the project's counter and return the new number.

    The counter is saved through the current unit of work.
    """
    repo = current_domain.repository_for(SaleSequence)
    try:
        sequence = repo.get(str(project_id))
    except ObjectNotFoundError:
        sequence = SaleSequence(project_id=str(project_id), last_nro=0)

    nro = sequence.next_number()
    repo.add(sequence)
    return nro
