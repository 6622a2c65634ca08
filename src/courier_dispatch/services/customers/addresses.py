"""Pick the delivery address of a customer for a route plan."""

from __future__ import annotations

from ...models.domain import Customer, CustomerAddress, Destination


def candidate_addresses(customer: Customer) -> list[CustomerAddress]:
    """Labelled addresses first, then the legacy home and work columns."""
    candidates = [entry for entry in customer.addresses if entry.address and entry.address.strip()]
    if customer.homeaddress and customer.homeaddress.strip():
        candidates.append(CustomerAddress(label="Home", address=customer.homeaddress))
    if customer.workaddress and customer.workaddress.strip():
        candidates.append(CustomerAddress(label="Work", address=customer.workaddress))
    return candidates


def choose_destination(customer: Customer, label: str | None = None) -> Destination:
    """Select one address for ``customer``.

    With a ``label`` the matching address is used (case-insensitive);
    otherwise the first candidate wins.
    """
    candidates = candidate_addresses(customer)
    if not candidates:
        raise ValueError(f"Customer '{customer.full_name}' has no delivery address.")

    if label:
        for entry in candidates:
            if entry.label.lower() == label.strip().lower():
                return Destination(customer=customer, address=entry.address.strip(), label=entry.label)
        raise ValueError(f"Customer '{customer.full_name}' has no address labelled '{label}'.")

    entry = candidates[0]
    return Destination(customer=customer, address=entry.address.strip(), label=entry.label)
