import pytest

from courier_dispatch.models.domain import Customer, CustomerAddress
from courier_dispatch.services.customers import candidate_addresses, choose_destination


def _customer(**kwargs) -> Customer:
    return Customer(customer_id="c1", full_name="Asha Rao", **kwargs)


def test_labelled_addresses_come_before_legacy_columns():
    customer = _customer(
        addresses=[CustomerAddress(label="Gym", address="4 Park St"), CustomerAddress(label="Blank", address="  ")],
        homeaddress="1 Main Rd",
        workaddress="2 Tech Park",
    )
    assert [entry.label for entry in candidate_addresses(customer)] == ["Gym", "Home", "Work"]


def test_first_candidate_is_the_default():
    destination = choose_destination(_customer(homeaddress=" 1 Main Rd ", workaddress="2 Tech Park"))
    assert destination.address == "1 Main Rd"
    assert destination.label == "Home"
    assert destination.customer_id == "c1"


def test_label_lookup_ignores_case():
    destination = choose_destination(_customer(homeaddress="1 Main Rd", workaddress="2 Tech Park"), "work")
    assert destination.address == "2 Tech Park"


def test_customer_without_address_is_rejected():
    with pytest.raises(ValueError, match="no delivery address"):
        choose_destination(_customer(homeaddress=""))
    with pytest.raises(ValueError, match="labelled"):
        choose_destination(_customer(homeaddress="1 Main Rd"), "Work")
