from decimal import Decimal

import pytest
from pydantic import ValidationError

from classifieds.models.filters import ListingFilters


def test_clearing_returns_defaults():
    filters = ListingFilters(q="sofá", category="c1", state="rj", min_price=5, sort="price_low")

    cleared = filters.cleared()

    assert cleared == ListingFilters.defaults()
    assert cleared.is_default()
    assert cleared.sort == "newest"


def test_clearing_is_idempotent():
    cleared = ListingFilters(city="Niterói").cleared()
    assert cleared.cleared() == cleared


def test_blank_inputs_mean_no_filter():
    filters = ListingFilters(q="  ", category="", min_price="", sort="")
    assert filters.is_default()


def test_state_is_upper_cased_and_two_letters():
    assert ListingFilters(state="mg").state == "MG"
    with pytest.raises(ValidationError):
        ListingFilters(state="SPX")


def test_negative_price_rejected():
    with pytest.raises(ValidationError):
        ListingFilters(min_price=-1)


def test_filters_are_immutable():
    filters = ListingFilters(q="moto")
    with pytest.raises(ValidationError):
        filters.q = "carro"


def test_query_params_mirror_set_filters_only():
    filters = ListingFilters(q="moto", seller="u1", min_price=Decimal("10.50"), sort="price_high")

    assert filters.to_query_params() == {
        "q": "moto",
        "seller": "u1",
        "min_price": "10.50",
        "sort": "price_high",
    }
    assert filters.query_string() == "q=moto&seller=u1&min_price=10.50&sort=price_high"


def test_default_sort_is_left_out_of_the_url():
    assert ListingFilters(sort="newest").to_query_params() == {}
    assert ListingFilters().query_string() == ""


def test_url_round_trip():
    filters = ListingFilters(q="casa", state="SP", city="Campinas", ad_type="rent")
    assert ListingFilters(**filters.to_query_params()) == filters


def test_unknown_params_are_ignored():
    assert ListingFilters(page="2", q="x") == ListingFilters(q="x")
