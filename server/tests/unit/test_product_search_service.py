import pytest

from app.core.exceptions import ClientInputError, UpstreamStoreError
from app.services.search import (
    ProductSearchService,
    SearchCriteria,
    SqlProductCatalog,
    build_product_filter,
    escape_like,
)


class FailingCatalog:
    def find_products(self, criteria, *, take):
        raise RuntimeError("connection reset")

    def find_names_by_prefix(self, prefix, *, limit):
        raise RuntimeError("connection reset")


def make_service(session, *, probe_has_more: bool = False) -> ProductSearchService:
    return ProductSearchService(SqlProductCatalog(session), probe_has_more=probe_has_more)


def names(response) -> list[str]:
    return [product.name for product in response.products]


@pytest.mark.parametrize("query", ["", "   "])
def test_build_product_filter_is_unconstrained_without_filters(query: str) -> None:
    assert build_product_filter(query) is None


def test_build_product_filter_includes_price_bounds_only_when_given() -> None:
    predicate = build_product_filter("", min_price=10)

    compiled = str(predicate.compile(compile_kwargs={"literal_binds": True}))
    assert "products.price >= 10" in compiled
    assert "<=" not in compiled


def test_escape_like_escapes_wildcards() -> None:
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"


def test_empty_query_returns_all_products_newest_first(session, add_product) -> None:
    add_product("Clay Lamp")
    add_product("Brass Bell")
    add_product("Silk Scarf")

    response = make_service(session).search(SearchCriteria())

    assert names(response) == ["Silk Scarf", "Brass Bell", "Clay Lamp"]
    assert response.hasMore is False


def test_query_matches_name_case_insensitively(session, add_product) -> None:
    add_product("Blue Pottery Teapot")
    add_product("Brass Bell")

    response = make_service(session).search(SearchCriteria(query="TEAPOT"))

    assert names(response) == ["Blue Pottery Teapot"]


def test_query_matches_description_substring(session, add_product) -> None:
    add_product("Table Runner", description="Hand-woven on a pit loom in Kutch")
    add_product("Brass Bell", description="Cast brass")

    response = make_service(session).search(SearchCriteria(query="loom"))

    assert names(response) == ["Table Runner"]


def test_query_is_trimmed_before_matching(session, add_product) -> None:
    add_product("Madhubani Painting")

    response = make_service(session).search(SearchCriteria(query="  madhubani  "))

    assert names(response) == ["Madhubani Painting"]


def test_tag_match_is_exact(session, add_product) -> None:
    add_product("Clay Vessel", tags=["pottery", "handmade"])

    exact = make_service(session).search(SearchCriteria(query="pottery"))
    partial = make_service(session).search(SearchCriteria(query="pot"))

    assert names(exact) == ["Clay Vessel"]
    assert names(partial) == []


def test_tag_match_is_case_sensitive(session, add_product) -> None:
    add_product("Clay Vessel", tags=["pottery"])

    response = make_service(session).search(SearchCriteria(query="Pottery"))

    assert names(response) == []


def test_substring_still_matches_name_when_tag_does_not(session, add_product) -> None:
    add_product("Terracotta Pot", tags=["pottery"])

    response = make_service(session).search(SearchCriteria(query="pot"))

    assert names(response) == ["Terracotta Pot"]


def test_like_wildcards_in_query_match_literally(session, add_product) -> None:
    add_product("100% Cotton Throw")
    add_product("Brass Bell")

    response = make_service(session).search(SearchCriteria(query="%"))

    assert names(response) == ["100% Cotton Throw"]


def test_price_bounds_are_inclusive(session, add_product) -> None:
    add_product("Cheap", price=99.0)
    add_product("Low", price=100.0)
    add_product("Mid", price=250.0)
    add_product("High", price=500.0)
    add_product("Luxury", price=500.01)

    response = make_service(session).search(SearchCriteria(min_price=100, max_price=500))

    assert names(response) == ["High", "Mid", "Low"]
    assert all(100 <= product.price <= 500 for product in response.products)


def test_min_price_above_max_price_returns_nothing(session, add_product) -> None:
    add_product("Mid", price=250.0)

    response = make_service(session).search(SearchCriteria(min_price=300, max_price=200))

    assert response.products == []
    assert response.hasMore is False


def test_query_and_price_bounds_are_combined(session, add_product) -> None:
    add_product("Small Brass Diya", price=150.0)
    add_product("Large Brass Urli", price=2500.0)
    add_product("Clay Diya", price=40.0)

    response = make_service(session).search(SearchCriteria(query="brass", max_price=1000))

    assert names(response) == ["Small Brass Diya"]


def test_pagination_skips_and_limits(session, add_product) -> None:
    for index in range(5):
        add_product(f"Product {index}")
    service = make_service(session)

    first = service.search(SearchCriteria(page=1, limit=2))
    second = service.search(SearchCriteria(page=2, limit=2))
    last = service.search(SearchCriteria(page=3, limit=2))

    assert names(first) == ["Product 4", "Product 3"]
    assert first.hasMore is True
    assert names(second) == ["Product 2", "Product 1"]
    assert names(last) == ["Product 0"]
    assert last.hasMore is False


@pytest.mark.parametrize("limit", [1, 3, 7, 20])
def test_page_never_exceeds_limit(session, add_product, limit: int) -> None:
    for index in range(8):
        add_product(f"Product {index}")

    response = make_service(session).search(SearchCriteria(limit=limit))

    assert len(response.products) <= limit


def test_exactly_full_last_page_reports_has_more(session, add_product) -> None:
    for index in range(4):
        add_product(f"Product {index}")

    response = make_service(session).search(SearchCriteria(page=2, limit=2))

    assert len(response.products) == 2
    # known approximation: a full page always claims another one exists
    assert response.hasMore is True


def test_probe_mode_reports_exact_has_more(session, add_product) -> None:
    for index in range(4):
        add_product(f"Product {index}")
    service = make_service(session, probe_has_more=True)

    last = service.search(SearchCriteria(page=2, limit=2))
    first = service.search(SearchCriteria(page=1, limit=2))

    assert names(last) == ["Product 1", "Product 0"]
    assert last.hasMore is False
    assert len(first.products) == 2
    assert first.hasMore is True


def test_search_wraps_store_failures() -> None:
    service = ProductSearchService(FailingCatalog())

    with pytest.raises(UpstreamStoreError) as excinfo:
        service.search(SearchCriteria(query="lamp"))

    assert excinfo.value.message == "Search failed"
    assert excinfo.value.status_code == 500


def test_search_products_carry_final_price_and_tags(session, add_product) -> None:
    add_product("Pashmina Shawl", price=4999.0, discount_pct=10, tags=["kashmir"])

    product = make_service(session).search(SearchCriteria()).products[0]

    assert product.finalPrice == 4499
    assert product.tags == ["kashmir"]


def test_autocomplete_matches_prefix_alphabetically(session, add_product) -> None:
    add_product("Vase")
    add_product("Terracotta Bowl")
    add_product("Teapot")

    suggestions = make_service(session).autocomplete("Te")

    assert [item.name for item in suggestions] == ["Teapot", "Terracotta Bowl"]
    assert all(item.id for item in suggestions)


def test_autocomplete_is_case_insensitive_prefix_only(session, add_product) -> None:
    add_product("Teapot")
    add_product("Green Tea Cups")

    suggestions = make_service(session).autocomplete("tea")

    assert [item.name for item in suggestions] == ["Teapot"]


def test_autocomplete_returns_at_most_ten(session, add_product) -> None:
    for index in range(12):
        add_product(f"Diya {index:02d}")

    suggestions = make_service(session).autocomplete("diya")

    assert len(suggestions) == ProductSearchService.AUTOCOMPLETE_LIMIT == 10
    assert suggestions[0].name == "Diya 00"
    assert suggestions[-1].name == "Diya 09"


@pytest.mark.parametrize("query", [None, "", "   "])
def test_autocomplete_rejects_empty_query(query) -> None:
    service = ProductSearchService(FailingCatalog())

    with pytest.raises(ClientInputError) as excinfo:
        service.autocomplete(query)

    assert excinfo.value.message == "Query too short"


def test_autocomplete_wraps_store_failures() -> None:
    service = ProductSearchService(FailingCatalog())

    with pytest.raises(UpstreamStoreError) as excinfo:
        service.autocomplete("te")

    assert excinfo.value.message == "Autocomplete failed"
